"""Endpoints of a NEG that exists under one name in several zones."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from glbc.cloud.meta import ResourceKey, ResourceKind, Version
from glbc.composite.cloud import CompositeCloud
from glbc.gclb.models import NetworkEndpoints

_log = structlog.get_logger(component="gclb.endpoints")


async def network_endpoints_in_negs(
    cloud: CompositeCloud,
    name: str,
    zones: Iterable[str],
    version: Version = Version.GA,
) -> dict[ResourceKey, NetworkEndpoints]:
    """Read the NEG *name* in each of *zones* along with its endpoints.

    Endpoints carry their health status. The first failed read aborts the
    whole call; a NEG missing from one zone is a 404 like any other.
    """
    found: dict[ResourceKey, NetworkEndpoints] = {}
    for zone in zones:
        key = ResourceKey.zonal_key(name, zone)
        neg = await cloud.get(ResourceKind.NETWORK_ENDPOINT_GROUP, version, key)
        endpoints = await cloud.list_network_endpoints(version, key)
        found[key] = NetworkEndpoints(neg=neg, endpoints=endpoints)
        _log.debug("neg_endpoints_listed", key=str(key), endpoints=len(endpoints))
    return found
