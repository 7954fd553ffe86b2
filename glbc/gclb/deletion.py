"""Confirm that a previously discovered load balancer is gone."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog
from google.api_core import exceptions as gapi_exceptions

from glbc.cloud.api import is_not_found
from glbc.cloud.meta import ResourceKey, ResourceKind
from glbc.composite.cloud import CompositeCloud
from glbc.errors import ResourcesNotDeletedError
from glbc.gclb.models import GCLB, GCLBDeleteOptions
from glbc.utils.description import Description

_log = structlog.get_logger(component="gclb.deletion")


async def check_resource_deletion(
    cloud: CompositeCloud,
    gclb: GCLB,
    options: GCLBDeleteOptions | None = None,
) -> None:
    """Get every member of *gclb*; only 404s count as deleted.

    Raises:
        ResourcesNotDeletedError: listing every resource that still exists
            and every one that could not be read.
    """
    options = options or GCLBDeleteOptions()
    members = [
        (kind, key, obj)
        for kind, key, obj in gclb.resources()
        if kind != ResourceKind.INSTANCE_GROUP or options.check_instance_groups
    ]
    await _check(cloud, members, options, "resources")


async def check_neg_deletion(
    cloud: CompositeCloud,
    gclb: GCLB,
    options: GCLBDeleteOptions | None = None,
) -> None:
    """Like :func:`check_resource_deletion`, for the NEGs of *gclb* only."""
    members = [
        (ResourceKind.NETWORK_ENDPOINT_GROUP, key, gclb.network_endpoint_groups[key])
        for key in sorted(gclb.network_endpoint_groups)
    ]
    await _check(cloud, members, options or GCLBDeleteOptions(), "NEGs")


async def _check(
    cloud: CompositeCloud,
    members: Iterable[tuple[ResourceKind, ResourceKey, Any]],
    options: GCLBDeleteOptions,
    label: str,
) -> None:
    remaining: list[str] = []
    failures: list[str] = []

    for kind, key, obj in members:
        try:
            found = await cloud.get(kind, obj.version, key)
        except gapi_exceptions.GoogleAPICallError as exc:
            if is_not_found(exc):
                continue
            failures.append(f"{kind.value} {key}: {exc}")
            continue

        if kind == ResourceKind.BACKEND_SERVICE and _is_default_backend(found, options):
            _log.debug("default_backend_skipped", key=str(key))
            continue
        remaining.append(f"{kind.value} {key}")

    if not remaining and not failures:
        return

    parts = []
    if remaining:
        parts.append(f"{label} still exist ({', '.join(remaining)})")
    if failures:
        parts.append(f"could not verify ({'; '.join(failures)})")
    _log.info("resources_not_deleted", remaining=len(remaining), failures=len(failures))
    raise ResourcesNotDeletedError("; ".join(parts), remaining=remaining, failures=failures)


def _is_default_backend(bs: Any, options: GCLBDeleteOptions) -> bool:
    if not options.skip_default_backend:
        return False
    return Description.from_string(bs.description).service_name == options.default_backend_service
