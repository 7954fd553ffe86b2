"""Walk from a VIP down to every resource serving it.

VIP -> forwarding rules -> target proxies -> one URL map -> backend
services -> NEGs and instance groups. Every node is read once, even when
several parents reference it, at the version the folded validator policy
requires for its kind; the graph is rebuilt from scratch on every call.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

import structlog

from glbc.cloud.meta import KeyType, ResourceKey, ResourceKind, parse_resource_url
from glbc.composite.cloud import CompositeCloud
from glbc.composite.types import BackendService, UrlMap
from glbc.errors import GraphStructureError
from glbc.gclb.models import GCLB
from glbc.gclb.validators import FeatureValidator, Requirement, resolve_policy
from glbc.observability.metrics import (
    gclb_discovery_duration_seconds,
    gclb_discovery_failures_total,
)

_log = structlog.get_logger(component="gclb.discovery")

NEG_RESOURCE_TYPE = "networkEndpointGroup"
IG_RESOURCE_TYPE = "instanceGroup"

_TARGET_PROXY_KINDS = (ResourceKind.TARGET_HTTP_PROXY, ResourceKind.TARGET_HTTPS_PROXY)


async def gclb_for_vip(
    cloud: CompositeCloud,
    vip: str,
    validators: Sequence[FeatureValidator],
) -> GCLB:
    """Discover the load balancer serving *vip*.

    A VIP no forwarding rule uses yields an empty graph.

    Raises:
        GraphStructureError: the resources do not form one load balancer
            (target proxies disagree on the URL map, a reference points at
            an unexpected kind or cannot be parsed).
        google.api_core.exceptions.GoogleAPICallError: any failed read,
            404 included.
    """
    start = time.monotonic()
    try:
        gclb = await _discover(cloud, vip, resolve_policy(validators))
    except Exception as exc:
        gclb_discovery_failures_total.labels(error=type(exc).__name__).inc()
        _log.warning("gclb_discovery_failed", vip=vip, error=str(exc))
        raise
    finally:
        gclb_discovery_duration_seconds.observe(time.monotonic() - start)

    _log.info("gclb_discovered", vip=vip, resources=len(gclb))
    return gclb


async def _discover(cloud: CompositeCloud, vip: str, policy: dict[ResourceKind, Requirement]) -> GCLB:
    gclb = GCLB(vip=vip)

    # VIP => ForwardingRules
    fr_req = policy[ResourceKind.FORWARDING_RULE]
    for scope in sorted(fr_req.scopes):
        location = cloud.cloud.region if scope == KeyType.REGIONAL else ""
        for fr in await cloud.list(ResourceKind.FORWARDING_RULE, fr_req.version, scope, location):
            if fr.ip_address != vip:
                continue
            key = ResourceKey(name=fr.name, region=location)
            gclb.forwarding_rules[key] = fr

    if not gclb.forwarding_rules:
        _log.info("gclb_no_forwarding_rules", vip=vip)
        return gclb

    # ForwardingRule => TargetProxy => URLMap key
    url_map_key: ResourceKey | None = None
    for fr_key in sorted(gclb.forwarding_rules):
        target = parse_resource_url(gclb.forwarding_rules[fr_key].target)
        if target.kind not in _TARGET_PROXY_KINDS:
            raise GraphStructureError(
                f"forwarding rule {fr_key} targets unsupported resource {target.kind!r}",
                {"vip": vip},
            )
        proxies = (
            gclb.target_http_proxies if target.kind == ResourceKind.TARGET_HTTP_PROXY else gclb.target_https_proxies
        )
        proxy = proxies.get(target.key)
        if proxy is None:
            proxy = await _get(cloud, policy, ResourceKind(target.kind), target.key)
            proxies[target.key] = proxy

        um_id = parse_resource_url(proxy.url_map)
        if um_id.kind != ResourceKind.URL_MAP:
            raise GraphStructureError(
                f"target proxy {target.key} references {um_id.kind!r}, not a URL map",
                {"vip": vip},
            )
        if url_map_key is None:
            url_map_key = um_id.key
        elif um_id.key != url_map_key:
            raise GraphStructureError(
                f"target proxies reference different URL maps: {url_map_key} != {um_id.key}",
                {"vip": vip},
            )

    assert url_map_key is not None
    url_map: UrlMap = await _get(cloud, policy, ResourceKind.URL_MAP, url_map_key)
    gclb.url_maps[url_map_key] = url_map

    # URLMap => BackendServices => groups
    neg_keys: dict[ResourceKey, None] = {}
    ig_keys: dict[ResourceKey, None] = {}
    for bs_key in backend_service_keys(url_map):
        bs: BackendService = await _get(cloud, policy, ResourceKind.BACKEND_SERVICE, bs_key)
        gclb.backend_services[bs_key] = bs
        for backend in bs.backends:
            if NEG_RESOURCE_TYPE in backend.group:
                neg_keys[parse_resource_url(backend.group).key] = None
            elif IG_RESOURCE_TYPE in backend.group:
                ig_keys[parse_resource_url(backend.group).key] = None

    for key in neg_keys:
        gclb.network_endpoint_groups[key] = await _get(
            cloud, policy, ResourceKind.NETWORK_ENDPOINT_GROUP, key
        )
    for key in ig_keys:
        gclb.instance_groups[key] = await _get(cloud, policy, ResourceKind.INSTANCE_GROUP, key)

    return gclb


def backend_service_keys(url_map: UrlMap) -> list[ResourceKey]:
    """Distinct backend-service keys reachable from *url_map*, in walk order."""
    links = [url_map.default_service]
    for matcher in url_map.path_matchers:
        links.append(matcher.default_service)
        links.extend(rule.service for rule in matcher.path_rules)

    keys: dict[ResourceKey, None] = {}
    for link in links:
        if not link:
            continue
        res_id = parse_resource_url(link)
        if res_id.kind != ResourceKind.BACKEND_SERVICE:
            raise GraphStructureError(
                f"URL map {url_map.name!r} routes to {res_id.kind!r}, not a backend service"
            )
        keys[res_id.key] = None
    return list(keys)


async def _get(
    cloud: CompositeCloud,
    policy: dict[ResourceKind, Requirement],
    kind: ResourceKind,
    key: ResourceKey,
) -> Any:
    version = policy[kind].version
    _log.debug("gclb_get", kind=kind.value, key=str(key), version=version.value)
    return await cloud.get(kind, version, key)
