"""The resource graph behind one VIP."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from glbc.cloud.meta import ResourceKey, ResourceKind
from glbc.composite.types import (
    BackendService,
    ForwardingRule,
    InstanceGroup,
    NetworkEndpointGroup,
    NetworkEndpointWithHealthStatus,
    TargetHttpProxy,
    TargetHttpsProxy,
    UrlMap,
)

DEFAULT_BACKEND_SERVICE = "kube-system/default-http-backend"


@dataclass
class GCLB:
    """Every resource serving *vip*, keyed by resource key per kind.

    Each stored object remembers the API version it was read at, which is
    the version deletion checks use.
    """

    vip: str
    forwarding_rules: dict[ResourceKey, ForwardingRule] = field(default_factory=dict)
    target_http_proxies: dict[ResourceKey, TargetHttpProxy] = field(default_factory=dict)
    target_https_proxies: dict[ResourceKey, TargetHttpsProxy] = field(default_factory=dict)
    url_maps: dict[ResourceKey, UrlMap] = field(default_factory=dict)
    backend_services: dict[ResourceKey, BackendService] = field(default_factory=dict)
    network_endpoint_groups: dict[ResourceKey, NetworkEndpointGroup] = field(default_factory=dict)
    instance_groups: dict[ResourceKey, InstanceGroup] = field(default_factory=dict)

    def by_kind(self) -> dict[ResourceKind, dict[ResourceKey, Any]]:
        return {
            ResourceKind.FORWARDING_RULE: self.forwarding_rules,
            ResourceKind.TARGET_HTTP_PROXY: self.target_http_proxies,
            ResourceKind.TARGET_HTTPS_PROXY: self.target_https_proxies,
            ResourceKind.URL_MAP: self.url_maps,
            ResourceKind.BACKEND_SERVICE: self.backend_services,
            ResourceKind.NETWORK_ENDPOINT_GROUP: self.network_endpoint_groups,
            ResourceKind.INSTANCE_GROUP: self.instance_groups,
        }

    def resources(self) -> Iterator[tuple[ResourceKind, ResourceKey, Any]]:
        """All members, root first, keys sorted within each kind."""
        for kind, members in self.by_kind().items():
            for key in sorted(members):
                yield kind, key, members[key]

    def __len__(self) -> int:
        return sum(len(members) for members in self.by_kind().values())


@dataclass(frozen=True)
class GCLBDeleteOptions:
    """Options for deletion checks.

    Attributes:
        skip_default_backend: a surviving backend service owned by the
            cluster default backend is not reported.
        default_backend_service: ``namespace/name`` of that default backend.
        check_instance_groups: include instance groups in the check. They are
            shared by every load balancer in the cluster, so callers tearing
            down one of several may want to turn this off.
    """

    skip_default_backend: bool = False
    default_backend_service: str = DEFAULT_BACKEND_SERVICE
    check_instance_groups: bool = True


@dataclass
class NetworkEndpoints:
    """A zonal NEG and the endpoints it held when listed."""

    neg: NetworkEndpointGroup
    endpoints: list[NetworkEndpointWithHealthStatus] = field(default_factory=list)
