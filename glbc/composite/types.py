"""Canonical (composite) resource shapes.

Each type is the union of the GA, beta and alpha wire schemas for its kind.
``version`` and ``scope`` are controller bookkeeping: they say which track
and placement an instance is read/written through, are excluded from
equality, and are never serialized (see :mod:`glbc.composite.schema`).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from glbc.cloud.meta import KeyType, Version


@dataclass
class CacheKeyPolicy:
    include_host: bool = False
    include_protocol: bool = False
    include_query_string: bool = False
    query_string_blacklist: list[str] = field(default_factory=list)
    query_string_whitelist: list[str] = field(default_factory=list)


@dataclass
class BackendServiceCdnPolicy:
    cache_key_policy: CacheKeyPolicy | None = None
    signed_url_cache_max_age_sec: int = 0
    signed_url_key_names: list[str] = field(default_factory=list)


@dataclass
class BackendServiceIAP:
    enabled: bool = False
    oauth2_client_id: str = ""
    oauth2_client_secret: str = ""
    oauth2_client_secret_sha256: str = ""


@dataclass
class ConnectionDraining:
    draining_timeout_sec: int = 0


@dataclass
class BackendServiceLogConfig:
    enable: bool = False
    sample_rate: float = 0.0


@dataclass
class Backend:
    group: str = ""
    balancing_mode: str = ""
    capacity_scaler: float = 0.0
    description: str = ""
    failover: bool = False
    max_connections: int = 0
    max_connections_per_endpoint: int = 0
    max_connections_per_instance: int = 0
    max_rate: int = 0
    max_rate_per_endpoint: float = 0.0
    max_rate_per_instance: float = 0.0
    max_utilization: float = 0.0


@dataclass
class BackendService:
    """Logical backend pool: member groups, health checks, balancing policy."""

    name: str = ""
    self_link: str = ""
    description: str = ""
    fingerprint: str = ""
    creation_timestamp: str = ""
    region: str = ""
    backends: list[Backend] = field(default_factory=list)
    health_checks: list[str] = field(default_factory=list)
    load_balancing_scheme: str = ""
    locality_lb_policy: str = ""
    protocol: str = ""
    port: int = 0
    port_name: str = ""
    timeout_sec: int = 0
    session_affinity: str = ""
    affinity_cookie_ttl_sec: int = 0
    enable_cdn: bool = False
    cdn_policy: BackendServiceCdnPolicy | None = None
    iap: BackendServiceIAP | None = None
    connection_draining: ConnectionDraining | None = None
    security_policy: str = ""
    custom_request_headers: list[str] = field(default_factory=list)
    log_config: BackendServiceLogConfig | None = None
    network: str = ""
    version: Version = field(default=Version.GA, compare=False)
    scope: KeyType = field(default=KeyType.GLOBAL, compare=False)


@dataclass
class ForwardingRule:
    name: str = ""
    self_link: str = ""
    description: str = ""
    region: str = ""
    ip_address: str = ""
    ip_protocol: str = ""
    port_range: str = ""
    ports: list[str] = field(default_factory=list)
    target: str = ""
    load_balancing_scheme: str = ""
    network: str = ""
    subnetwork: str = ""
    network_tier: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    label_fingerprint: str = ""
    version: Version = field(default=Version.GA, compare=False)
    scope: KeyType = field(default=KeyType.GLOBAL, compare=False)


@dataclass
class TargetHttpProxy:
    name: str = ""
    self_link: str = ""
    description: str = ""
    region: str = ""
    url_map: str = ""
    fingerprint: str = ""
    version: Version = field(default=Version.GA, compare=False)
    scope: KeyType = field(default=KeyType.GLOBAL, compare=False)


@dataclass
class TargetHttpsProxy:
    name: str = ""
    self_link: str = ""
    description: str = ""
    region: str = ""
    url_map: str = ""
    ssl_certificates: list[str] = field(default_factory=list)
    ssl_policy: str = ""
    quic_override: str = ""
    version: Version = field(default=Version.GA, compare=False)
    scope: KeyType = field(default=KeyType.GLOBAL, compare=False)


@dataclass
class HostRule:
    hosts: list[str] = field(default_factory=list)
    path_matcher: str = ""
    description: str = ""


@dataclass
class PathRule:
    paths: list[str] = field(default_factory=list)
    service: str = ""


@dataclass
class PathMatcher:
    name: str = ""
    description: str = ""
    default_service: str = ""
    path_rules: list[PathRule] = field(default_factory=list)


@dataclass
class UrlMap:
    name: str = ""
    self_link: str = ""
    description: str = ""
    region: str = ""
    default_service: str = ""
    host_rules: list[HostRule] = field(default_factory=list)
    path_matchers: list[PathMatcher] = field(default_factory=list)
    fingerprint: str = ""
    version: Version = field(default=Version.GA, compare=False)
    scope: KeyType = field(default=KeyType.GLOBAL, compare=False)


@dataclass
class NetworkEndpointGroup:
    name: str = ""
    self_link: str = ""
    description: str = ""
    zone: str = ""
    network_endpoint_type: str = ""
    network: str = ""
    subnetwork: str = ""
    default_port: int = 0
    size: int = 0
    annotations: dict[str, str] = field(default_factory=dict)
    version: Version = field(default=Version.GA, compare=False)
    scope: KeyType = field(default=KeyType.ZONAL, compare=False)


@dataclass
class NamedPort:
    name: str = ""
    port: int = 0


@dataclass
class InstanceGroup:
    name: str = ""
    self_link: str = ""
    description: str = ""
    zone: str = ""
    network: str = ""
    subnetwork: str = ""
    size: int = 0
    named_ports: list[NamedPort] = field(default_factory=list)
    fingerprint: str = ""
    version: Version = field(default=Version.GA, compare=False)
    scope: KeyType = field(default=KeyType.ZONAL, compare=False)


@dataclass
class FirewallAllowed:
    ip_protocol: str = ""
    ports: list[str] = field(default_factory=list)


@dataclass
class Firewall:
    name: str = ""
    self_link: str = ""
    description: str = ""
    network: str = ""
    direction: str = ""
    priority: int = 0
    source_ranges: list[str] = field(default_factory=list)
    target_tags: list[str] = field(default_factory=list)
    allowed: list[FirewallAllowed] = field(default_factory=list)
    disabled: bool = False
    version: Version = field(default=Version.GA, compare=False)
    scope: KeyType = field(default=KeyType.GLOBAL, compare=False)


@dataclass
class Subnetwork:
    name: str = ""
    self_link: str = ""
    description: str = ""
    network: str = ""
    region: str = ""
    ip_cidr_range: str = ""
    role: str = ""
    purpose: str = ""
    version: Version = field(default=Version.GA, compare=False)
    scope: KeyType = field(default=KeyType.REGIONAL, compare=False)


@dataclass
class NetworkEndpoint:
    instance: str = ""
    ip_address: str = ""
    port: int = 0


@dataclass
class ResourceReference:
    url: str = ""


@dataclass
class HealthStatusForNetworkEndpoint:
    health_state: str = ""
    backend_service: ResourceReference | None = None
    forwarding_rule: ResourceReference | None = None
    health_check: ResourceReference | None = None


@dataclass
class NetworkEndpointWithHealthStatus:
    """One entry of a NEG endpoint listing made with health status shown."""

    network_endpoint: NetworkEndpoint | None = None
    healths: list[HealthStatusForNetworkEndpoint] = field(default_factory=list)


CompositeResource = (
    BackendService
    | ForwardingRule
    | TargetHttpProxy
    | TargetHttpsProxy
    | UrlMap
    | NetworkEndpointGroup
    | InstanceGroup
    | Firewall
    | Subnetwork
)
