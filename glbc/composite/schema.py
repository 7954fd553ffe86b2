"""Per-kind field mapping tables for the composite types.

Every canonical field is listed once with its wire name, JSON type and the
most stable API version that carries it. Fields whose ``since`` is BETA
exist in beta and alpha; ALPHA fields exist only in alpha. Anything not in
a table (``version``, ``scope``) is never put on the wire.

``FORCE_SEND`` is the one place that lists sub-objects whose fields must be
serialized even when zero-valued: sending ``{}`` and omitting the object
are different remote states for these, and eliding zero values would clear
a previously-set remote field on update.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import StrEnum

from glbc.cloud.meta import ResourceKind, Version
from glbc.composite import types as t
from glbc.errors import ConversionError

_CONTROLLER_ONLY = frozenset({"version", "scope"})


class FieldType(StrEnum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    STRING_LIST = "string_list"
    STRING_MAP = "string_map"
    NESTED = "nested"
    NESTED_LIST = "nested_list"


@dataclass(frozen=True)
class FieldSpec:
    attr: str
    wire: str
    ftype: FieldType = FieldType.STRING
    since: Version = Version.GA
    nested: type | None = None


@dataclass(frozen=True)
class TypeSchema:
    cls: type
    fields: tuple[FieldSpec, ...]

    def field(self, wire: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.wire == wire:
                return spec
        return None


def _camel(attr: str) -> str:
    head, *rest = attr.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _f(
    attr: str,
    ftype: FieldType = FieldType.STRING,
    since: Version = Version.GA,
    nested: type | None = None,
    wire: str | None = None,
) -> FieldSpec:
    return FieldSpec(attr=attr, wire=wire or _camel(attr), ftype=ftype, since=since, nested=nested)


S, I, F, B = FieldType.STRING, FieldType.INT, FieldType.FLOAT, FieldType.BOOL
SL, SM, N, NL = FieldType.STRING_LIST, FieldType.STRING_MAP, FieldType.NESTED, FieldType.NESTED_LIST
BETA, ALPHA = Version.BETA, Version.ALPHA

TYPE_TABLES: dict[type, tuple[FieldSpec, ...]] = {
    t.CacheKeyPolicy: (
        _f("include_host", B),
        _f("include_protocol", B),
        _f("include_query_string", B),
        _f("query_string_blacklist", SL),
        _f("query_string_whitelist", SL),
    ),
    t.BackendServiceCdnPolicy: (
        _f("cache_key_policy", N, nested=t.CacheKeyPolicy),
        _f("signed_url_cache_max_age_sec", I),
        _f("signed_url_key_names", SL),
    ),
    t.BackendServiceIAP: (
        _f("enabled", B),
        _f("oauth2_client_id", S),
        _f("oauth2_client_secret", S),
        _f("oauth2_client_secret_sha256", S),
    ),
    t.ConnectionDraining: (_f("draining_timeout_sec", I),),
    t.BackendServiceLogConfig: (
        _f("enable", B),
        _f("sample_rate", F),
    ),
    t.Backend: (
        _f("group"),
        _f("balancing_mode"),
        _f("capacity_scaler", F),
        _f("description"),
        _f("failover", B, BETA),
        _f("max_connections", I),
        _f("max_connections_per_endpoint", I),
        _f("max_connections_per_instance", I),
        _f("max_rate", I),
        _f("max_rate_per_endpoint", F),
        _f("max_rate_per_instance", F),
        _f("max_utilization", F),
    ),
    t.BackendService: (
        _f("name"),
        _f("self_link"),
        _f("description"),
        _f("fingerprint"),
        _f("creation_timestamp"),
        _f("region"),
        _f("backends", NL, nested=t.Backend),
        _f("health_checks", SL),
        _f("load_balancing_scheme"),
        _f("locality_lb_policy", S, ALPHA),
        _f("protocol"),
        _f("port", I),
        _f("port_name"),
        _f("timeout_sec", I),
        _f("session_affinity"),
        _f("affinity_cookie_ttl_sec", I),
        _f("enable_cdn", B, wire="enableCDN"),
        _f("cdn_policy", N, nested=t.BackendServiceCdnPolicy),
        _f("iap", N, nested=t.BackendServiceIAP),
        _f("connection_draining", N, nested=t.ConnectionDraining),
        _f("security_policy", S, BETA),
        _f("custom_request_headers", SL, BETA),
        _f("log_config", N, BETA, nested=t.BackendServiceLogConfig),
        _f("network", S, ALPHA),
    ),
    t.ForwardingRule: (
        _f("name"),
        _f("self_link"),
        _f("description"),
        _f("region"),
        _f("ip_address", wire="IPAddress"),
        _f("ip_protocol", wire="IPProtocol"),
        _f("port_range"),
        _f("ports", SL),
        _f("target"),
        _f("load_balancing_scheme"),
        _f("network"),
        _f("subnetwork"),
        _f("network_tier"),
        _f("labels", SM, BETA),
        _f("label_fingerprint", S, BETA),
    ),
    t.TargetHttpProxy: (
        _f("name"),
        _f("self_link"),
        _f("description"),
        _f("region"),
        _f("url_map"),
        _f("fingerprint", S, ALPHA),
    ),
    t.TargetHttpsProxy: (
        _f("name"),
        _f("self_link"),
        _f("description"),
        _f("region"),
        _f("url_map"),
        _f("ssl_certificates", SL),
        _f("ssl_policy"),
        _f("quic_override"),
    ),
    t.HostRule: (
        _f("hosts", SL),
        _f("path_matcher"),
        _f("description"),
    ),
    t.PathRule: (
        _f("paths", SL),
        _f("service"),
    ),
    t.PathMatcher: (
        _f("name"),
        _f("description"),
        _f("default_service"),
        _f("path_rules", NL, nested=t.PathRule),
    ),
    t.UrlMap: (
        _f("name"),
        _f("self_link"),
        _f("description"),
        _f("region"),
        _f("default_service"),
        _f("host_rules", NL, nested=t.HostRule),
        _f("path_matchers", NL, nested=t.PathMatcher),
        _f("fingerprint"),
    ),
    t.NetworkEndpointGroup: (
        _f("name"),
        _f("self_link"),
        _f("description"),
        _f("zone"),
        _f("network_endpoint_type"),
        _f("network"),
        _f("subnetwork"),
        _f("default_port", I),
        _f("size", I),
        _f("annotations", SM, ALPHA),
    ),
    t.NamedPort: (
        _f("name"),
        _f("port", I),
    ),
    t.InstanceGroup: (
        _f("name"),
        _f("self_link"),
        _f("description"),
        _f("zone"),
        _f("network"),
        _f("subnetwork"),
        _f("size", I),
        _f("named_ports", NL, nested=t.NamedPort),
        _f("fingerprint"),
    ),
    t.FirewallAllowed: (
        _f("ip_protocol", wire="IPProtocol"),
        _f("ports", SL),
    ),
    t.Firewall: (
        _f("name"),
        _f("self_link"),
        _f("description"),
        _f("network"),
        _f("direction"),
        _f("priority", I),
        _f("source_ranges", SL),
        _f("target_tags", SL),
        _f("allowed", NL, nested=t.FirewallAllowed),
        _f("disabled", B),
    ),
    t.Subnetwork: (
        _f("name"),
        _f("self_link"),
        _f("description"),
        _f("network"),
        _f("region"),
        _f("ip_cidr_range"),
        _f("role", S, BETA),
        _f("purpose", S, BETA),
    ),
    t.NetworkEndpoint: (
        _f("instance"),
        _f("ip_address"),
        _f("port", I),
    ),
    t.ResourceReference: (_f("url"),),
    t.HealthStatusForNetworkEndpoint: (
        _f("health_state"),
        _f("backend_service", N, nested=t.ResourceReference),
        _f("forwarding_rule", N, nested=t.ResourceReference),
        _f("health_check", N, nested=t.ResourceReference),
    ),
    t.NetworkEndpointWithHealthStatus: (
        _f("network_endpoint", N, nested=t.NetworkEndpoint),
        _f("healths", NL, nested=t.HealthStatusForNetworkEndpoint),
    ),
}

KIND_TYPES: dict[str, type] = {
    ResourceKind.FORWARDING_RULE: t.ForwardingRule,
    ResourceKind.TARGET_HTTP_PROXY: t.TargetHttpProxy,
    ResourceKind.TARGET_HTTPS_PROXY: t.TargetHttpsProxy,
    ResourceKind.URL_MAP: t.UrlMap,
    ResourceKind.BACKEND_SERVICE: t.BackendService,
    ResourceKind.NETWORK_ENDPOINT_GROUP: t.NetworkEndpointGroup,
    ResourceKind.INSTANCE_GROUP: t.InstanceGroup,
    ResourceKind.FIREWALL: t.Firewall,
    ResourceKind.SUBNETWORK: t.Subnetwork,
}

# (kind, wire path to the sub-object) -> wire fields always serialized while
# that sub-object is present.
FORCE_SEND: dict[tuple[str, ...], tuple[str, ...]] = {
    (ResourceKind.BACKEND_SERVICE, "cdnPolicy", "cacheKeyPolicy"): (
        "includeHost",
        "includeProtocol",
        "includeQueryString",
        "queryStringBlacklist",
        "queryStringWhitelist",
    ),
    (ResourceKind.BACKEND_SERVICE, "iap"): (
        "enabled",
        "oauth2ClientId",
        "oauth2ClientSecret",
    ),
}


class CompositeRegistry:
    """All known composite kinds, their schemas and force-send policy.

    Built once at startup (see :func:`default_registry`) and handed to the
    components that convert resources.
    """

    def __init__(
        self,
        tables: dict[type, tuple[FieldSpec, ...]],
        kinds: dict[str, type],
        force_send: dict[tuple[str, ...], tuple[str, ...]],
    ) -> None:
        self._types = {cls: TypeSchema(cls, specs) for cls, specs in tables.items()}
        self._kinds = dict(kinds)
        self._kind_by_type = {cls: kind for kind, cls in kinds.items()}
        self._force_send = dict(force_send)
        self._validate()

    def _validate(self) -> None:
        for cls, schema in self._types.items():
            declared = {f.name for f in dataclasses.fields(cls)} - _CONTROLLER_ONLY
            mapped = {spec.attr for spec in schema.fields}
            if declared != mapped:
                raise ConversionError(
                    f"schema table for {cls.__name__} does not match its fields",
                    {"unmapped": sorted(declared - mapped), "unknown": sorted(mapped - declared)},
                )
            for spec in schema.fields:
                if spec.ftype in (FieldType.NESTED, FieldType.NESTED_LIST) and spec.nested not in self._types:
                    raise ConversionError(f"{cls.__name__}.{spec.attr} references an unregistered type")
        for kind, cls in self._kinds.items():
            if cls not in self._types:
                raise ConversionError(f"kind {kind} has no schema table")

    @property
    def kinds(self) -> list[str]:
        return list(self._kinds)

    def type_for_kind(self, kind: str) -> type:
        try:
            return self._kinds[kind]
        except KeyError:
            raise ConversionError(f"unknown resource kind {kind!r}") from None

    def kind_for(self, obj: object) -> str:
        try:
            return self._kind_by_type[type(obj)]
        except KeyError:
            raise ConversionError(f"{type(obj).__name__} is not a top-level composite kind") from None

    def schema(self, cls: type) -> TypeSchema:
        try:
            return self._types[cls]
        except KeyError:
            raise ConversionError(f"no schema for {cls.__name__}") from None

    def force_send(self, path: tuple[str, ...]) -> tuple[str, ...]:
        return self._force_send.get(path, ())


def default_registry() -> CompositeRegistry:
    """Registry holding every kind glbc manages."""
    return CompositeRegistry(TYPE_TABLES, KIND_TYPES, FORCE_SEND)
