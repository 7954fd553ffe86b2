"""In-memory ``CloudAPI`` implementation.

Stores wire objects keyed by (kind, key). When built with a registry, reads
project each object onto the requested version, so a GA read of a resource
that carries alpha-only fields loses them the same way the real API does.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any

from google.api_core import exceptions as gapi_exceptions

from glbc.cloud.meta import KeyType, ResourceID, ResourceKey, Version
from glbc.composite.convert import to_canonical, to_version
from glbc.composite.schema import CompositeRegistry

WireObject = dict[str, Any]


class FakeCloud:
    """Fake compute API.

    Attributes:
        calls: every call made, as ``(method, kind, version, key)`` tuples.
        health: ``(backend service name, group)`` -> health response.
        node_tags: tags returned by ``get_node_tags``; node names when empty.
        network_endpoints: NEG key -> endpoint listing returned by
            ``list_network_endpoints``.
    """

    def __init__(
        self,
        registry: CompositeRegistry | None = None,
        project_id: str = "test-project",
        region: str = "us-central1",
        network_project_id: str = "",
        on_xpn: bool = False,
    ) -> None:
        self.project_id = project_id
        self.region = region
        self.network_project_id = network_project_id or project_id
        self.network_url = ResourceID(
            self.network_project_id, "networks", ResourceKey.global_key("default")
        ).self_link()
        self.on_xpn = on_xpn
        self.calls: list[tuple[str, str, Version | None, ResourceKey | None]] = []
        self.health: dict[tuple[str, str], WireObject] = {}
        self.node_tags: list[str] = []
        self.network_endpoints: dict[ResourceKey, list[WireObject]] = {}
        self._registry = registry
        self._objects: dict[tuple[str, ResourceKey], WireObject] = {}
        self._failures: dict[tuple[str, str, str], Exception] = {}

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def add(self, kind: str, key: ResourceKey, obj: WireObject) -> WireObject:
        """Store *obj* directly, without recording a call."""
        stored = copy.deepcopy(obj)
        stored.setdefault("name", key.name)
        stored.setdefault("selfLink", ResourceID(self.project_id, kind, key).self_link())
        if key.region:
            stored.setdefault("region", key.region)
        if key.zone:
            stored.setdefault("zone", key.zone)
        self._objects[(kind, key)] = stored
        return stored

    def remove(self, kind: str, key: ResourceKey) -> None:
        self._objects.pop((kind, key), None)

    def exists(self, kind: str, key: ResourceKey) -> bool:
        return (kind, key) in self._objects

    def stored(self, kind: str, key: ResourceKey) -> WireObject:
        return self._objects[(kind, key)]

    def fail(self, method: str, kind: str, exc: Exception, name: str = "") -> None:
        """Make *method* on *kind* (optionally only for *name*) raise *exc*."""
        self._failures[(method, kind, name)] = exc

    def clear_failures(self) -> None:
        self._failures.clear()

    def calls_for(self, method: str, kind: str | None = None) -> list[tuple[str, str, Version | None, ResourceKey | None]]:
        return [c for c in self.calls if c[0] == method and (kind is None or c[1] == kind)]

    def _check_failure(self, method: str, kind: str, name: str = "") -> None:
        exc = self._failures.get((method, kind, name)) or self._failures.get((method, kind, ""))
        if exc is not None:
            raise exc

    def _project(self, kind: str, obj: WireObject, version: Version) -> WireObject:
        if self._registry is None:
            return copy.deepcopy(obj)
        return to_version(self._registry, to_canonical(self._registry, kind, obj, version), version)

    def _has_fingerprint(self, kind: str) -> bool:
        if self._registry is None:
            return False
        schema = self._registry.schema(self._registry.type_for_kind(kind))
        return schema.field("fingerprint") is not None

    # ------------------------------------------------------------------
    # CloudAPI
    # ------------------------------------------------------------------

    async def get(self, kind: str, version: Version, key: ResourceKey) -> WireObject:
        self.calls.append(("get", kind, version, key))
        self._check_failure("get", kind, key.name)
        obj = self._objects.get((kind, key))
        if obj is None:
            raise gapi_exceptions.NotFound(f"{kind} {key} not found")
        return self._project(kind, obj, version)

    async def list(
        self,
        kind: str,
        version: Version,
        scope: KeyType,
        location: str = "",
    ) -> list[WireObject]:
        self.calls.append(("list", kind, version, None))
        self._check_failure("list", kind)
        items = []
        for (obj_kind, key), obj in sorted(self._objects.items(), key=lambda kv: (kv[0][0], kv[0][1])):
            if obj_kind != kind or key.type != scope:
                continue
            if scope != KeyType.GLOBAL and location and key.location != location:
                continue
            items.append(self._project(kind, obj, version))
        return items

    async def insert(self, kind: str, version: Version, key: ResourceKey, obj: WireObject) -> None:
        self.calls.append(("insert", kind, version, key))
        self._check_failure("insert", kind, key.name)
        if (kind, key) in self._objects:
            raise gapi_exceptions.Conflict(f"{kind} {key} already exists")
        stored = self.add(kind, key, obj)
        stored["selfLink"] = ResourceID(self.project_id, kind, key).self_link(version)
        if self._has_fingerprint(kind):
            stored["fingerprint"] = uuid.uuid4().hex[:12]

    async def update(self, kind: str, version: Version, key: ResourceKey, obj: WireObject) -> None:
        self.calls.append(("update", kind, version, key))
        self._check_failure("update", kind, key.name)
        if (kind, key) not in self._objects:
            raise gapi_exceptions.NotFound(f"{kind} {key} not found")
        previous = self._objects[(kind, key)]
        stored = self.add(kind, key, obj)
        stored["selfLink"] = previous.get("selfLink", stored["selfLink"])
        if self._has_fingerprint(kind):
            stored["fingerprint"] = uuid.uuid4().hex[:12]

    async def delete(self, kind: str, version: Version, key: ResourceKey) -> None:
        self.calls.append(("delete", kind, version, key))
        self._check_failure("delete", kind, key.name)
        if (kind, key) not in self._objects:
            raise gapi_exceptions.NotFound(f"{kind} {key} not found")
        del self._objects[(kind, key)]

    async def get_backend_service_health(
        self,
        version: Version,
        key: ResourceKey,
        group: str,
    ) -> WireObject:
        self.calls.append(("get_health", "backendServices", version, key))
        self._check_failure("get_health", "backendServices", key.name)
        return copy.deepcopy(self.health.get((key.name, group), {"healthStatus": []}))

    async def list_network_endpoints(self, version: Version, key: ResourceKey) -> list[WireObject]:
        self.calls.append(("list_network_endpoints", "networkEndpointGroups", version, key))
        self._check_failure("list_network_endpoints", "networkEndpointGroups", key.name)
        if ("networkEndpointGroups", key) not in self._objects:
            raise gapi_exceptions.NotFound(f"networkEndpointGroups {key} not found")
        return copy.deepcopy(self.network_endpoints.get(key, []))

    async def get_node_tags(self, node_names: list[str]) -> list[str]:
        self.calls.append(("get_node_tags", "instances", None, None))
        return list(self.node_tags) if self.node_tags else sorted(set(node_names))
