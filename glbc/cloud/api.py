"""Cloud API collaborator interface and error classification.

The concrete client (HTTP transport, per-call retry and timeout) lives
outside this package. Everything here talks to it through ``CloudAPI``:
wire objects in and out are plain JSON dicts, failures are
``google.api_core.exceptions.GoogleAPICallError`` subclasses.
"""

from __future__ import annotations

from typing import Any, Protocol

from google.api_core import exceptions as gapi_exceptions

from glbc.cloud.meta import KeyType, ResourceKey, Version

WireObject = dict[str, Any]


class CloudAPI(Protocol):
    """Per-kind CRUD at each API version and scope."""

    project_id: str
    region: str
    network_url: str
    network_project_id: str
    on_xpn: bool

    async def get(self, kind: str, version: Version, key: ResourceKey) -> WireObject: ...

    async def list(
        self,
        kind: str,
        version: Version,
        scope: KeyType,
        location: str = "",
    ) -> list[WireObject]: ...

    async def insert(self, kind: str, version: Version, key: ResourceKey, obj: WireObject) -> None: ...

    async def update(self, kind: str, version: Version, key: ResourceKey, obj: WireObject) -> None: ...

    async def delete(self, kind: str, version: Version, key: ResourceKey) -> None: ...

    async def get_backend_service_health(
        self,
        version: Version,
        key: ResourceKey,
        group: str,
    ) -> WireObject: ...

    async def list_network_endpoints(self, version: Version, key: ResourceKey) -> list[WireObject]:
        """Endpoints of the zonal NEG *key*, listed with health status shown."""
        ...

    async def get_node_tags(self, node_names: list[str]) -> list[str]: ...


def is_not_found(exc: BaseException) -> bool:
    """True if *exc* is a cloud 404."""
    if isinstance(exc, gapi_exceptions.NotFound):
        return True
    return isinstance(exc, gapi_exceptions.GoogleAPICallError) and exc.code == 404


def is_forbidden(exc: BaseException) -> bool:
    """True if *exc* is a cloud 403."""
    if isinstance(exc, gapi_exceptions.Forbidden):
        return True
    return isinstance(exc, gapi_exceptions.GoogleAPICallError) and exc.code == 403
