"""CRUD over backend services, each read and written at the API version
its enabled features need.
"""

from __future__ import annotations

import structlog
from google.api_core import exceptions as gapi_exceptions

from glbc.cloud.api import is_not_found
from glbc.cloud.meta import KeyType, ResourceKind, Version
from glbc.composite.cloud import CompositeCloud
from glbc.composite.types import BackendService
from glbc.errors import GLBCError
from glbc.features.l7ilb import l7ilb_version
from glbc.features.lbpolicy import ensure_locality_lb_policy
from glbc.features.versions import (
    is_lower_version,
    set_description,
    version_from_description,
    version_from_service_port,
)
from glbc.observability.metrics import backend_operations_total
from glbc.utils.namer import Namer
from glbc.utils.serviceport import ServicePort

_log = structlog.get_logger(component="backends.pool")

HEALTH_UNKNOWN = "Unknown"
_ILB_LOAD_BALANCING_SCHEME = "INTERNAL_MANAGED"


def ensure_description(be: BackendService, sp: ServicePort) -> bool:
    """Write the expected description onto *be*; True if it changed."""
    desc = sp.description()
    set_description(desc, sp)
    wanted = desc.to_string()
    if be.description == wanted:
        return False
    be.description = wanted
    return True


class Backends:
    """Backend services owned by one cluster.

    Args:
        cloud: composite cloud adapter.
        namer: names backends and decides cluster ownership.
        enable_l7_ilb: also list regional backend services.
    """

    def __init__(self, cloud: CompositeCloud, namer: Namer, enable_l7_ilb: bool = False) -> None:
        self._cloud = cloud
        self._namer = namer
        self._enable_l7_ilb = enable_l7_ilb

    async def create(self, sp: ServicePort, hc_link: str) -> BackendService:
        """Insert the backend service for *sp* and return it as stored.

        The object is read back after the insert so the returned copy carries
        the fingerprint later updates need.
        """
        name = sp.backend_name(self._namer)
        version = version_from_service_port(sp)
        key = self._cloud.create_key(name, sp.l7_ilb_enabled)
        be = BackendService(
            name=name,
            protocol=sp.protocol,
            port=sp.node_port,
            port_name=self._namer.named_port(sp.node_port),
            health_checks=[hc_link] if hc_link else [],
            region=key.region,
            version=version,
        )
        if sp.l7_ilb_enabled:
            be.load_balancing_scheme = _ILB_LOAD_BALANCING_SCHEME
        ensure_description(be, sp)

        _log.info("backend_service_creating", name=name, version=version.value, key=str(key))
        await self._cloud.create(be, key)
        backend_operations_total.labels(operation="create", version=version.value).inc()
        return await self.get(name, version, sp.l7_ilb_enabled)

    async def update(self, be: BackendService) -> None:
        """Write *be* back at the version its description requires."""
        be.version = version_from_description(be.description)
        key = self._cloud.create_key(be.name, be.scope == KeyType.REGIONAL)
        _log.info("backend_service_updating", name=be.name, version=be.version.value, key=str(key))
        await self._cloud.update(be, key)
        backend_operations_total.labels(operation="update", version=be.version.value).inc()

    async def get(self, name: str, version: Version, regional: bool) -> BackendService:
        """Read *name* at *version*, or at a less stable one if it needs it.

        A resource whose description records a feature the requested track
        lacks is read again at the required track, so its feature fields
        survive a read-modify-write.
        """
        key = self._cloud.create_key(name, regional)
        be: BackendService = await self._cloud.get(ResourceKind.BACKEND_SERVICE, version, key)
        required = version_from_description(be.description)
        if is_lower_version(version, required):
            _log.debug("backend_service_refetch", name=name, requested=version.value, required=required.value)
            be = await self._cloud.get(ResourceKind.BACKEND_SERVICE, required, key)
        backend_operations_total.labels(operation="get", version=be.version.value).inc()
        return be

    async def delete(self, name: str, regional: bool) -> None:
        """Delete *name*; an already missing backend service is fine."""
        version = l7ilb_version() if regional else Version.GA
        key = self._cloud.create_key(name, regional)
        _log.info("backend_service_deleting", name=name, key=str(key))
        try:
            await self._cloud.delete(ResourceKind.BACKEND_SERVICE, version, key)
        except gapi_exceptions.GoogleAPICallError as exc:
            if not is_not_found(exc):
                raise
            _log.debug("backend_service_already_deleted", name=name)
        backend_operations_total.labels(operation="delete", version=version.value).inc()

    async def health(self, name: str, version: Version, regional: bool) -> str:
        """Health state of the first backend group, ``"Unknown"`` if unavailable."""
        try:
            be = await self.get(name, version, regional)
            if not be.backends:
                return HEALTH_UNKNOWN
            key = self._cloud.create_key(name, regional)
            resp = await self._cloud.cloud.get_backend_service_health(be.version, key, be.backends[0].group)
        except (gapi_exceptions.GoogleAPICallError, GLBCError) as exc:
            _log.debug("backend_service_health_unknown", name=name, error=str(exc))
            return HEALTH_UNKNOWN

        statuses = resp.get("healthStatus") or []
        if not statuses or not isinstance(statuses[0], dict):
            return HEALTH_UNKNOWN
        return statuses[0].get("healthState") or HEALTH_UNKNOWN

    async def list(self) -> list[BackendService]:
        """Every backend service whose name belongs to this cluster."""
        backends = await self._cloud.list(ResourceKind.BACKEND_SERVICE, Version.GA, KeyType.GLOBAL)
        if self._enable_l7_ilb:
            backends += await self._cloud.list(
                ResourceKind.BACKEND_SERVICE, l7ilb_version(), KeyType.REGIONAL, self._cloud.cloud.region
            )
        return [be for be in backends if self._namer.name_belongs_to_cluster(be.name)]

    async def ensure(self, sp: ServicePort, hc_link: str) -> BackendService:
        """Get or create the backend service for *sp* and converge it.

        Description, locality policy and health check are brought in line
        with *sp*; the cloud is only written when one of them changed.
        """
        name = sp.backend_name(self._namer)
        version = version_from_service_port(sp)
        try:
            be = await self.get(name, version, sp.l7_ilb_enabled)
        except gapi_exceptions.GoogleAPICallError as exc:
            if not is_not_found(exc):
                raise
            return await self.create(sp, hc_link)

        changed = ensure_description(be, sp)
        changed = ensure_locality_lb_policy(sp, be) or changed
        if hc_link and be.health_checks != [hc_link]:
            be.health_checks = [hc_link]
            changed = True
        if not changed:
            return be

        await self.update(be)
        return await self.get(name, version, sp.l7_ilb_enabled)
