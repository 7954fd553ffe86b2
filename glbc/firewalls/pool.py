"""The single L7 firewall rule a cluster owns."""

from __future__ import annotations

import structlog
from google.api_core import exceptions as gapi_exceptions

from glbc.cloud.api import is_forbidden, is_not_found
from glbc.cloud.meta import ResourceKey, ResourceKind, Version
from glbc.composite.cloud import CompositeCloud
from glbc.composite.types import Firewall, FirewallAllowed
from glbc.errors import FirewallXPNError
from glbc.utils.namer import Namer

_log = structlog.get_logger(component="firewalls.pool")

# Source ranges of Google load balancer proxies and health checkers.
LB_SOURCE_RANGES = ("130.211.0.0/22", "35.191.0.0/16")
DEFAULT_NODE_PORT_RANGE = "30000-32767"

_DESCRIPTION = "GCE L7 firewall rule"
_PROTOCOL = "tcp"


class FirewallRules:
    """Creates, updates and removes the cluster's L7 firewall rule.

    Args:
        cloud: composite cloud adapter.
        namer: names the rule.
        src_ranges: source ranges always allowed (health checkers, proxies).
        port_ranges: ports always allowed, typically the node port range.
    """

    def __init__(
        self,
        cloud: CompositeCloud,
        namer: Namer,
        src_ranges: list[str] | None = None,
        port_ranges: list[str] | None = None,
    ) -> None:
        self._cloud = cloud
        self._namer = namer
        self._src_ranges = list(src_ranges if src_ranges is not None else LB_SOURCE_RANGES)
        self._port_ranges = list(port_ranges if port_ranges is not None else [DEFAULT_NODE_PORT_RANGE])

    @property
    def name(self) -> str:
        return self._namer.firewall_rule()

    async def sync(
        self,
        node_names: list[str],
        additional_ports: list[str] | None = None,
        additional_ranges: list[str] | None = None,
    ) -> None:
        """Make the rule match the given nodes, ports and ranges.

        Raises:
            FirewallXPNError: the rule must be changed in the Shared-VPC host
                project; the error message holds the gcloud command to do so.
        """
        name = self.name
        key = ResourceKey.global_key(name)
        existing = await self._get(key)

        target_tags = sorted(set(await self._cloud.cloud.get_node_tags(node_names)))
        ranges = sorted(set(self._src_ranges) | {r for r in additional_ranges or [] if r})
        ports = sorted(set(self._port_ranges) | {p for p in additional_ports or [] if p})
        expected = Firewall(
            name=name,
            description=_DESCRIPTION,
            network=self._cloud.cloud.network_url,
            source_ranges=ranges,
            target_tags=target_tags,
            allowed=[FirewallAllowed(ip_protocol=_PROTOCOL, ports=ports)],
        )

        if existing is None:
            _log.info("firewall_creating", name=name, ports=ports, ranges=ranges)
            await self._write(expected, key, create=True)
            return
        if rules_equal(expected, existing):
            _log.debug("firewall_up_to_date", name=name)
            return
        _log.info("firewall_updating", name=name, ports=ports, ranges=ranges)
        await self._write(expected, key, create=False)

    async def gc(self) -> None:
        """Delete the rule. Missing is fine; a forbidden delete on XPN is logged."""
        name = self.name
        _log.info("firewall_deleting", name=name)
        try:
            await self._cloud.delete(ResourceKind.FIREWALL, Version.GA, ResourceKey.global_key(name))
        except gapi_exceptions.GoogleAPICallError as exc:
            if is_not_found(exc):
                _log.info("firewall_already_deleted", name=name)
                return
            if is_forbidden(exc) and self._cloud.cloud.on_xpn:
                _log.info(
                    "firewall_delete_needs_network_admin",
                    name=name,
                    command=gcloud_delete_cmd(name, self._cloud.cloud.network_project_id),
                )
                return
            raise

    async def _get(self, key: ResourceKey) -> Firewall | None:
        try:
            return await self._cloud.get(ResourceKind.FIREWALL, Version.GA, key)
        except gapi_exceptions.GoogleAPICallError as exc:
            if is_not_found(exc):
                return None
            raise

    async def _write(self, fw: Firewall, key: ResourceKey, create: bool) -> None:
        try:
            if create:
                await self._cloud.create(fw, key)
            else:
                await self._cloud.update(fw, key)
        except gapi_exceptions.GoogleAPICallError as exc:
            if is_forbidden(exc) and self._cloud.cloud.on_xpn:
                cmd = gcloud_write_cmd(fw, self._cloud.cloud.network_project_id, create)
                _log.info("firewall_change_needs_network_admin", name=fw.name, command=cmd)
                raise FirewallXPNError(f"Firewall change required by network admin: `{cmd}`", exc) from exc
            raise


def rules_equal(a: Firewall, b: Firewall) -> bool:
    """Compare the parts of two rules this pool manages, order-insensitively."""
    return (
        set(a.source_ranges) == set(b.source_ranges)
        and set(a.target_tags) == set(b.target_tags)
        and _allowed(a) == _allowed(b)
    )


def _allowed(fw: Firewall) -> set[tuple[str, str]]:
    return {(rule.ip_protocol.lower(), port) for rule in fw.allowed for port in rule.ports}


def gcloud_write_cmd(fw: Firewall, project: str, create: bool) -> str:
    """gcloud invocation that applies *fw* from the host project."""
    allow = ",".join(f"{rule.ip_protocol}:{port}" for rule in fw.allowed for port in rule.ports)
    parts = ["gcloud compute firewall-rules", "create" if create else "update", fw.name]
    if create:
        parts.append(f"--network {fw.network.rsplit('/', 1)[-1]}")
    parts += [
        f'--description "{fw.description}"',
        f"--allow {allow}",
        f"--source-ranges {','.join(fw.source_ranges)}",
        f"--target-tags {','.join(fw.target_tags)}",
        f"--project {project}",
    ]
    return " ".join(parts)


def gcloud_delete_cmd(name: str, project: str) -> str:
    return f"gcloud compute firewall-rules delete {name} --project {project}"
