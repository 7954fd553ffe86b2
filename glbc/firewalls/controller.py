"""Firewall controller.

Keeps the cluster's single L7 firewall rule in line with every GCE ingress.
All triggers enqueue the same key, so any burst of ingress and service
changes collapses into one pending sync that recomputes the rule from
current state.
"""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Callable
from typing import Any, Protocol

import structlog

from glbc.composite.cloud import CompositeCloud
from glbc.errors import CachesNotSyncedError, FirewallXPNError
from glbc.events import EVENT_TYPE_NORMAL, EventRecorder
from glbc.features.l7ilb import ilb_subnet_source_range
from glbc.firewalls.pool import FirewallRules
from glbc.observability.metrics import firewall_syncs_total, firewall_xpn_events_total
from glbc.utils.ingress import (
    is_gce_ingress,
    is_gce_l7ilb_ingress,
    is_gce_multi_cluster_ingress,
    namespaced_name,
    references_service,
    suppress_firewall_xpn_error,
)
from glbc.utils.serviceport import ServicePort, gather_endpoint_ports, gather_node_ports
from glbc.utils.taskqueue import PeriodicTaskQueue

_log = structlog.get_logger(component="firewalls.controller")

# The only key ever enqueued: there is one firewall rule per cluster.
QUEUE_KEY = "queueKey"
XPN_EVENT_REASON = "XPN"


class Translator(Protocol):
    def translate_ingress(self, ing: dict[str, Any]) -> list[ServicePort]: ...


class IngressLister(Protocol):
    def list(self) -> list[dict[str, Any]]: ...


class NodeLister(Protocol):
    def ready(self) -> list[str]: ...


class FirewallController:
    """Level-triggered reconciler for the cluster firewall rule.

    Args:
        cloud: composite cloud adapter, for the ILB subnet lookup.
        firewall_pool: applies the rule.
        translator: ingress -> backend service ports.
        ingress_lister: current ingresses from the informer cache.
        node_lister: names of ready nodes.
        recorder: where XPN events go.
        has_synced: True once the informer caches are warm.
        enable_l7_ilb: serve ``gce-internal`` ingresses.
        store_sync_poll_period: pause before failing a sync on cold caches.
    """

    def __init__(
        self,
        cloud: CompositeCloud,
        firewall_pool: FirewallRules,
        translator: Translator,
        ingress_lister: IngressLister,
        node_lister: NodeLister,
        recorder: EventRecorder,
        has_synced: Callable[[], bool],
        enable_l7_ilb: bool = False,
        store_sync_poll_period: float = 5.0,
        queue_base_delay: float = 0.5,
        queue_max_delay: float = 300.0,
    ) -> None:
        self._cloud = cloud
        self._firewall_pool = firewall_pool
        self._translator = translator
        self._ingress_lister = ingress_lister
        self._node_lister = node_lister
        self._recorder = recorder
        self._has_synced = has_synced
        self._enable_l7_ilb = enable_l7_ilb
        self._store_sync_poll_period = store_sync_poll_period
        self.queue = PeriodicTaskQueue(
            "firewall", self.sync, base_delay=queue_base_delay, max_delay=queue_max_delay
        )

    # ------------------------------------------------------------------
    # Informer event handlers
    # ------------------------------------------------------------------

    def _is_watched(self, ing: dict[str, Any]) -> bool:
        return is_gce_ingress(ing, self._enable_l7_ilb) or is_gce_multi_cluster_ingress(ing)

    def on_ingress_add(self, ing: dict[str, Any]) -> None:
        if self._is_watched(ing):
            self.queue.enqueue(QUEUE_KEY)

    def on_ingress_update(self, old: dict[str, Any], cur: dict[str, Any]) -> None:
        if self._is_watched(cur):
            self.queue.enqueue(QUEUE_KEY)

    def on_ingress_delete(self, ing: dict[str, Any]) -> None:
        if self._is_watched(ing):
            self.queue.enqueue(QUEUE_KEY)

    def on_service_add(self, svc: dict[str, Any]) -> None:
        if self._referenced(svc):
            self.queue.enqueue(QUEUE_KEY)

    def on_service_update(self, old: dict[str, Any], cur: dict[str, Any]) -> None:
        if old != cur and self._referenced(cur):
            self.queue.enqueue(QUEUE_KEY)

    def _referenced(self, svc: dict[str, Any]) -> bool:
        return any(references_service(ing, svc) for ing in self._ingress_lister.list())

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def to_svc_ports(self, ings: list[dict[str, Any]]) -> list[ServicePort]:
        """Union of backend service ports across *ings*.

        Ports behind an internal ingress are marked as L7-ILB backends.
        """
        ports: list[ServicePort] = []
        for ing in ings:
            svc_ports = self._translator.translate_ingress(ing)
            if self._enable_l7_ilb and is_gce_l7ilb_ingress(ing):
                svc_ports = [dataclasses.replace(sp, l7_ilb_enabled=True) for sp in svc_ports]
            ports.extend(svc_ports)
        return ports

    async def sync(self, key: str) -> None:
        """Recompute and apply the firewall rule.

        Raises:
            CachesNotSyncedError: informer caches are still cold.
        """
        if not self._has_synced():
            await asyncio.sleep(self._store_sync_poll_period)
            firewall_syncs_total.labels(result="not_synced").inc()
            raise CachesNotSyncedError("waiting for stores to sync")
        _log.debug("firewall_sync", key=key)

        gce_ingresses = [ing for ing in self._ingress_lister.list() if is_gce_ingress(ing, self._enable_l7_ilb)]
        if not gce_ingresses:
            await self._firewall_pool.gc()
            firewall_syncs_total.labels(result="gc").inc()
            return

        svc_ports = self.to_svc_ports(gce_ingresses)
        node_names = self._node_lister.ready()
        ports = gather_node_ports(svc_ports) + gather_endpoint_ports(svc_ports)

        additional_ranges: list[str] = []
        if self._enable_l7_ilb and any(is_gce_l7ilb_ingress(ing) for ing in gce_ingresses):
            additional_ranges.append(await ilb_subnet_source_range(self._cloud, self._cloud.cloud.region))

        try:
            await self._firewall_pool.sync(node_names, ports, additional_ranges)
        except FirewallXPNError as exc:
            await self._record_xpn(gce_ingresses, exc)
            firewall_syncs_total.labels(result="xpn").inc()
            return
        except Exception:
            firewall_syncs_total.labels(result="error").inc()
            raise
        firewall_syncs_total.labels(result="success").inc()

    async def _record_xpn(self, ingresses: list[dict[str, Any]], exc: FirewallXPNError) -> None:
        for ing in ingresses:
            if suppress_firewall_xpn_error(ing):
                continue
            await self._recorder.record(ing, EVENT_TYPE_NORMAL, XPN_EVENT_REASON, exc.message)
            firewall_xpn_events_total.inc()
            _log.info("firewall_xpn_event", ingress=namespaced_name(ing))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> None:
        try:
            await self.queue.run()
        finally:
            _log.info("firewall_controller_stopped")

    async def shutdown(self) -> None:
        _log.info("firewall_controller_shutting_down")
        await self.queue.shutdown()
