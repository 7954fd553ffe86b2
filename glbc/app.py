"""Application bootstrap for glbc.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client / event recorder
              → collaborators → firewall pool → firewall controller
              → queue worker → REST

Shutdown stops components in reverse startup order. The cloud client, the
ingress translator and the informer listers are supplied by a collaborators
factory named in ``GLBC_COLLABORATORS_FACTORY``; the default one runs
against an in-memory cloud with no ingresses.
"""

from __future__ import annotations

import asyncio
import importlib
import signal
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from glbc.cloud.api import CloudAPI
from glbc.cloud.fake import FakeCloud
from glbc.composite.cloud import CompositeCloud
from glbc.composite.schema import default_registry
from glbc.config import load_config
from glbc.events import EventRecorder, KubeEventRecorder, LogEventRecorder
from glbc.firewalls.controller import QUEUE_KEY, FirewallController, IngressLister, NodeLister, Translator
from glbc.firewalls.pool import FirewallRules
from glbc.models.config import GLBCConfig
from glbc.observability.logging import bind_cluster, get_logger, setup_logging
from glbc.utils.namer import Namer
from glbc.utils.serviceport import ServicePort

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


@dataclass
class Collaborators:
    """External pieces the controller is wired to.

    ``register`` receives the firewall controller once it exists, so an
    informer layer can attach its event handlers.
    """

    cloud: CloudAPI
    translator: Translator
    ingress_lister: IngressLister
    node_lister: NodeLister
    has_synced: Callable[[], bool]
    register: Callable[[FirewallController], None] | None = None


class _NoIngresses:
    def list(self) -> list[dict[str, Any]]:
        return []


class _NoNodes:
    def ready(self) -> list[str]:
        return []


class _NoPorts:
    def translate_ingress(self, ing: dict[str, Any]) -> list[ServicePort]:
        return []


def standalone_collaborators(config: GLBCConfig) -> Collaborators:
    """In-memory cloud and empty caches; nothing outside the process is touched."""
    cloud = FakeCloud(
        registry=default_registry(),
        project_id=config.cluster.project_id or "standalone",
        region=config.cluster.region,
        network_project_id=config.cluster.network_project_id,
        on_xpn=config.cluster.on_xpn,
    )
    return Collaborators(
        cloud=cloud,
        translator=_NoPorts(),
        ingress_lister=_NoIngresses(),
        node_lister=_NoNodes(),
        has_synced=lambda: True,
    )


def load_collaborators(path: str, config: GLBCConfig) -> Collaborators:
    """Import ``module:function`` and call it with *config*."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Invalid collaborators factory {path!r}, want 'module:function'")
    factory = getattr(importlib.import_module(module_name), attr)
    return factory(config)


class GLBCApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self, config: GLBCConfig | None = None) -> None:
        self.config: GLBCConfig | None = config

        self._k8s_client: Any | None = None
        self._recorder: EventRecorder | None = None
        self._collaborators: Collaborators | None = None
        self._cloud: CompositeCloud | None = None
        self._firewall_pool: FirewallRules | None = None
        self._firewall_controller: FirewallController | None = None
        self._rest_server: Any | None = None

        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def firewall_controller(self) -> FirewallController | None:
        return self._firewall_controller

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level, self.config.log.json)
        bind_cluster(self.config.cluster.uid, self.config.cluster.project_id)
        self._log = get_logger("app")
        self._log.info("glbc starting", version=_glbc_version())

        # --- 3. Kubernetes client / event recorder ----------------------
        await self._start_k8s_client()

        # --- 4. Collaborators -------------------------------------------
        self._start_collaborators()

        # --- 5. Firewall pool + controller ------------------------------
        self._start_firewall_controller()

        # --- 6. Queue worker --------------------------------------------
        self._start_queue_worker()

        # --- 7. REST API ------------------------------------------------
        if self.config.api.enabled:
            await self._start_rest()

        self._running = True
        self._log.info("glbc started", port=self.config.api.port)

    async def _start_k8s_client(self) -> None:
        """Event recorder on the kubernetes-asyncio client; logging-only without a cluster."""
        assert self._log is not None
        try:
            import kubernetes_asyncio.config as k8s_config
            from kubernetes_asyncio import client as k8s_client

            try:
                k8s_config.load_incluster_config()
                self._log.info("k8s client configured from in-cluster service account")
            except k8s_config.ConfigException:
                await k8s_config.load_kube_config()
                self._log.info("k8s client configured from kubeconfig")
            self._k8s_client = k8s_client.ApiClient()
            self._recorder = KubeEventRecorder(k8s_client.CoreV1Api(self._k8s_client))
        except Exception as exc:
            # Events are informational; the controller runs without them
            self._log.warning("k8s client unavailable; events will only be logged", error=str(exc))
            self._recorder = LogEventRecorder()

    def _start_collaborators(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            self._collaborators = load_collaborators(self.config.collaborators_factory, self.config)
            self._cloud = CompositeCloud(self._collaborators.cloud, default_registry())
            self._log.info("collaborators loaded", factory=self.config.collaborators_factory)
        except Exception as exc:
            raise _ComponentError("collaborators", exc) from exc

    def _start_firewall_controller(self) -> None:
        assert self._log is not None
        assert self.config is not None
        assert self._collaborators is not None
        assert self._cloud is not None
        assert self._recorder is not None
        try:
            namer = Namer(self.config.cluster.uid, self.config.cluster.firewall_name)
            self._firewall_pool = FirewallRules(
                self._cloud,
                namer,
                src_ranges=self.config.firewall.source_ranges,
                port_ranges=self.config.firewall.node_port_ranges,
            )
            collab = self._collaborators
            self._firewall_controller = FirewallController(
                cloud=self._cloud,
                firewall_pool=self._firewall_pool,
                translator=collab.translator,
                ingress_lister=collab.ingress_lister,
                node_lister=collab.node_lister,
                recorder=self._recorder,
                has_synced=collab.has_synced,
                enable_l7_ilb=self.config.features.enable_l7_ilb,
                store_sync_poll_period=self.config.queue.store_sync_poll_period,
                queue_base_delay=self.config.queue.base_delay,
                queue_max_delay=self.config.queue.max_delay,
            )
            if collab.register is not None:
                collab.register(self._firewall_controller)
            self._log.info("firewall controller started", rule=self._firewall_pool.name)
        except Exception as exc:
            raise _ComponentError("firewall_controller", exc) from exc

    def _start_queue_worker(self) -> None:
        assert self._log is not None
        assert self._firewall_controller is not None
        task = asyncio.create_task(self._firewall_controller.run(), name="firewall-queue")
        self._background_tasks.append(task)
        # Initial sync so the rule converges without waiting for an event
        self._firewall_controller.queue.enqueue(QUEUE_KEY)
        self._log.info("firewall queue worker started")

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        assert self._cloud is not None
        try:
            import uvicorn

            from glbc.api import create_app

            fastapi_app = create_app(cloud=self._cloud, config=self.config)
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise _ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop all components in reverse startup order.

        The firewall queue is shut down before its task is awaited, so a sync
        already in flight completes.
        """
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("glbc shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True

        if self._firewall_controller is not None:
            try:
                await asyncio.wait_for(self._firewall_controller.shutdown(), timeout=_SHUTDOWN_GRACE_SECONDS)
            except TimeoutError:
                log.warning("component stop timed out", component="firewall_controller")

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        self._rest_server = None
        self._firewall_controller = None
        self._firewall_pool = None
        await self._stop_k8s_client()

        log.info("glbc stopped")

    async def _stop_k8s_client(self) -> None:
        """Close the ApiClient the event recorder posts through."""
        if self._k8s_client is None:
            return
        log = self._log or get_logger("app")
        try:
            await self._k8s_client.close()
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._k8s_client = None
        self._recorder = None


def _glbc_version() -> str:
    from glbc import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = GLBCApp()
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        while app.running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())
