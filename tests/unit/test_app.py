"""Tests for application bootstrap and shutdown."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from glbc.app import Collaborators, GLBCApp, _ComponentError, load_collaborators, standalone_collaborators
from glbc.cloud.fake import FakeCloud
from glbc.events import KubeEventRecorder, LogEventRecorder
from glbc.models.config import APIConfig, ClusterConfig, GLBCConfig, LogConfig


@pytest.fixture(autouse=True)
def _no_kube(monkeypatch: pytest.MonkeyPatch) -> None:
    import kubernetes_asyncio.config as k8s_config

    monkeypatch.setattr(
        k8s_config, "load_incluster_config", MagicMock(side_effect=k8s_config.ConfigException("not in cluster"))
    )
    monkeypatch.setattr(
        k8s_config, "load_kube_config", AsyncMock(side_effect=k8s_config.ConfigException("no kubeconfig"))
    )


def _config(**overrides) -> GLBCConfig:
    config = GLBCConfig(
        cluster=ClusterConfig(uid="uid1", project_id="proj"),
        api=APIConfig(enabled=False),
        log=LogConfig(level="debug", json=False),
    )
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


class TestCollaborators:
    def test_standalone(self) -> None:
        collab = standalone_collaborators(_config())
        assert isinstance(collab.cloud, FakeCloud)
        assert collab.cloud.project_id == "proj"
        assert collab.ingress_lister.list() == []
        assert collab.has_synced()

    def test_load_by_path(self) -> None:
        collab = load_collaborators("glbc.app:standalone_collaborators", _config())
        assert isinstance(collab, Collaborators)

    @pytest.mark.parametrize("path", ["", "glbc.app", ":standalone_collaborators"])
    def test_bad_path(self, path: str) -> None:
        with pytest.raises(ValueError):
            load_collaborators(path, _config())

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            load_collaborators("glbc.nowhere:factory", _config())


class TestLifecycle:
    async def test_start_sync_stop(self) -> None:
        app = GLBCApp(config=_config())
        await app.start()
        try:
            assert app.running
            assert isinstance(app._recorder, LogEventRecorder)
            controller = app.firewall_controller
            assert controller is not None

            cloud = app._collaborators.cloud
            for _ in range(100):
                if cloud.calls_for("delete", "firewalls"):
                    break
                await asyncio.sleep(0.01)
            # no ingresses: the initial sync garbage-collects the rule
            assert cloud.calls_for("delete", "firewalls")
        finally:
            await app.stop()

        assert not app.running
        assert app.firewall_controller is None

    async def test_stop_is_idempotent(self) -> None:
        app = GLBCApp(config=_config())
        await app.stop()
        await app.start()
        await app.stop()
        await app.stop()

    async def test_bad_factory_is_fatal(self) -> None:
        app = GLBCApp(config=_config(collaborators_factory="glbc.nowhere:factory"))
        with pytest.raises(_ComponentError) as exc_info:
            await app.start()
        assert exc_info.value.component == "collaborators"
        await app.stop()

    async def test_register_hook_receives_controller(self, monkeypatch: pytest.MonkeyPatch) -> None:
        registered = []

        def factory(config: GLBCConfig) -> Collaborators:
            collab = standalone_collaborators(config)
            collab.register = registered.append
            return collab

        monkeypatch.setattr("glbc.app.standalone_collaborators", factory)
        app = GLBCApp(config=_config())
        await app.start()
        try:
            assert registered == [app.firewall_controller]
        finally:
            await app.stop()


class TestKubeClient:
    async def test_recorder_client_closed_on_stop(self, monkeypatch: pytest.MonkeyPatch) -> None:
        import kubernetes_asyncio.client as k8s_client
        import kubernetes_asyncio.config as k8s_config

        api_client = MagicMock()
        api_client.close = AsyncMock()
        core_v1 = MagicMock(return_value=MagicMock())
        monkeypatch.setattr(k8s_config, "load_incluster_config", MagicMock())
        monkeypatch.setattr(k8s_client, "ApiClient", MagicMock(return_value=api_client))
        monkeypatch.setattr(k8s_client, "CoreV1Api", core_v1)

        app = GLBCApp(config=_config())
        await app.start()
        assert isinstance(app._recorder, KubeEventRecorder)
        core_v1.assert_called_once_with(api_client)

        await app.stop()
        api_client.close.assert_awaited_once()

        # a second stop does not close it again
        await app.stop()
        api_client.close.assert_awaited_once()
