"""Tests for environment-driven configuration."""

from __future__ import annotations

import os

import pytest

from glbc.config import load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("GLBC_"):
            monkeypatch.delenv(key)


class TestDefaults:
    def test_defaults(self) -> None:
        config = load_config()
        assert config.cluster.uid == "cluster"
        assert config.cluster.region == "us-central1"
        assert config.features.enable_l7_ilb is False
        assert config.firewall.node_port_ranges == ["30000-32767"]
        assert config.firewall.source_ranges == ["130.211.0.0/22", "35.191.0.0/16"]
        assert config.backends.default_backend_service == "kube-system/default-http-backend"
        assert config.queue.base_delay == 0.5
        assert config.api.port == 8080
        assert config.log.level == "info"
        assert config.collaborators_factory == "glbc.app:standalone_collaborators"


class TestOverrides:
    def test_values_read_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GLBC_CLUSTER_UID", "abc123")
        monkeypatch.setenv("GLBC_FIREWALL_NAME", "fw")
        monkeypatch.setenv("GLBC_ON_XPN", "yes")
        monkeypatch.setenv("GLBC_ENABLE_L7_ILB", "true")
        monkeypatch.setenv("GLBC_NODE_PORT_RANGES", "30000-30100, 31000")
        monkeypatch.setenv("GLBC_SOURCE_RANGES", "10.0.0.0/8")
        monkeypatch.setenv("GLBC_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("GLBC_API_ENABLED", "false")

        config = load_config()
        assert config.cluster.uid == "abc123"
        assert config.cluster.firewall_name == "fw"
        assert config.cluster.on_xpn is True
        assert config.features.enable_l7_ilb is True
        assert config.firewall.node_port_ranges == ["30000-30100", "31000"]
        assert config.firewall.source_ranges == ["10.0.0.0/8"]
        assert config.log.level == "debug"
        assert config.api.enabled is False

    @pytest.mark.parametrize(
        ("key", "value", "attr", "expected"),
        [
            ("API_PORT", "80", "port", 1024),
            ("API_PORT", "70000", "port", 65535),
        ],
    )
    def test_port_clamped(self, monkeypatch: pytest.MonkeyPatch, key: str, value: str, attr: str, expected: int) -> None:
        monkeypatch.setenv(f"GLBC_{key}", value)
        assert getattr(load_config().api, attr) == expected

    def test_delays_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GLBC_QUEUE_BASE_DELAY", "0")
        monkeypatch.setenv("GLBC_QUEUE_MAX_DELAY", "99999")
        monkeypatch.setenv("GLBC_STORE_SYNC_POLL_PERIOD", "-1")
        queue = load_config().queue
        assert queue.base_delay == 0.01
        assert queue.max_delay == 3600.0
        assert queue.store_sync_poll_period == 0.0


class TestValidation:
    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("LOG_LEVEL", "verbose"),
            ("NODE_PORT_RANGES", "32767-30000"),
            ("NODE_PORT_RANGES", "0-100"),
            ("NODE_PORT_RANGES", "abc"),
            ("SOURCE_RANGES", "10.0.0.0/33"),
            ("DEFAULT_BACKEND_SERVICE", "no-namespace"),
            ("DEFAULT_BACKEND_SERVICE", "/name"),
            ("API_PORT", "not-a-number"),
        ],
    )
    def test_invalid_values(self, monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
        monkeypatch.setenv(f"GLBC_{key}", value)
        with pytest.raises(ValueError):
            load_config()
