"""Configuration loading from environment variables."""

from __future__ import annotations

import ipaddress
import os
import re

from glbc.models.config import (
    APIConfig,
    BackendPoolConfig,
    ClusterConfig,
    FeatureConfig,
    FirewallConfig,
    GLBCConfig,
    LogConfig,
    QueueConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"GLBC_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None, max_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str, default: list[str]) -> list[str]:
    raw = _env(key, "")
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_port_ranges(values: list[str]) -> list[str]:
    for value in values:
        if not re.match(r"^[0-9]{1,5}(-[0-9]{1,5})?$", value):
            raise ValueError(f"Invalid port range: {value}")
        bounds = [int(p) for p in value.split("-")]
        if any(p < 1 or p > 65535 for p in bounds) or bounds != sorted(bounds):
            raise ValueError(f"Invalid port range: {value}")
    return values


def _validate_cidrs(values: list[str]) -> list[str]:
    for value in values:
        try:
            ipaddress.ip_network(value, strict=False)
        except ValueError as exc:
            raise ValueError(f"Invalid source range: {value}") from exc
    return values


def _validate_service_name(value: str) -> str:
    if value.count("/") != 1 or value.startswith("/") or value.endswith("/"):
        raise ValueError(f"Invalid default backend service (want namespace/name): {value}")
    return value


def load_config() -> GLBCConfig:
    """Load configuration from GLBC_* environment variables."""
    defaults_fw = FirewallConfig()
    return GLBCConfig(
        cluster=ClusterConfig(
            uid=_env("CLUSTER_UID", "cluster"),
            firewall_name=_env("FIREWALL_NAME", ""),
            project_id=_env("PROJECT_ID", ""),
            region=_env("REGION", "us-central1"),
            network_project_id=_env("NETWORK_PROJECT_ID", ""),
            on_xpn=_env_bool("ON_XPN", False),
        ),
        features=FeatureConfig(
            enable_l7_ilb=_env_bool("ENABLE_L7_ILB", False),
        ),
        firewall=FirewallConfig(
            node_port_ranges=_validate_port_ranges(_env_list("NODE_PORT_RANGES", defaults_fw.node_port_ranges)),
            source_ranges=_validate_cidrs(_env_list("SOURCE_RANGES", defaults_fw.source_ranges)),
        ),
        backends=BackendPoolConfig(
            default_backend_service=_validate_service_name(
                _env("DEFAULT_BACKEND_SERVICE", "kube-system/default-http-backend")
            ),
        ),
        queue=QueueConfig(
            base_delay=_env_float("QUEUE_BASE_DELAY", 0.5, min_val=0.01, max_val=60.0),
            max_delay=_env_float("QUEUE_MAX_DELAY", 300.0, min_val=1.0, max_val=3600.0),
            store_sync_poll_period=_env_float("STORE_SYNC_POLL_PERIOD", 5.0, min_val=0.0, max_val=60.0),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            json=_env_bool("LOG_JSON", True),
        ),
        collaborators_factory=_env("COLLABORATORS_FACTORY", "glbc.app:standalone_collaborators"),
    )
