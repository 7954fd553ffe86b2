"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ClusterConfig:
    """Identity of the cluster and the cloud project it runs in."""

    uid: str = ""
    firewall_name: str = ""
    project_id: str = ""
    region: str = "us-central1"
    network_project_id: str = ""
    on_xpn: bool = False


@dataclass
class FeatureConfig:
    """Optional controller features."""

    enable_l7_ilb: bool = False


@dataclass
class FirewallConfig:
    """Firewall rule inputs."""

    node_port_ranges: list[str] = field(default_factory=lambda: ["30000-32767"])
    source_ranges: list[str] = field(default_factory=lambda: ["130.211.0.0/22", "35.191.0.0/16"])


@dataclass
class BackendPoolConfig:
    """Backend pool and deletion-check settings."""

    default_backend_service: str = "kube-system/default-http-backend"


@dataclass
class QueueConfig:
    """Retry schedule of the firewall work queue, in seconds."""

    base_delay: float = 0.5
    max_delay: float = 300.0
    store_sync_poll_period: float = 5.0


@dataclass
class APIConfig:
    """REST API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    json: bool = True


@dataclass
class GLBCConfig:
    """Top-level glbc configuration."""

    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)
    firewall: FirewallConfig = field(default_factory=FirewallConfig)
    backends: BackendPoolConfig = field(default_factory=BackendPoolConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
    collaborators_factory: str = "glbc.app:standalone_collaborators"
