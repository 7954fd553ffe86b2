"""Backend service-port descriptors produced by ingress translation."""

from __future__ import annotations

from dataclasses import dataclass, field

from glbc.utils.description import Description
from glbc.utils.namer import Namer


@dataclass(frozen=True)
class ServicePortID:
    """Service (namespace/name) plus the port the ingress refers to."""

    namespace: str
    name: str
    port: str

    @property
    def service(self) -> str:
        return f"{self.namespace}/{self.name}"

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}:{self.port}"


@dataclass(frozen=True)
class TrafficManagement:
    locality_lb_policy: str = ""


@dataclass(frozen=True)
class BackendConfig:
    """The subset of a BackendConfig the backend pool acts on."""

    name: str = ""
    security_policy: str = ""
    traffic_management: TrafficManagement | None = None


@dataclass(frozen=True)
class ServicePort:
    """One backend as the translator sees it.

    Attributes:
        id: owning service and port.
        node_port: node port for instance-group backends (0 for NEG backends).
        target_port: container port NEG endpoints listen on.
        neg_enabled: backend uses network endpoint groups.
        l7_ilb_enabled: backend serves an internal HTTP(S) load balancer.
    """

    id: ServicePortID
    node_port: int = 0
    target_port: str = ""
    protocol: str = "HTTP"
    neg_enabled: bool = False
    l7_ilb_enabled: bool = False
    backend_config: BackendConfig | None = None
    health_check_path: str = field(default="", compare=False)

    def backend_name(self, namer: Namer) -> str:
        if self.neg_enabled:
            return namer.neg(self.id.namespace, self.id.name, self.id.port)
        return namer.backend(self.node_port)

    def description(self) -> Description:
        return Description(service_name=self.id.service, service_port=self.id.port)


def gather_node_ports(svc_ports: list[ServicePort]) -> list[str]:
    """Node ports of every instance-group backed service port."""
    ports = {sp.node_port for sp in svc_ports if not sp.neg_enabled and sp.node_port}
    return [str(p) for p in sorted(ports)]


def gather_endpoint_ports(svc_ports: list[ServicePort]) -> list[str]:
    """Target ports of every NEG backed service port."""
    ports = {sp.target_port for sp in svc_ports if sp.neg_enabled and sp.target_port}
    return sorted(ports, key=_port_sort_key)


def _port_sort_key(port: str) -> tuple[int, str]:
    return (int(port), port) if port.isdigit() else (1 << 16, port)
