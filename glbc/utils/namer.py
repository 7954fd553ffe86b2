"""Deterministic names for the resources a cluster owns."""

from __future__ import annotations

import hashlib

# Compute resource names are RFC1035 labels.
_MAX_NAME_LENGTH = 63


class Namer:
    """Builds resource names scoped to one cluster uid.

    Backends look like ``k8s-be-30001--<uid>``, the firewall rule like
    ``k8s-fw-l7--<firewall name>`` and NEGs like
    ``k8s1-<uid8>-<ns>-<svc>-<port>-<hash8>``.
    """

    def __init__(self, uid: str, firewall_name: str = "", prefix: str = "k8s") -> None:
        if not uid:
            raise ValueError("cluster uid must not be empty")
        self.uid = uid
        self.firewall_name = firewall_name or uid
        self.prefix = prefix

    def backend(self, node_port: int) -> str:
        return f"{self.prefix}-be-{node_port}--{self.uid}"

    def firewall_rule(self) -> str:
        return f"{self.prefix}-fw-l7--{self.firewall_name}"

    def named_port(self, port: int) -> str:
        return f"port{port}"

    def neg(self, namespace: str, name: str, port: int | str) -> str:
        digest = hashlib.sha256(f"{namespace};{name};{port}".encode()).hexdigest()[:8]
        base = f"{self.prefix}1-{self.uid[:8]}-{namespace}-{name}-{port}"
        # room for "-" + 8 hash chars
        base = base[: _MAX_NAME_LENGTH - 9].rstrip("-")
        return f"{base}-{digest}"

    def name_belongs_to_cluster(self, name: str) -> bool:
        if name.startswith(f"{self.prefix}-") and name.endswith(f"--{self.uid}"):
            return True
        return name.startswith(f"{self.prefix}1-{self.uid[:8]}-")
