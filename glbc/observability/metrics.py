"""Prometheus metrics for the controller.

Exposed on the REST server at ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

firewall_syncs_total = Counter(
    "glbc_firewall_syncs_total",
    "Firewall controller sync attempts by result",
    ["result"],
)

firewall_xpn_events_total = Counter(
    "glbc_firewall_xpn_events_total",
    "XPN events recorded against ingresses",
)

queue_retries_total = Counter(
    "glbc_queue_retries_total",
    "Keys re-enqueued after a failed sync",
    ["queue"],
)

gclb_discovery_duration_seconds = Histogram(
    "glbc_gclb_discovery_duration_seconds",
    "Time to resolve the load-balancer graph behind one VIP",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

gclb_discovery_failures_total = Counter(
    "glbc_gclb_discovery_failures_total",
    "Graph discoveries that aborted, by error class",
    ["error"],
)

backend_operations_total = Counter(
    "glbc_backend_operations_total",
    "Backend service operations by operation and API version",
    ["operation", "version"],
)
