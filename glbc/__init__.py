"""glbc -- ingress load-balancer resource-graph engine."""

__version__ = "0.3.0"
