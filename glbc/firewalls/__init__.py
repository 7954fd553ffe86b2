"""Cluster firewall rule and the controller that keeps it current."""

from glbc.firewalls.controller import QUEUE_KEY, FirewallController
from glbc.firewalls.pool import LB_SOURCE_RANGES, FirewallRules

__all__ = ["LB_SOURCE_RANGES", "QUEUE_KEY", "FirewallController", "FirewallRules"]
