"""Load-balancer graph discovery and deletion verification.

Given nothing but a VIP, :func:`gclb_for_vip` rebuilds the full
forwarding-rule -> proxy -> URL map -> backend -> group graph, and
:func:`check_resource_deletion` later confirms each member returns 404.
:func:`network_endpoints_in_negs` lists what a zonal NEG still points at.
"""

from glbc.gclb.deletion import check_neg_deletion, check_resource_deletion
from glbc.gclb.discovery import gclb_for_vip
from glbc.gclb.endpoints import network_endpoints_in_negs
from glbc.gclb.models import GCLB, GCLBDeleteOptions, NetworkEndpoints
from glbc.gclb.validators import FeatureValidator, Requirement, resolve_policy, validators_by_name

__all__ = [
    "GCLB",
    "FeatureValidator",
    "GCLBDeleteOptions",
    "NetworkEndpoints",
    "Requirement",
    "check_neg_deletion",
    "check_resource_deletion",
    "gclb_for_vip",
    "network_endpoints_in_negs",
    "resolve_policy",
    "validators_by_name",
]
