"""Locality load-balancing policy from the BackendConfig."""

from __future__ import annotations

import structlog

from glbc.composite.types import BackendService
from glbc.utils.serviceport import ServicePort

_log = structlog.get_logger(component="features.lbpolicy")


def ensure_locality_lb_policy(sp: ServicePort, be: BackendService) -> bool:
    """Copy the configured locality policy onto *be*.

    Returns True if *be* was changed. Without a configured policy the
    backend service is left alone, whatever it currently carries.
    """
    config = sp.backend_config
    if config is None or config.traffic_management is None:
        return False
    policy = config.traffic_management.locality_lb_policy
    if not policy or be.locality_lb_policy == policy:
        return False

    be.locality_lb_policy = policy
    _log.info("locality_lb_policy_updated", service=sp.id.service, policy=policy)
    return True
