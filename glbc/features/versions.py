"""Feature tables and version/scope resolution."""

from __future__ import annotations

from collections.abc import Iterable

from glbc.cloud.meta import KeyType, Version, version_rank
from glbc.utils.description import Description
from glbc.utils.serviceport import ServicePort

FEATURE_SECURITY_POLICY = "SecurityPolicy"
FEATURE_L7ILB = "L7ILB"
FEATURE_LOCALITY_LB_POLICY = "LocalityLbPolicy"

# Features not listed here are served by the GA API.
_VERSION_TO_FEATURES: dict[Version, frozenset[str]] = {
    Version.ALPHA: frozenset({FEATURE_L7ILB, FEATURE_LOCALITY_LB_POLICY}),
    Version.BETA: frozenset({FEATURE_SECURITY_POLICY}),
}

# Features not listed here are global.
_SCOPE_TO_FEATURES: dict[KeyType, frozenset[str]] = {
    KeyType.REGIONAL: frozenset({FEATURE_L7ILB}),
}


def is_lower_version(a: Version, b: Version) -> bool:
    """True if *a* is strictly more stable than *b* (GA < beta < alpha)."""
    return version_rank(a) < version_rank(b)


def version_from_features(features: Iterable[str]) -> Version:
    """Least stable version any of *features* requires; GA for none."""
    required = Version.GA
    for feature in features:
        for version, members in _VERSION_TO_FEATURES.items():
            if feature in members and is_lower_version(required, version):
                required = version
    return required


def scope_from_features(features: Iterable[str]) -> KeyType:
    """Regional if any of *features* is regional, else global."""
    for feature in features:
        if feature in _SCOPE_TO_FEATURES[KeyType.REGIONAL]:
            return KeyType.REGIONAL
    return KeyType.GLOBAL


def version_from_description(description: str) -> Version:
    """Version a previously written backend service requires.

    Decodes the ``x-features`` list persisted in the description; a missing
    or foreign description means GA.
    """
    return version_from_features(Description.from_string(description).x_features)


def features_from_service_port(sp: ServicePort) -> list[str]:
    features = []
    config = sp.backend_config
    if config is not None and config.security_policy:
        features.append(FEATURE_SECURITY_POLICY)
    if config is not None and config.traffic_management and config.traffic_management.locality_lb_policy:
        features.append(FEATURE_LOCALITY_LB_POLICY)
    if sp.l7_ilb_enabled:
        features.append(FEATURE_L7ILB)
    return features


def version_from_service_port(sp: ServicePort) -> Version:
    return version_from_features(features_from_service_port(sp))


def scope_from_service_port(sp: ServicePort) -> KeyType:
    return scope_from_features(features_from_service_port(sp))


def set_description(desc: Description, sp: ServicePort) -> None:
    """Record every non-GA feature of *sp* in *desc*."""
    desc.x_features = [
        f for f in features_from_service_port(sp) if version_from_features([f]) != Version.GA
    ]
