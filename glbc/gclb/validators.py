"""Feature validators and the per-kind version/scope policy they imply.

A validator names the API version each resource kind must be read at for
its feature to be visible, and the scope the feature lives in. Discovery
folds the active validators into one :class:`Requirement` per kind before
touching the cloud.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from glbc.cloud.meta import KeyType, ResourceKind, Version
from glbc.errors import UnknownFeatureError
from glbc.features.versions import (
    FEATURE_L7ILB,
    FEATURE_LOCALITY_LB_POLICY,
    FEATURE_SECURITY_POLICY,
    is_lower_version,
    scope_from_features,
    version_from_features,
)

GRAPH_KINDS: tuple[ResourceKind, ...] = (
    ResourceKind.FORWARDING_RULE,
    ResourceKind.TARGET_HTTP_PROXY,
    ResourceKind.TARGET_HTTPS_PROXY,
    ResourceKind.URL_MAP,
    ResourceKind.BACKEND_SERVICE,
    ResourceKind.NETWORK_ENDPOINT_GROUP,
    ResourceKind.INSTANCE_GROUP,
)


@dataclass(frozen=True)
class FeatureValidator:
    """Version and scope requirements of one feature.

    Kinds missing from ``versions`` are fine at GA.
    """

    name: str
    versions: dict[ResourceKind, Version] = field(default_factory=dict)
    scope: KeyType = KeyType.GLOBAL

    def resource_version(self, kind: ResourceKind) -> Version:
        return self.versions.get(kind, Version.GA)


@dataclass(frozen=True)
class Requirement:
    version: Version = Version.GA
    scopes: frozenset[KeyType] = frozenset({KeyType.GLOBAL})


def _feature_validator(name: str, feature: str, kinds: Iterable[ResourceKind]) -> FeatureValidator:
    version = version_from_features([feature])
    return FeatureValidator(
        name=name,
        versions={kind: version for kind in kinds},
        scope=scope_from_features([feature]),
    )


BASIC = FeatureValidator(name="Basic")
SECURITY_POLICY = _feature_validator(
    "SecurityPolicy", FEATURE_SECURITY_POLICY, [ResourceKind.BACKEND_SERVICE]
)
LOCALITY_LB_POLICY = _feature_validator(
    "LocalityLbPolicy", FEATURE_LOCALITY_LB_POLICY, [ResourceKind.BACKEND_SERVICE]
)
L7ILB = _feature_validator("L7ILB", FEATURE_L7ILB, GRAPH_KINDS)

_VALIDATORS: dict[str, FeatureValidator] = {
    v.name: v for v in (BASIC, SECURITY_POLICY, LOCALITY_LB_POLICY, L7ILB)
}


def validator_names() -> list[str]:
    return sorted(_VALIDATORS)


def validators_by_name(names: Iterable[str]) -> list[FeatureValidator]:
    """Look validators up by name, preserving order.

    Raises:
        UnknownFeatureError: a name matches no validator.
    """
    found = []
    for name in names:
        validator = _VALIDATORS.get(name)
        if validator is None:
            raise UnknownFeatureError(
                f"unknown feature {name!r}", {"known": ",".join(validator_names())}
            )
        found.append(validator)
    return found


def resolve_policy(validators: Sequence[FeatureValidator]) -> dict[ResourceKind, Requirement]:
    """Fold *validators* into one requirement per graph kind.

    The version is the least stable any validator asks for; the scopes are
    the union of the validators' scopes (global when there are none).
    """
    policy: dict[ResourceKind, Requirement] = {}
    scopes = frozenset(v.scope for v in validators) or frozenset({KeyType.GLOBAL})
    for kind in GRAPH_KINDS:
        version = Version.GA
        for validator in validators:
            wanted = validator.resource_version(kind)
            if is_lower_version(version, wanted):
                version = wanted
        policy[kind] = Requirement(version=version, scopes=scopes)
    return policy
