"""Feature -> API version/scope negotiation.

Every feature enabled on a backend maps to the least stable API version and
the scope it needs. The requirement is recorded in the backend service
description so later reads and writes never fall back to a track that
would drop the feature's fields.
"""

from glbc.features.versions import (
    FEATURE_L7ILB,
    FEATURE_LOCALITY_LB_POLICY,
    FEATURE_SECURITY_POLICY,
    features_from_service_port,
    is_lower_version,
    scope_from_features,
    scope_from_service_port,
    set_description,
    version_from_description,
    version_from_features,
    version_from_service_port,
)

__all__ = [
    "FEATURE_L7ILB",
    "FEATURE_LOCALITY_LB_POLICY",
    "FEATURE_SECURITY_POLICY",
    "features_from_service_port",
    "is_lower_version",
    "scope_from_features",
    "scope_from_service_port",
    "set_description",
    "version_from_description",
    "version_from_features",
    "version_from_service_port",
]
