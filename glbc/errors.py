"""Exception hierarchy for glbc.

Exception Hierarchy:
    GLBCError (base)
    ├── ConversionError           - wire object does not fit the composite schema
    ├── GraphStructureError       - inconsistent load-balancer graph
    │   └── ResourceURLError      - unparsable resource reference
    ├── UnknownFeatureError       - validator requested by an unknown name
    ├── ResourcesNotDeletedError  - deletion check found surviving resources
    ├── CachesNotSyncedError      - informer caches not ready yet (transient)
    ├── FirewallXPNError          - firewall change needs the host project admin
    └── SubnetNotFoundError       - no proxy-only subnet for L7-ILB

Errors returned by the cloud API itself are left as
``google.api_core.exceptions`` instances; ``is_not_found`` and
``is_forbidden`` in :mod:`glbc.cloud.api` classify them.
"""

from __future__ import annotations

from typing import Any


class GLBCError(Exception):
    """Base exception for all glbc errors.

    Attributes:
        message: Human-readable error description
        context: Additional key/value details (resource keys, versions, ...)
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConversionError(GLBCError):
    """Raised when a wire object cannot be mapped onto its composite type.

    This signals a schema mismatch or a programming error, never a condition
    worth retrying.
    """


class GraphStructureError(GLBCError):
    """Raised when the resources behind a VIP do not form a valid graph.

    Examples:
        - Two target proxies for one VIP referencing different URL maps
        - A forwarding rule targeting an unsupported resource type
    """


class ResourceURLError(GraphStructureError):
    """Raised when a resource reference cannot be parsed."""


class UnknownFeatureError(GLBCError):
    """Raised when a feature validator is requested by an unknown name."""


class ResourcesNotDeletedError(GLBCError):
    """Raised when a deletion check finds resources that still exist.

    ``remaining`` lists the resources that were found, ``failures`` the
    resources whose state could not be determined (non-404 errors).
    """

    def __init__(
        self,
        message: str,
        remaining: list[str] | None = None,
        failures: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.remaining = remaining or []
        self.failures = failures or []


class CachesNotSyncedError(GLBCError):
    """Raised when a sync runs before the informer caches have synced."""


class FirewallXPNError(GLBCError):
    """Raised when the firewall rule lives in a Shared-VPC host project.

    ``message`` carries the gcloud command a network admin can run.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class SubnetNotFoundError(GLBCError):
    """Raised when no active internal-HTTPS-LB subnet exists in a region."""
