"""Composite resource model.

One canonical shape per resource kind, unifying the GA, beta and alpha wire
schemas, plus the conversion tables and a version-dispatching cloud adapter.

Submodules:
    types    -- canonical dataclasses (BackendService, UrlMap, ...).
    schema   -- per-field mapping tables, force-send policy, CompositeRegistry.
    convert  -- to_canonical / to_version.
    cloud    -- CompositeCloud: CRUD through the track a resource requires.
"""

from glbc.composite.cloud import CompositeCloud
from glbc.composite.convert import to_canonical, to_version
from glbc.composite.schema import CompositeRegistry, default_registry
from glbc.composite.types import (
    Backend,
    BackendService,
    ForwardingRule,
    InstanceGroup,
    NetworkEndpointGroup,
    TargetHttpProxy,
    TargetHttpsProxy,
    UrlMap,
)

__all__ = [
    "Backend",
    "BackendService",
    "CompositeCloud",
    "CompositeRegistry",
    "ForwardingRule",
    "InstanceGroup",
    "NetworkEndpointGroup",
    "TargetHttpProxy",
    "TargetHttpsProxy",
    "UrlMap",
    "default_registry",
    "to_canonical",
    "to_version",
]
