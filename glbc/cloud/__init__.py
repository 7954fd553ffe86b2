"""Cloud API collaborator surface: versions, keys, URLs, error classes.

Exports:
    CloudAPI          -- Protocol the concrete compute client implements.
    Version, KeyType  -- API maturity track and resource scope.
    ResourceKind      -- compute collections the controller touches.
    ResourceKey       -- (name, region, zone) identity of one resource.
    parse_resource_url
    is_not_found, is_forbidden
"""

from glbc.cloud.api import CloudAPI, WireObject, is_forbidden, is_not_found
from glbc.cloud.meta import KeyType, ResourceID, ResourceKey, ResourceKind, Version, parse_resource_url

__all__ = [
    "CloudAPI",
    "KeyType",
    "ResourceID",
    "ResourceKey",
    "ResourceKind",
    "Version",
    "WireObject",
    "is_forbidden",
    "is_not_found",
    "parse_resource_url",
]
