"""API versions, scopes, resource keys and resource URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from glbc.errors import ResourceURLError

API_ROOT = "https://www.googleapis.com/compute/"


class Version(StrEnum):
    """API maturity track of a resource's wire schema."""

    GA = "ga"
    BETA = "beta"
    ALPHA = "alpha"


# Stability order: GA is the most stable track, alpha the least stable and
# most feature-complete.
_VERSION_RANK: dict[Version, int] = {Version.GA: 0, Version.BETA: 1, Version.ALPHA: 2}


def version_rank(version: Version) -> int:
    return _VERSION_RANK[version]


class KeyType(StrEnum):
    """Placement scope of a resource."""

    GLOBAL = "global"
    REGIONAL = "regional"
    ZONAL = "zonal"


class ResourceKind(StrEnum):
    """Compute collections handled by the controller (REST collection names)."""

    FORWARDING_RULE = "forwardingRules"
    TARGET_HTTP_PROXY = "targetHttpProxies"
    TARGET_HTTPS_PROXY = "targetHttpsProxies"
    URL_MAP = "urlMaps"
    BACKEND_SERVICE = "backendServices"
    NETWORK_ENDPOINT_GROUP = "networkEndpointGroups"
    INSTANCE_GROUP = "instanceGroups"
    FIREWALL = "firewalls"
    SUBNETWORK = "subnetworks"


# Path segment used in URLs for each version.
_VERSION_PATH: dict[Version, str] = {
    Version.GA: "v1",
    Version.BETA: "beta",
    Version.ALPHA: "alpha",
}


@dataclass(frozen=True, order=True)
class ResourceKey:
    """Identifies one resource instance within a project.

    At most one of ``region`` and ``zone`` is set; the scope follows from
    which one is.
    """

    name: str
    region: str = ""
    zone: str = ""

    def __post_init__(self) -> None:
        if self.region and self.zone:
            raise ValueError(f"key {self.name!r} cannot be both regional and zonal")

    @classmethod
    def global_key(cls, name: str) -> ResourceKey:
        return cls(name=name)

    @classmethod
    def regional_key(cls, name: str, region: str) -> ResourceKey:
        return cls(name=name, region=region)

    @classmethod
    def zonal_key(cls, name: str, zone: str) -> ResourceKey:
        return cls(name=name, zone=zone)

    @property
    def type(self) -> KeyType:
        if self.zone:
            return KeyType.ZONAL
        if self.region:
            return KeyType.REGIONAL
        return KeyType.GLOBAL

    @property
    def location(self) -> str:
        """Region or zone name, empty for global keys."""
        return self.zone or self.region

    def __str__(self) -> str:
        if self.zone:
            return f"Key{{{self.name!r}, zone: {self.zone!r}}}"
        if self.region:
            return f"Key{{{self.name!r}, region: {self.region!r}}}"
        return f"Key{{{self.name!r}}}"


@dataclass(frozen=True)
class ResourceID:
    """A fully qualified reference: project + collection + key."""

    project: str
    kind: str
    key: ResourceKey

    def self_link(self, version: Version = Version.GA) -> str:
        path = _VERSION_PATH[version]
        if self.key.type == KeyType.ZONAL:
            scope = f"zones/{self.key.zone}"
        elif self.key.type == KeyType.REGIONAL:
            scope = f"regions/{self.key.region}"
        else:
            scope = "global"
        return f"{API_ROOT}{path}/projects/{self.project}/{scope}/{self.kind}/{self.key.name}"


_RE_VERSIONED_PREFIX = re.compile(r"^https?://[^/]+/compute/(v1|beta|alpha)/")


def parse_resource_url(url: str) -> ResourceID:
    """Parse a Compute resource link into a :class:`ResourceID`.

    Accepted forms::

        https://www.googleapis.com/compute/v1/projects/p/global/urlMaps/um
        projects/p/regions/us-central1/backendServices/bs
        zones/us-central1-b/networkEndpointGroups/neg

    Raises:
        ResourceURLError: if the link does not name a single resource.
    """
    if not url:
        raise ResourceURLError("empty resource url")

    path = _RE_VERSIONED_PREFIX.sub("", url)
    if path == url and url.startswith(("http://", "https://")):
        raise ResourceURLError(f"unrecognised resource url host/version: {url!r}", {"url": url})

    parts = [p for p in path.split("/") if p]
    project = ""
    if len(parts) >= 2 and parts[0] == "projects":
        project = parts[1]
        parts = parts[2:]

    if len(parts) == 3 and parts[0] == "global":
        return ResourceID(project, parts[1], ResourceKey.global_key(parts[2]))
    if len(parts) == 4 and parts[0] == "regions":
        return ResourceID(project, parts[2], ResourceKey.regional_key(parts[3], parts[1]))
    if len(parts) == 4 and parts[0] == "zones":
        return ResourceID(project, parts[2], ResourceKey.zonal_key(parts[3], parts[1]))

    raise ResourceURLError(f"cannot parse resource url {url!r}", {"url": url})
