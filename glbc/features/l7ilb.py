"""Internal HTTP(S) load balancer helpers."""

from __future__ import annotations

from glbc.cloud.meta import KeyType, ResourceKind, Version, parse_resource_url
from glbc.composite.cloud import CompositeCloud
from glbc.errors import ResourceURLError, SubnetNotFoundError
from glbc.features.versions import FEATURE_L7ILB, scope_from_features, version_from_features

_ROLE_ACTIVE = "ACTIVE"
_PURPOSE_ILB = "INTERNAL_HTTPS_LOAD_BALANCER"


def l7ilb_version() -> Version:
    return version_from_features([FEATURE_L7ILB])


def l7ilb_scope() -> KeyType:
    return scope_from_features([FEATURE_L7ILB])


async def ilb_subnet_source_range(cloud: CompositeCloud, region: str) -> str:
    """CIDR of the proxy-only subnet serving internal L7 LBs in *region*.

    Only subnets of the cluster network are considered. Network links are
    compared by project and name, so a link in any API version path matches.

    Raises:
        SubnetNotFoundError: no active internal-HTTPS-LB subnet exists.
    """
    subnets = await cloud.list(ResourceKind.SUBNETWORK, Version.ALPHA, KeyType.REGIONAL, region)
    network = cloud.cloud.network_url
    for subnet in subnets:
        if subnet.network and network and not _same_network(subnet.network, network):
            continue
        if subnet.role == _ROLE_ACTIVE and subnet.purpose == _PURPOSE_ILB:
            return subnet.ip_cidr_range
    raise SubnetNotFoundError(f"L7 ILB subnet not found in region {region}", {"region": region})


def _same_network(a: str, b: str) -> bool:
    try:
        ida, idb = parse_resource_url(a), parse_resource_url(b)
    except ResourceURLError:
        return False
    if ida.project and idb.project and ida.project != idb.project:
        return False
    return ida.kind == idb.kind and ida.key == idb.key
