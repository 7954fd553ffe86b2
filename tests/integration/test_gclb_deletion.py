"""Integration tests for load balancer deletion checks."""

from __future__ import annotations

import pytest
from google.api_core import exceptions as gapi_exceptions
from lb_builder import VIP, LBLayout, delete_lb

from glbc.cloud.fake import FakeCloud
from glbc.cloud.meta import ResourceKey, ResourceKind, Version
from glbc.composite.cloud import CompositeCloud
from glbc.errors import ResourcesNotDeletedError
from glbc.gclb.deletion import check_neg_deletion, check_resource_deletion
from glbc.gclb.discovery import gclb_for_vip
from glbc.gclb.models import GCLB, GCLBDeleteOptions
from glbc.gclb.validators import BASIC, SECURITY_POLICY, FeatureValidator

DEFAULT_BACKEND = ResourceKey.global_key("k8s-be-30000--uid1")


async def _discover(cloud: CompositeCloud, *validators: FeatureValidator) -> GCLB:
    return await gclb_for_vip(cloud, VIP, list(validators) or [BASIC])


def _delete_all_but(cloud: FakeCloud, layout: LBLayout, keep: ResourceKey) -> None:
    layout.backend_services = [k for k in layout.backend_services if k != keep]
    delete_lb(cloud, layout)


class TestCheckResourceDeletion:
    async def test_everything_deleted(self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, lb: LBLayout) -> None:
        gclb = await _discover(composite_cloud)
        delete_lb(fake_cloud, lb)

        await check_resource_deletion(composite_cloud, gclb)

    async def test_nothing_deleted(self, composite_cloud: CompositeCloud, lb: LBLayout) -> None:
        gclb = await _discover(composite_cloud)

        with pytest.raises(ResourcesNotDeletedError) as exc_info:
            await check_resource_deletion(composite_cloud, gclb)
        assert len(exc_info.value.remaining) == len(gclb)
        assert exc_info.value.failures == []

    async def test_empty_graph_is_deleted(self, composite_cloud: CompositeCloud) -> None:
        await check_resource_deletion(composite_cloud, GCLB(vip=VIP))

    async def test_default_backend_skipped(
        self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, lb: LBLayout
    ) -> None:
        gclb = await _discover(composite_cloud)
        _delete_all_but(fake_cloud, lb, DEFAULT_BACKEND)

        await check_resource_deletion(composite_cloud, gclb, GCLBDeleteOptions(skip_default_backend=True))

    async def test_default_backend_reported_without_skip(
        self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, lb: LBLayout
    ) -> None:
        gclb = await _discover(composite_cloud)
        _delete_all_but(fake_cloud, lb, DEFAULT_BACKEND)

        with pytest.raises(ResourcesNotDeletedError, match="k8s-be-30000--uid1") as exc_info:
            await check_resource_deletion(composite_cloud, gclb)
        assert exc_info.value.remaining == [f"backendServices {DEFAULT_BACKEND}"]

    async def test_custom_default_backend_name(
        self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, lb: LBLayout
    ) -> None:
        gclb = await _discover(composite_cloud)
        _delete_all_but(fake_cloud, lb, DEFAULT_BACKEND)
        options = GCLBDeleteOptions(skip_default_backend=True, default_backend_service="infra/fallback")

        with pytest.raises(ResourcesNotDeletedError):
            await check_resource_deletion(composite_cloud, gclb, options)

    async def test_other_backend_still_reported_with_skip(
        self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, lb: LBLayout
    ) -> None:
        gclb = await _discover(composite_cloud)
        api = ResourceKey.global_key("k8s-be-30001--uid1")
        _delete_all_but(fake_cloud, lb, api)

        with pytest.raises(ResourcesNotDeletedError) as exc_info:
            await check_resource_deletion(composite_cloud, gclb, GCLBDeleteOptions(skip_default_backend=True))
        assert exc_info.value.remaining == [f"backendServices {api}"]

    async def test_failures_aggregated(self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, lb: LBLayout) -> None:
        gclb = await _discover(composite_cloud)
        delete_lb(fake_cloud, lb)
        fake_cloud.fail("get", ResourceKind.URL_MAP, gapi_exceptions.Forbidden("denied"))
        fake_cloud.fail("get", ResourceKind.INSTANCE_GROUP, gapi_exceptions.ServiceUnavailable("later"))

        with pytest.raises(ResourcesNotDeletedError, match="could not verify") as exc_info:
            await check_resource_deletion(composite_cloud, gclb)
        assert exc_info.value.remaining == []
        assert len(exc_info.value.failures) == 2

    async def test_every_member_checked_despite_failures(
        self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, lb: LBLayout
    ) -> None:
        gclb = await _discover(composite_cloud)
        fake_cloud.calls.clear()
        fake_cloud.fail("get", ResourceKind.FORWARDING_RULE, gapi_exceptions.InternalServerError("oops"))

        with pytest.raises(ResourcesNotDeletedError) as exc_info:
            await check_resource_deletion(composite_cloud, gclb)
        assert len(fake_cloud.calls_for("get")) == len(gclb)
        assert len(exc_info.value.failures) == 2
        assert len(exc_info.value.remaining) == len(gclb) - 2

    async def test_instance_groups_can_be_excluded(
        self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, lb: LBLayout
    ) -> None:
        gclb = await _discover(composite_cloud)
        lb.instance_groups = []
        delete_lb(fake_cloud, lb)

        with pytest.raises(ResourcesNotDeletedError):
            await check_resource_deletion(composite_cloud, gclb)
        await check_resource_deletion(composite_cloud, gclb, GCLBDeleteOptions(check_instance_groups=False))

    async def test_members_read_at_discovered_version(
        self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, lb: LBLayout
    ) -> None:
        gclb = await _discover(composite_cloud, BASIC, SECURITY_POLICY)
        fake_cloud.calls.clear()
        delete_lb(fake_cloud, lb)

        await check_resource_deletion(composite_cloud, gclb)
        assert {c[2] for c in fake_cloud.calls_for("get", ResourceKind.BACKEND_SERVICE)} == {Version.BETA}
        assert {c[2] for c in fake_cloud.calls_for("get", ResourceKind.URL_MAP)} == {Version.GA}


class TestCheckNEGDeletion:
    async def test_negs_deleted(self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, lb: LBLayout) -> None:
        gclb = await _discover(composite_cloud)
        for key in lb.negs:
            fake_cloud.remove(ResourceKind.NETWORK_ENDPOINT_GROUP, key)
        fake_cloud.calls.clear()

        await check_neg_deletion(composite_cloud, gclb)
        assert {c[1] for c in fake_cloud.calls_for("get")} == {ResourceKind.NETWORK_ENDPOINT_GROUP}

    async def test_neg_remaining(self, composite_cloud: CompositeCloud, lb: LBLayout) -> None:
        gclb = await _discover(composite_cloud)

        with pytest.raises(ResourcesNotDeletedError, match="NEGs still exist") as exc_info:
            await check_neg_deletion(composite_cloud, gclb)
        assert exc_info.value.remaining == [f"networkEndpointGroups {lb.negs[0]}"]
