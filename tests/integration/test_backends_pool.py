"""Integration tests for the backend service pool."""

from __future__ import annotations

import pytest
from google.api_core import exceptions as gapi_exceptions
from lb_builder import add_backend_service

from glbc.backends.pool import Backends
from glbc.cloud.fake import FakeCloud
from glbc.cloud.meta import ResourceKey, ResourceKind, Version
from glbc.composite.cloud import CompositeCloud
from glbc.utils.description import Description
from glbc.utils.namer import Namer
from glbc.utils.serviceport import BackendConfig, ServicePort, ServicePortID, TrafficManagement

HC_LINK = "https://www.googleapis.com/compute/v1/projects/test-project/global/healthChecks/k8s-be-30001--uid1"
BE_NAME = "k8s-be-30001--uid1"
BE_KEY = ResourceKey.global_key(BE_NAME)


def _sp(security_policy: str = "", locality: str = "", l7_ilb: bool = False) -> ServicePort:
    traffic = TrafficManagement(locality_lb_policy=locality) if locality else None
    config = BackendConfig(name="cfg", security_policy=security_policy, traffic_management=traffic)
    return ServicePort(
        id=ServicePortID("default", "web", "80"),
        node_port=30001,
        l7_ilb_enabled=l7_ilb,
        backend_config=config,
    )


@pytest.fixture
def backends(composite_cloud: CompositeCloud, namer: Namer) -> Backends:
    return Backends(composite_cloud, namer)


# ---------------------------------------------------------------------------
# create / get
# ---------------------------------------------------------------------------


class TestCreate:
    async def test_create_returns_stored_copy(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        be = await backends.create(_sp(), HC_LINK)

        assert [c[0] for c in fake_cloud.calls] == ["insert", "get"]
        assert be.fingerprint
        assert be.fingerprint == fake_cloud.stored(ResourceKind.BACKEND_SERVICE, BE_KEY)["fingerprint"]
        assert be.name == BE_NAME
        assert be.port_name == "port30001"
        assert be.health_checks == [HC_LINK]
        assert Description.from_string(be.description).service_name == "default/web"

    async def test_create_at_feature_version(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        be = await backends.create(_sp(security_policy="armor"), HC_LINK)

        assert fake_cloud.calls_for("insert")[0][2] == Version.BETA
        assert be.version == Version.BETA
        assert Description.from_string(be.description).x_features == ["SecurityPolicy"]

    async def test_create_internal(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        be = await backends.create(_sp(l7_ilb=True), HC_LINK)

        key = ResourceKey.regional_key(BE_NAME, fake_cloud.region)
        assert fake_cloud.exists(ResourceKind.BACKEND_SERVICE, key)
        assert fake_cloud.calls_for("insert")[0][2] == Version.ALPHA
        assert be.load_balancing_scheme == "INTERNAL_MANAGED"


class TestGet:
    async def test_refetch_at_required_version(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        add_backend_service(fake_cloud, BE_NAME, [], features=["SecurityPolicy"], extra={"securityPolicy": "armor"})

        be = await backends.get(BE_NAME, Version.GA, regional=False)

        assert [c[2] for c in fake_cloud.calls_for("get")] == [Version.GA, Version.BETA]
        assert be.version == Version.BETA
        assert be.security_policy == "armor"

    async def test_no_refetch_when_version_suffices(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        add_backend_service(fake_cloud, BE_NAME, [], features=["SecurityPolicy"])

        await backends.get(BE_NAME, Version.ALPHA, regional=False)

        assert [c[2] for c in fake_cloud.calls_for("get")] == [Version.ALPHA]

    async def test_plain_backend_read_once(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        add_backend_service(fake_cloud, BE_NAME, [])

        be = await backends.get(BE_NAME, Version.GA, regional=False)

        assert len(fake_cloud.calls_for("get")) == 1
        assert be.version == Version.GA

    async def test_missing_raises_not_found(self, backends: Backends) -> None:
        with pytest.raises(gapi_exceptions.NotFound):
            await backends.get(BE_NAME, Version.GA, regional=False)


# ---------------------------------------------------------------------------
# update / delete
# ---------------------------------------------------------------------------


class TestUpdateDelete:
    async def test_update_uses_description_version(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        add_backend_service(fake_cloud, BE_NAME, [], features=["SecurityPolicy"])
        be = await backends.get(BE_NAME, Version.BETA, regional=False)
        be.timeout_sec = 60

        await backends.update(be)

        assert fake_cloud.calls_for("update")[0][2] == Version.BETA
        assert fake_cloud.stored(ResourceKind.BACKEND_SERVICE, BE_KEY)["timeoutSec"] == 60

    async def test_delete(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        add_backend_service(fake_cloud, BE_NAME, [])
        await backends.delete(BE_NAME, regional=False)
        assert not fake_cloud.exists(ResourceKind.BACKEND_SERVICE, BE_KEY)

    async def test_delete_missing_is_fine(self, backends: Backends) -> None:
        await backends.delete(BE_NAME, regional=False)

    async def test_delete_regional_at_alpha(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        await backends.delete(BE_NAME, regional=True)
        call = fake_cloud.calls_for("delete")[0]
        assert call[2] == Version.ALPHA
        assert call[3] == ResourceKey.regional_key(BE_NAME, fake_cloud.region)

    async def test_delete_error_propagates(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        fake_cloud.fail("delete", ResourceKind.BACKEND_SERVICE, gapi_exceptions.Forbidden("denied"))
        with pytest.raises(gapi_exceptions.Forbidden):
            await backends.delete(BE_NAME, regional=False)


# ---------------------------------------------------------------------------
# health / list
# ---------------------------------------------------------------------------


class TestHealth:
    async def test_healthy(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        add_backend_service(fake_cloud, BE_NAME, ["zones/z/instanceGroups/ig"])
        fake_cloud.health[(BE_NAME, "zones/z/instanceGroups/ig")] = {
            "healthStatus": [{"healthState": "HEALTHY", "instance": "vm-1"}]
        }

        assert await backends.health(BE_NAME, Version.GA, regional=False) == "HEALTHY"

    async def test_unknown_without_backend_service(self, backends: Backends) -> None:
        assert await backends.health(BE_NAME, Version.GA, regional=False) == "Unknown"

    async def test_unknown_without_groups(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        add_backend_service(fake_cloud, BE_NAME, [])
        assert await backends.health(BE_NAME, Version.GA, regional=False) == "Unknown"

    async def test_unknown_without_statuses(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        add_backend_service(fake_cloud, BE_NAME, ["zones/z/instanceGroups/ig"])
        assert await backends.health(BE_NAME, Version.GA, regional=False) == "Unknown"

    async def test_unknown_on_health_error(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        add_backend_service(fake_cloud, BE_NAME, ["zones/z/instanceGroups/ig"])
        fake_cloud.fail("get_health", ResourceKind.BACKEND_SERVICE, gapi_exceptions.ServiceUnavailable("later"))
        assert await backends.health(BE_NAME, Version.GA, regional=False) == "Unknown"


class TestList:
    async def test_only_cluster_backends(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        add_backend_service(fake_cloud, BE_NAME, [])
        add_backend_service(fake_cloud, "k8s-be-30001--othercluster", [])
        add_backend_service(fake_cloud, "hand-made", [])

        assert [be.name for be in await backends.list()] == [BE_NAME]

    async def test_regional_listed_when_internal_enabled(
        self, fake_cloud: FakeCloud, composite_cloud: CompositeCloud, namer: Namer
    ) -> None:
        fake_cloud.add(
            ResourceKind.BACKEND_SERVICE, ResourceKey.regional_key("k8s-be-30002--uid1", fake_cloud.region), {}
        )
        add_backend_service(fake_cloud, BE_NAME, [])

        assert [be.name for be in await Backends(composite_cloud, namer).list()] == [BE_NAME]
        listed = await Backends(composite_cloud, namer, enable_l7_ilb=True).list()
        assert sorted(be.name for be in listed) == [BE_NAME, "k8s-be-30002--uid1"]


# ---------------------------------------------------------------------------
# ensure
# ---------------------------------------------------------------------------


class TestEnsure:
    async def test_creates_missing(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        be = await backends.ensure(_sp(), HC_LINK)

        assert be.name == BE_NAME
        assert len(fake_cloud.calls_for("insert")) == 1

    async def test_converged_backend_not_written(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        await backends.ensure(_sp(), HC_LINK)
        fake_cloud.calls.clear()

        await backends.ensure(_sp(), HC_LINK)

        assert fake_cloud.calls_for("insert") == []
        assert fake_cloud.calls_for("update") == []

    async def test_health_check_change_updates(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        await backends.ensure(_sp(), HC_LINK)
        other_hc = HC_LINK.replace("k8s-be-30001--uid1", "custom-hc")

        be = await backends.ensure(_sp(), other_hc)

        assert len(fake_cloud.calls_for("update")) == 1
        assert be.health_checks == [other_hc]

    async def test_locality_policy_moves_backend_to_alpha(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        await backends.ensure(_sp(), HC_LINK)

        be = await backends.ensure(_sp(locality="ROUND_ROBIN"), HC_LINK)

        assert fake_cloud.calls_for("update")[0][2] == Version.ALPHA
        assert be.locality_lb_policy == "ROUND_ROBIN"
        assert Description.from_string(be.description).x_features == ["LocalityLbPolicy"]

    async def test_get_error_propagates(self, fake_cloud: FakeCloud, backends: Backends) -> None:
        fake_cloud.fail("get", ResourceKind.BACKEND_SERVICE, gapi_exceptions.InternalServerError("oops"))
        with pytest.raises(gapi_exceptions.InternalServerError):
            await backends.ensure(_sp(), HC_LINK)
        assert fake_cloud.calls_for("insert") == []
