"""Shared fixtures: registry, in-memory cloud, namer."""

from __future__ import annotations

import pytest

from glbc.cloud.fake import FakeCloud
from glbc.composite.cloud import CompositeCloud
from glbc.composite.schema import CompositeRegistry, default_registry
from glbc.utils.namer import Namer

CLUSTER_UID = "uid1"


@pytest.fixture
def registry() -> CompositeRegistry:
    return default_registry()


@pytest.fixture
def fake_cloud(registry: CompositeRegistry) -> FakeCloud:
    return FakeCloud(registry=registry)


@pytest.fixture
def composite_cloud(fake_cloud: FakeCloud, registry: CompositeRegistry) -> CompositeCloud:
    return CompositeCloud(fake_cloud, registry)


@pytest.fixture
def namer() -> Namer:
    return Namer(CLUSTER_UID)
