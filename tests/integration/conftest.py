"""Fixtures for integration tests against the in-memory cloud."""

from __future__ import annotations

import pytest
from lb_builder import LBLayout, build_lb

from glbc.cloud.fake import FakeCloud


@pytest.fixture
def lb(fake_cloud: FakeCloud) -> LBLayout:
    return build_lb(fake_cloud)
