"""Tests for Kubernetes event recording."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from kubernetes_asyncio.client.rest import ApiException

from glbc.events import EVENT_TYPE_NORMAL, KubeEventRecorder, LogEventRecorder, build_event

INGRESS = {
    "apiVersion": "networking.k8s.io/v1",
    "kind": "Ingress",
    "metadata": {"name": "web", "namespace": "shop", "uid": "1234"},
}


class TestBuildEvent:
    def test_event_body(self) -> None:
        body = build_event(INGRESS, EVENT_TYPE_NORMAL, "XPN", "run this")

        assert body["metadata"] == {"generateName": "web.", "namespace": "shop"}
        assert body["involvedObject"] == {
            "apiVersion": "networking.k8s.io/v1",
            "kind": "Ingress",
            "name": "web",
            "namespace": "shop",
            "uid": "1234",
        }
        assert body["type"] == "Normal"
        assert body["reason"] == "XPN"
        assert body["message"] == "run this"
        assert body["firstTimestamp"] == body["lastTimestamp"]
        assert body["firstTimestamp"].endswith("Z")

    def test_defaults_for_sparse_object(self) -> None:
        body = build_event({"metadata": {"name": "web"}}, EVENT_TYPE_NORMAL, "XPN", "m")
        assert body["metadata"]["namespace"] == "default"
        assert body["involvedObject"]["kind"] == "Ingress"


class TestKubeEventRecorder:
    async def test_posts_event(self) -> None:
        api = MagicMock()
        api.create_namespaced_event = AsyncMock()

        await KubeEventRecorder(api=api).record(INGRESS, EVENT_TYPE_NORMAL, "XPN", "run this")

        api.create_namespaced_event.assert_awaited_once()
        namespace, body = api.create_namespaced_event.await_args.args
        assert namespace == "shop"
        assert body["reason"] == "XPN"

    async def test_api_failure_is_dropped(self) -> None:
        api = MagicMock()
        api.create_namespaced_event = AsyncMock(side_effect=ApiException(status=403, reason="Forbidden"))

        await KubeEventRecorder(api=api).record(INGRESS, EVENT_TYPE_NORMAL, "XPN", "run this")

        api.create_namespaced_event.assert_awaited_once()


class TestLogEventRecorder:
    async def test_record_does_not_raise(self) -> None:
        await LogEventRecorder().record(INGRESS, EVENT_TYPE_NORMAL, "XPN", "run this")
