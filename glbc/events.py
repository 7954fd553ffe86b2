"""Kubernetes Event recording.

``EventRecorder`` is what controllers depend on; ``KubeEventRecorder`` posts
core/v1 Events through kubernetes-asyncio. Recording is best effort: a
failed post is logged and dropped, like client-go's recorder does.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Protocol

import structlog
from kubernetes_asyncio import client as k8s_client
from kubernetes_asyncio.client.rest import ApiException

_log = structlog.get_logger(component="events")

EVENT_TYPE_NORMAL = "Normal"
EVENT_TYPE_WARNING = "Warning"

_COMPONENT = "loadbalancer-controller"


class EventRecorder(Protocol):
    async def record(self, obj: dict[str, Any], event_type: str, reason: str, message: str) -> None: ...


def build_event(obj: dict[str, Any], event_type: str, reason: str, message: str) -> dict[str, Any]:
    """core/v1 Event body for an event about *obj*."""
    meta = obj.get("metadata") or {}
    name = meta.get("name", "")
    namespace = meta.get("namespace") or "default"
    now = datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    return {
        "apiVersion": "v1",
        "kind": "Event",
        "metadata": {"generateName": f"{name}.", "namespace": namespace},
        "involvedObject": {
            "apiVersion": obj.get("apiVersion", "networking.k8s.io/v1"),
            "kind": obj.get("kind", "Ingress"),
            "name": name,
            "namespace": namespace,
            "uid": meta.get("uid", ""),
        },
        "type": event_type,
        "reason": reason,
        "message": message,
        "source": {"component": _COMPONENT},
        "firstTimestamp": now,
        "lastTimestamp": now,
        "count": 1,
    }


class KubeEventRecorder:
    """Posts events through *api*, a CoreV1Api whose ApiClient the caller owns and closes."""

    def __init__(self, api: k8s_client.CoreV1Api) -> None:
        self._api = api

    async def record(self, obj: dict[str, Any], event_type: str, reason: str, message: str) -> None:
        body = build_event(obj, event_type, reason, message)
        namespace = body["metadata"]["namespace"]
        try:
            await self._api.create_namespaced_event(namespace, body)
        except ApiException as exc:
            _log.warning(
                "event_record_failed",
                namespace=namespace,
                object=body["involvedObject"]["name"],
                reason=reason,
                status=exc.status,
            )
            return
        _log.debug("event_recorded", namespace=namespace, object=body["involvedObject"]["name"], reason=reason)


class LogEventRecorder:
    """Recorder that only logs; used when no API server is configured."""

    async def record(self, obj: dict[str, Any], event_type: str, reason: str, message: str) -> None:
        meta = obj.get("metadata") or {}
        _log.info(
            "event",
            namespace=meta.get("namespace", ""),
            object=meta.get("name", ""),
            type=event_type,
            reason=reason,
            message=message,
        )
