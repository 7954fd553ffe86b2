"""BackendService description codec.

The description is a small JSON document carrying the owning service and
the features that forced a non-GA API version::

    {"kubernetes.io/service-name": "default/web",
     "kubernetes.io/service-port": "80",
     "x-features": ["SecurityPolicy"]}

Other controllers read it back, so the key names are a wire contract.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

import structlog

_log = structlog.get_logger(component="utils.description")

_KEY_SERVICE_NAME = "kubernetes.io/service-name"
_KEY_SERVICE_PORT = "kubernetes.io/service-port"
_KEY_FEATURES = "x-features"


@dataclass
class Description:
    """Decoded BackendService description."""

    service_name: str = ""
    service_port: str = ""
    x_features: list[str] = field(default_factory=list)

    def to_string(self) -> str:
        payload: dict[str, object] = {
            _KEY_SERVICE_NAME: self.service_name,
            _KEY_SERVICE_PORT: self.service_port,
        }
        if self.x_features:
            payload[_KEY_FEATURES] = list(self.x_features)
        return json.dumps(payload, separators=(",", ":"))

    def __str__(self) -> str:
        return self.to_string()

    @classmethod
    def from_string(cls, raw: str) -> Description:
        """Decode *raw*; anything that is not a description yields an empty one."""
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            _log.debug("description_not_json", description=raw[:80])
            return cls()
        if not isinstance(data, dict):
            return cls()

        features = data.get(_KEY_FEATURES) or []
        if not isinstance(features, list):
            features = []
        return cls(
            service_name=str(data.get(_KEY_SERVICE_NAME, "")),
            service_port=str(data.get(_KEY_SERVICE_PORT, "")),
            x_features=[str(f) for f in features],
        )
