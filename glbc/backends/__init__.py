"""Backend service pool."""

from glbc.backends.pool import Backends, ensure_description

__all__ = ["Backends", "ensure_description"]
