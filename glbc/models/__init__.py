"""Configuration data structures for glbc."""

from glbc.models.config import GLBCConfig

__all__ = ["GLBCConfig"]
