"""REST API layer for glbc.

Exposes:
    create_app -- FastAPI application factory.
"""

from glbc.api.app import create_app

__all__ = ["create_app"]
