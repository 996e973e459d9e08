"""REST API layer for dirmon.

Exposes:
    create_app -- FastAPI application factory.
"""

from dirmon.api.app import create_app

__all__ = ["create_app"]
