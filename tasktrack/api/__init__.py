"""TaskTrack HTTP API — FastAPI app factory, routes and dependencies."""

from tasktrack.api.app import create_app  # noqa: F401

__all__ = ["create_app"]
