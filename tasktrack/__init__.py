"""
TaskTrack — Authenticated personal task-tracking service.

Each principal manages their own tasks and profile over a JSON HTTP API.
Every task operation is scoped to the requesting principal.
"""

__version__ = "1.0.0"
__all__ = ["engine", "db", "services", "api"]
