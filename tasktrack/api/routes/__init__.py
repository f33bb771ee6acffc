"""TaskTrack API routers."""

from tasktrack.api.routes import auth, health, profile, tasks  # noqa: F401

ROUTERS = [health.router, auth.router, tasks.router, profile.router]
