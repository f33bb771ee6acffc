"""TaskTrack persistence — SQLAlchemy models and the Database handle."""

from tasktrack.db.base import Base, Database, is_valid_id, new_id, open_database  # noqa: F401
from tasktrack.db.models import Task, User  # noqa: F401
