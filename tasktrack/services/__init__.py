"""TaskTrack Services — accounts, principals, task query/store/controller, stats."""

from tasktrack.services.accounts import AccountService  # noqa: F401
from tasktrack.services.principals import PrincipalLoader  # noqa: F401
from tasktrack.services.query_builder import TaskQuery, build_task_query  # noqa: F401
from tasktrack.services.stats import summarize  # noqa: F401
from tasktrack.services.task_store import TaskStore  # noqa: F401
from tasktrack.services.tasks import TaskController  # noqa: F401

__all__ = [
    "AccountService",
    "PrincipalLoader",
    "TaskQuery",
    "build_task_query",
    "summarize",
    "TaskStore",
    "TaskController",
]
