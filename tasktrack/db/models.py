"""
TaskTrack Models — SQLAlchemy tables for the task store.

Tables:
1. users — principals (credential secret never leaves this module's callers)
2. tasks — owner-scoped work items
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
)

from tasktrack.db.base import Base, TimestampMixin, new_id

TASK_STATUSES = ("pending", "in-progress", "completed")
TASK_PRIORITIES = ("low", "medium", "high")

DEFAULT_STATUS = "pending"
DEFAULT_PRIORITY = "medium"

NAME_MAX_LENGTH = 50
BIO_MAX_LENGTH = 500
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000


def _in_clause(column: str, values) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


# ---------------------------------------------------------------------------
# 1. Users
# ---------------------------------------------------------------------------

class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    bio = Column(String(BIO_MAX_LENGTH), nullable=True)
    avatar = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


# ---------------------------------------------------------------------------
# 2. Tasks
# ---------------------------------------------------------------------------

class Task(Base, TimestampMixin):
    __tablename__ = "tasks"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default=DEFAULT_STATUS, nullable=False)
    priority = Column(String(10), default=DEFAULT_PRIORITY, nullable=False)
    due_date = Column(Date, nullable=True)
    tags = Column(JSON, default=list, nullable=False)

    __table_args__ = (
        CheckConstraint(_in_clause("status", TASK_STATUSES), name="ck_tasks_status"),
        CheckConstraint(_in_clause("priority", TASK_PRIORITIES), name="ck_tasks_priority"),
        Index("idx_tasks_user_created", "user_id", "created_at"),
        Index("idx_tasks_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, user_id={self.user_id}, status='{self.status}')>"
