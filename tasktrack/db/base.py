"""
TaskTrack Database Base — SQLAlchemy declarative base, mixins, and the Database handle.

Provides:
- Base: SQLAlchemy declarative base for all models
- TimestampMixin: created_at, updated_at
- new_id(): store-assigned opaque identifiers (32-char hex UUID4)
- Database: engine + session factory built from DatabaseConfig, passed by reference
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Optional

from sqlalchemy import Column, DateTime, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tasktrack.engine.config import DatabaseConfig

logger = logging.getLogger("tasktrack.db")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a store identifier."""
    return uuid.uuid4().hex


def is_valid_id(value: Any) -> bool:
    """True if ``value`` is a well-formed store identifier."""
    if not isinstance(value, str) or not value:
        return False
    try:
        return uuid.UUID(value).hex == value
    except ValueError:
        return False


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all TaskTrack models."""
    pass


class TimestampMixin:
    """Adds created_at and updated_at columns."""
    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )


class Database:
    """
    Owns the SQLAlchemy engine and session factory for one store URL.

    Built once at startup from configuration and handed to every component
    that touches the store.

    Usage:
        db = Database(config.database)
        db.create_all()
        with db.session_scope() as session:
            session.add(obj)
    """

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._engine = create_engine(config.url, **self._engine_kwargs(config))
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    @staticmethod
    def _engine_kwargs(config: DatabaseConfig) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"echo": config.echo}
        if config.url.startswith("sqlite"):
            # One shared connection so threadpool handlers see the same in-memory DB
            kwargs["connect_args"] = {"check_same_thread": False}
            kwargs["poolclass"] = StaticPool
            return kwargs
        kwargs.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=config.pool_pre_ping,
        )
        return kwargs

    @property
    def engine(self):
        return self._engine

    @property
    def url(self) -> str:
        return self._config.url

    def create_all(self) -> None:
        """Create all tables (dev / init path)."""
        # Import registers the models on Base.metadata
        from tasktrack.db import models  # noqa: F401

        Base.metadata.create_all(self._engine)
        logger.info("Database tables ensured")

    def drop_all(self) -> None:
        from tasktrack.db import models  # noqa: F401

        Base.metadata.drop_all(self._engine)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Context manager for sessions with auto-commit/rollback.

        Usage:
            with db.session_scope() as session:
                session.query(Task).filter_by(user_id=uid).all()
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Close the connection pool. Used during shutdown."""
        self._engine.dispose()


def open_database(config: DatabaseConfig, create_tables: Optional[bool] = None) -> Database:
    """Build a Database and optionally create its tables."""
    db = Database(config)
    if config.create_tables if create_tables is None else create_tables:
        db.create_all()
    return db
