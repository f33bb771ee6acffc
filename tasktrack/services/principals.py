"""
TaskTrack Principal Loader — principal lookup and profile operations.

The loader is what the identity verifier calls after a token decodes; it
returns the public view of the user, never the stored credential hash.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from tasktrack.db import Database, User, is_valid_id
from tasktrack.db.base import utc_now
from tasktrack.engine.context import get_request_context
from tasktrack.engine.errors import InternalError, NotFoundError
from tasktrack.engine.logging import log, log_record_operation
from tasktrack.schemas import Principal, ProfileUpdateRequest, parse_payload

logger = logging.getLogger("tasktrack.services.principals")


class PrincipalLoader:
    """Resolves principal ids to public user views and applies profile edits."""

    def __init__(self, database: Database):
        self._db = database

    def load(self, principal_id: str) -> Optional[Principal]:
        """Return the Principal for ``principal_id`` or None if it does not exist."""
        if not is_valid_id(principal_id):
            return None
        try:
            with self._db.session_scope() as session:
                user = session.get(User, principal_id)
                return Principal.from_record(user) if user else None
        except SQLAlchemyError as e:
            logger.error(f"Principal lookup failed: {e}")
            raise InternalError("Principal lookup failed", operation="load_principal") from e

    def get_profile(self, principal: Principal) -> Principal:
        return principal

    def update_profile(self, principal: Principal, payload: Any) -> Principal:
        """
        Apply a partial profile update.

        Only keys present in ``payload`` change. ``email`` is immutable here.

        Raises:
            ValidationError: payload violates field constraints.
            NotFoundError: the principal was removed since verification.
        """
        request = parse_payload(ProfileUpdateRequest, payload)
        changes = request.changes()

        try:
            with self._db.session_scope() as session:
                user = session.get(User, principal.id)
                if user is None:
                    raise NotFoundError("User not found", user_id=principal.id)
                for key, value in changes.items():
                    setattr(user, key, value)
                if changes:
                    user.updated_at = utc_now()
                session.flush()
                updated = Principal.from_record(user)
        except SQLAlchemyError as e:
            logger.error(f"Profile update failed for {principal.id}: {e}")
            raise InternalError("Profile update failed", operation="update_profile") from e

        ctx = get_request_context()
        log(log_record_operation(
            operation="update",
            record_type="users",
            record_id=principal.id,
            user_id=principal.id,
            request_id=ctx.request_id if ctx else None,
            fields_changed=list(changes),
        ))
        return updated
