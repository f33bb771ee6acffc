"""
TaskTrack Account Service — registration, login and token issuance.

Passwords are stored as bcrypt hashes. A failed login never reveals whether
the email exists.
"""

from __future__ import annotations

import logging
from typing import Any, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tasktrack.db import Database, User
from tasktrack.engine.config import SecurityConfig
from tasktrack.engine.context import get_request_context
from tasktrack.engine.errors import AuthenticationError, InternalError, ValidationError
from tasktrack.engine.logging import log, log_record_operation, log_security_event
from tasktrack.engine.security import MESSAGES, TokenService, hash_password, verify_password
from tasktrack.schemas import LoginRequest, Principal, RegisterRequest, parse_payload

logger = logging.getLogger("tasktrack.services.accounts")


def _duplicate_email(email: str) -> ValidationError:
    return ValidationError(
        "Validation failed",
        validation_errors=[{
            "field": "email",
            "message": "Email is already registered",
            "value": email,
        }],
    )


class AccountService:
    """Creates principals and exchanges credentials for identity tokens."""

    def __init__(self, database: Database, tokens: TokenService, config: SecurityConfig):
        self._db = database
        self._tokens = tokens
        self._config = config

    def issue_token(self, principal_id: str) -> str:
        return self._tokens.issue(principal_id)

    def create_user(self, name: str, email: str, password: str) -> Principal:
        """Create a user from plain arguments (CLI path)."""
        return self._store_user(self._validate({"name": name, "email": email, "password": password}))

    def register(self, payload: Any) -> Tuple[str, Principal]:
        """
        Create a user from a request body and issue its first token.

        Raises:
            ValidationError: bad fields or email already registered.
        """
        principal = self._store_user(self._validate(payload))
        return self.issue_token(principal.id), principal

    def _validate(self, payload: Any) -> RegisterRequest:
        return parse_payload(
            RegisterRequest,
            payload,
            context={"password_min_length": self._config.password_min_length},
        )

    def _store_user(self, request: RegisterRequest) -> Principal:
        try:
            with self._db.session_scope() as session:
                existing = session.scalar(select(User.id).where(User.email == request.email))
                if existing is not None:
                    raise _duplicate_email(request.email)
                user = User(
                    name=request.name,
                    email=request.email,
                    password_hash=hash_password(request.password, self._config.bcrypt_rounds),
                )
                session.add(user)
                session.flush()
                principal = Principal.from_record(user)
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same email
            raise _duplicate_email(request.email) from e
        except SQLAlchemyError as e:
            logger.error(f"User creation failed: {e}")
            raise InternalError("User creation failed", operation="create_user") from e

        ctx = get_request_context()
        log(log_record_operation(
            operation="create",
            record_type="users",
            record_id=principal.id,
            user_id=principal.id,
            request_id=ctx.request_id if ctx else None,
        ))
        logger.info(f"Registered user {principal.id}")
        return principal

    def login(self, payload: Any) -> Tuple[str, Principal]:
        """
        Exchange email + password for a token.

        Raises:
            ValidationError: malformed payload.
            AuthenticationError: unknown email or wrong password.
        """
        request = parse_payload(LoginRequest, payload)
        try:
            with self._db.session_scope() as session:
                user = session.scalar(select(User).where(User.email == request.email))
                valid = user is not None and verify_password(request.password, user.password_hash)
                principal = Principal.from_record(user) if valid else None
        except SQLAlchemyError as e:
            logger.error(f"Login lookup failed: {e}")
            raise InternalError("Login failed", operation="login") from e

        ctx = get_request_context()
        request_id = ctx.request_id if ctx else None
        if principal is None:
            log(log_security_event(
                event="login_failed",
                reason=AuthenticationError.INVALID_CREDENTIALS,
                request_id=request_id,
            ))
            raise AuthenticationError(
                MESSAGES[AuthenticationError.INVALID_CREDENTIALS],
                reason=AuthenticationError.INVALID_CREDENTIALS,
            )

        log(log_security_event(
            event="login_succeeded",
            reason="credentials_verified",
            request_id=request_id,
            user_id=principal.id,
            level="INFO",
        ))
        return self.issue_token(principal.id), principal
