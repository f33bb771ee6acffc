"""
TaskTrack Security Engine — signed identity tokens and the request identity boundary.

Implements:
- Password hashing (bcrypt)
- TokenService: issue / decode time-bound HS256 JWTs against one shared secret
- IdentityVerifier: "Bearer <token>" header → Principal, failing closed
- owns(): the single ownership predicate applied to every task access
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional

import bcrypt
import jwt

from tasktrack.engine.config import SecurityConfig
from tasktrack.engine.context import bind_user, get_request_context
from tasktrack.engine.errors import AuthenticationError
from tasktrack.engine.logging import log, log_security_event

if TYPE_CHECKING:
    from tasktrack.schemas import Principal
    from tasktrack.services.principals import PrincipalLoader

logger = logging.getLogger("tasktrack.engine.security")

BEARER_PREFIX = "Bearer "

MESSAGES = {
    AuthenticationError.MISSING_TOKEN: "Authorization token missing",
    AuthenticationError.MALFORMED_TOKEN: "Malformed token",
    AuthenticationError.EXPIRED_TOKEN: "Token expired",
    AuthenticationError.PRINCIPAL_NOT_FOUND: "User not found",
    AuthenticationError.INVALID_CREDENTIALS: "Invalid credentials",
}


# ---------------------------------------------------------------------------
# Password Utilities
# ---------------------------------------------------------------------------

def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


# ---------------------------------------------------------------------------
# Token Service
# ---------------------------------------------------------------------------

class TokenService:
    """
    Issues and decodes signed identity tokens.

    Claims: sub (principal id), iat, exp. Signature and expiry are checked
    against the single secret from SecurityConfig.
    """

    def __init__(self, config: SecurityConfig):
        self._secret = config.jwt_secret
        self._algorithm = config.jwt_algorithm
        self._ttl = config.token_ttl_seconds

    def issue(self, principal_id: str, ttl_seconds: Optional[int] = None) -> str:
        now = datetime.now(timezone.utc)
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        claims = {
            "sub": principal_id,
            "iat": now,
            "exp": now + timedelta(seconds=ttl),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Decode and verify a token.

        Raises:
            AuthenticationError with reason ExpiredToken or MalformedToken.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError(
                MESSAGES[AuthenticationError.EXPIRED_TOKEN],
                reason=AuthenticationError.EXPIRED_TOKEN,
            ) from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(
                MESSAGES[AuthenticationError.MALFORMED_TOKEN],
                reason=AuthenticationError.MALFORMED_TOKEN,
            ) from e

        if not isinstance(claims.get("sub"), str) or not claims["sub"]:
            raise AuthenticationError(
                MESSAGES[AuthenticationError.MALFORMED_TOKEN],
                reason=AuthenticationError.MALFORMED_TOKEN,
            )
        return claims


# ---------------------------------------------------------------------------
# Identity Verifier
# ---------------------------------------------------------------------------

def extract_bearer_token(header_value: Optional[str]) -> str:
    """Return the token from a "Bearer <token>" header or raise MissingToken."""
    if not header_value or not header_value.startswith(BEARER_PREFIX):
        raise AuthenticationError(
            MESSAGES[AuthenticationError.MISSING_TOKEN],
            reason=AuthenticationError.MISSING_TOKEN,
        )
    token = header_value[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError(
            MESSAGES[AuthenticationError.MISSING_TOKEN],
            reason=AuthenticationError.MISSING_TOKEN,
        )
    return token


class IdentityVerifier:
    """
    The single authorization boundary: every task and profile request
    passes through verify() before any resource is touched.

    Performs a principal lookup only. The store is never written.
    """

    def __init__(self, tokens: TokenService, principals: PrincipalLoader):
        self._tokens = tokens
        self._principals = principals

    def verify(self, header_value: Optional[str]) -> Principal:
        """
        Resolve an Authorization header to a Principal.

        Raises:
            AuthenticationError (MissingToken / MalformedToken /
            ExpiredToken / PrincipalNotFound).
        """
        try:
            token = extract_bearer_token(header_value)
            claims = self._tokens.decode(token)
            principal = self._principals.load(claims["sub"])
            if principal is None:
                raise AuthenticationError(
                    MESSAGES[AuthenticationError.PRINCIPAL_NOT_FOUND],
                    reason=AuthenticationError.PRINCIPAL_NOT_FOUND,
                    user_id=claims["sub"],
                )
        except AuthenticationError as e:
            ctx = get_request_context()
            log(log_security_event(
                event="authentication_rejected",
                reason=e.reason or "unknown",
                request_id=ctx.request_id if ctx else None,
                user_id=e.user_id,
            ))
            logger.info(f"Authentication rejected: {e.reason}")
            raise

        bind_user(principal.id)
        return principal


def owns(task, principal) -> bool:
    """True if ``principal`` is the owner of ``task``."""
    return task is not None and principal is not None and task.user_id == principal.id
