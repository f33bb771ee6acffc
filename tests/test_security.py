"""Unit tests for tasktrack.engine.security — password utils, TokenService, IdentityVerifier."""

import jwt
import pytest

from tasktrack.db import new_id
from tasktrack.engine.config import SecurityConfig
from tasktrack.engine.context import RequestContext, clear_request_context, set_request_context
from tasktrack.engine.errors import AuthenticationError
from tasktrack.engine.security import (
    TokenService,
    extract_bearer_token,
    hash_password,
    owns,
    verify_password,
)


class TestPasswordUtils:
    """Test password hashing and verification."""

    def test_hash_and_verify(self):
        hashed = hash_password("MySecret123!", rounds=4)
        assert hashed != "MySecret123!"
        assert verify_password("MySecret123!", hashed) is True

    def test_wrong_password_fails(self):
        hashed = hash_password("correct", rounds=4)
        assert verify_password("wrong", hashed) is False

    def test_non_bcrypt_hash_fails(self):
        assert verify_password("anything", "plaintext") is False


class TestTokenService:

    def setup_method(self):
        self.tokens = TokenService(SecurityConfig(jwt_secret="k1"))

    def test_issue_and_decode(self):
        claims = self.tokens.decode(self.tokens.issue("abc"))
        assert claims["sub"] == "abc"
        assert claims["exp"] > claims["iat"]

    def test_expired(self):
        token = self.tokens.issue("abc", ttl_seconds=-60)
        with pytest.raises(AuthenticationError) as exc:
            self.tokens.decode(token)
        assert exc.value.reason == AuthenticationError.EXPIRED_TOKEN
        assert exc.value.message == "Token expired"

    def test_garbage_is_malformed(self):
        with pytest.raises(AuthenticationError) as exc:
            self.tokens.decode("not.a.token")
        assert exc.value.reason == AuthenticationError.MALFORMED_TOKEN
        assert exc.value.message == "Malformed token"

    def test_wrong_secret_is_malformed(self):
        other = TokenService(SecurityConfig(jwt_secret="k2"))
        with pytest.raises(AuthenticationError) as exc:
            self.tokens.decode(other.issue("abc"))
        assert exc.value.reason == AuthenticationError.MALFORMED_TOKEN

    def test_missing_sub_is_malformed(self):
        token = jwt.encode({"exp": 9999999999}, "k1", algorithm="HS256")
        with pytest.raises(AuthenticationError) as exc:
            self.tokens.decode(token)
        assert exc.value.reason == AuthenticationError.MALFORMED_TOKEN

    def test_missing_exp_is_malformed(self):
        token = jwt.encode({"sub": "abc"}, "k1", algorithm="HS256")
        with pytest.raises(AuthenticationError) as exc:
            self.tokens.decode(token)
        assert exc.value.reason == AuthenticationError.MALFORMED_TOKEN


class TestExtractBearerToken:

    @pytest.mark.parametrize("header", [None, "", "Token abc", "bearer abc", "Bearer ", "Bearer    "])
    def test_missing(self, header):
        with pytest.raises(AuthenticationError) as exc:
            extract_bearer_token(header)
        assert exc.value.reason == AuthenticationError.MISSING_TOKEN
        assert exc.value.message == "Authorization token missing"

    def test_extracts(self):
        assert extract_bearer_token("Bearer abc.def") == "abc.def"


class TestIdentityVerifier:

    def test_resolves_principal(self, services, alice):
        header = f"Bearer {services.tokens.issue(alice.id)}"
        principal = services.verifier.verify(header)
        assert principal.id == alice.id
        assert principal.email == "alice@example.com"
        assert "password_hash" not in principal.to_public()

    def test_unknown_principal(self, services):
        header = f"Bearer {services.tokens.issue(new_id())}"
        with pytest.raises(AuthenticationError) as exc:
            services.verifier.verify(header)
        assert exc.value.reason == AuthenticationError.PRINCIPAL_NOT_FOUND
        assert exc.value.message == "User not found"

    def test_binds_user_to_request_context(self, services, alice):
        ctx = RequestContext(method="GET", path="/api/tasks")
        set_request_context(ctx)
        try:
            services.verifier.verify(f"Bearer {services.tokens.issue(alice.id)}")
            assert ctx.user_id == alice.id
        finally:
            clear_request_context()

    def test_rejects_before_lookup(self, services):
        with pytest.raises(AuthenticationError) as exc:
            services.verifier.verify(None)
        assert exc.value.reason == AuthenticationError.MISSING_TOKEN


class TestOwns:

    def test_owner_matches(self, store, alice, bob):
        task = store.create(alice.id, {"title": "Mine"})
        assert owns(task, alice) is True
        assert owns(task, bob) is False

    def test_none_never_owns(self, alice):
        assert owns(None, alice) is False
