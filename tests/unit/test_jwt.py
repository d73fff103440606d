# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for JWT token utilities.

Tests the JWTManager class and token operations.
"""

from datetime import timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from pydantic import SecretStr

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)


@pytest.fixture
def jwt_settings() -> MagicMock:
    """Create mock JWT settings."""
    settings = MagicMock()
    settings.secret_key = SecretStr("test-secret-key-for-jwt-testing")
    settings.algorithm = "HS256"
    settings.admin_role = "admin"
    settings.access_token_expire_minutes = 30
    return settings


@pytest.fixture
def jwt_manager(jwt_settings: MagicMock) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


class TestJWTManager:
    """Tests for JWTManager class."""

    def test_round_trip_claims(self, jwt_manager: JWTManager) -> None:
        """Test that decode_token returns the embedded claims."""
        user_id = str(uuid4())

        token = jwt_manager.create_access_token(user_id=user_id, roles=["admin"])
        payload = jwt_manager.decode_token(token)

        assert isinstance(payload, TokenPayload)
        assert payload.sub == user_id
        assert payload.roles == ["admin"]
        assert payload.jti is not None

    def test_default_lifetime(self, jwt_manager: JWTManager) -> None:
        """Test tokens live for access_token_expire_minutes."""
        payload = jwt_manager.decode_token(jwt_manager.create_access_token(user_id="u1"))

        assert payload.exp - payload.iat == 30 * 60

    def test_expired_token_raises(self, jwt_manager: JWTManager) -> None:
        """Test that an expired token raises TokenExpiredError."""
        token = jwt_manager.create_access_token(
            user_id="u1",
            expires_in=timedelta(seconds=-10),
        )

        with pytest.raises(TokenExpiredError):
            jwt_manager.decode_token(token)

    def test_wrong_signature_raises(
        self,
        jwt_manager: JWTManager,
        jwt_settings: MagicMock,
    ) -> None:
        """Test that a token signed with another key is rejected."""
        other_settings = MagicMock()
        other_settings.secret_key = SecretStr("another-secret")
        other_settings.algorithm = "HS256"
        other_settings.access_token_expire_minutes = 30
        token = JWTManager(other_settings).create_access_token(user_id="u1")

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_garbage_token_raises(self, jwt_manager: JWTManager) -> None:
        """Test that a malformed token raises InvalidTokenError."""
        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token("not.a.token")

    def test_is_admin(self, jwt_manager: JWTManager) -> None:
        """Test the admin role check."""
        admin = jwt_manager.decode_token(
            jwt_manager.create_access_token(user_id="u1", roles=["admin", "teacher"])
        )
        teacher = jwt_manager.decode_token(
            jwt_manager.create_access_token(user_id="u2", roles=["teacher"])
        )

        assert jwt_manager.is_admin(admin)
        assert not jwt_manager.is_admin(teacher)
