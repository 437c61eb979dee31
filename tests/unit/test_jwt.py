# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for JWT token validation."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt
from pydantic import SecretStr

from learnhub.core.config import JWTSettings
from learnhub.domains.auth.jwt import (
    InvalidTokenError,
    JWTManager,
    TokenExpiredError,
)


class TestJWTManager:
    """Tests for JWTManager class."""

    def test_access_token_round_trip(self, jwt_manager: JWTManager) -> None:
        """Test that claims survive encoding."""
        user_id = str(uuid4())

        token = jwt_manager.create_access_token(
            user_id=user_id,
            user_type="teacher",
            roles=["teacher"],
            email="ada@example.com",
            name="Ada",
        )
        payload = jwt_manager.decode_token(token)

        assert payload.sub == user_id
        assert payload.type == "access"
        assert payload.user_type == "teacher"
        assert payload.roles == ["teacher"]
        assert payload.email == "ada@example.com"
        assert payload.name == "Ada"
        assert payload.exp > payload.iat

    def test_expired_token_raises(self, jwt_manager: JWTManager) -> None:
        """Test that expired tokens are rejected."""
        token = jwt_manager.create_access_token(
            user_id=str(uuid4()),
            expires_in=timedelta(seconds=-10),
        )

        with pytest.raises(TokenExpiredError):
            jwt_manager.decode_token(token)

    def test_wrong_secret_raises(self, jwt_manager: JWTManager) -> None:
        """Test that tokens signed with another key are rejected."""
        other = JWTManager(JWTSettings(secret_key=SecretStr("another-secret")))
        token = other.create_access_token(user_id=str(uuid4()))

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)

    def test_refresh_token_rejected_as_access(
        self,
        jwt_manager: JWTManager,
        jwt_settings: JWTSettings,
    ) -> None:
        """Test that a refresh token cannot be used for access."""
        token = jwt.encode(
            {
                "sub": str(uuid4()),
                "type": "refresh",
                "exp": 9999999999,
                "iat": 1,
                "jti": "abc",
            },
            jwt_settings.secret_key.get_secret_value(),
            algorithm=jwt_settings.algorithm,
        )

        with pytest.raises(InvalidTokenError, match="Expected access token"):
            jwt_manager.decode_token(token)

    def test_missing_claims_raises(
        self,
        jwt_manager: JWTManager,
        jwt_settings: JWTSettings,
    ) -> None:
        """Test that tokens without required claims are rejected."""
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "access", "exp": 9999999999},
            jwt_settings.secret_key.get_secret_value(),
            algorithm=jwt_settings.algorithm,
        )

        with pytest.raises(InvalidTokenError):
            jwt_manager.decode_token(token)
