# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""JWT access token validation using python-jose.

Access tokens are issued by the platform's identity service. This
service only decodes them and reads the caller's roles; minting is kept
for operator tooling and tests.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> claims = jwt_manager.decode_token(token)
    >>> "admin" in claims.roles
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, jwt
from pydantic import BaseModel

from src.core.config.settings import JWTSettings

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT access token payload.

    Attributes:
        sub: Subject (user ID).
        roles: Role codes held by the user.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID, if present.
    """

    sub: str
    roles: list[str] = []
    exp: int
    iat: int | None = None
    jti: str | None = None


class JWTError(Exception):
    """Base exception for JWT operations."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTManager:
    """JWT access token validation.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings

    def create_access_token(
        self,
        user_id: str,
        roles: list[str] | None = None,
        expires_in: timedelta | None = None,
    ) -> str:
        """Create a signed access token.

        Args:
            user_id: User identifier.
            roles: Role codes to embed.
            expires_in: Lifetime; defaults to access_token_expire_minutes.

        Returns:
            JWT access token string.
        """
        now = datetime.now(timezone.utc)
        lifetime = expires_in or timedelta(minutes=self._settings.access_token_expire_minutes)

        payload = {
            "sub": str(user_id),
            "roles": roles or [],
            "exp": int((now + lifetime).timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }

        return jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate a JWT token.

        Args:
            token: JWT token string.

        Returns:
            TokenPayload with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the signature or claims are invalid.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
            )
            return TokenPayload(
                sub=payload["sub"],
                roles=payload.get("roles", []),
                exp=payload["exp"],
                iat=payload.get("iat"),
                jti=payload.get("jti"),
            )

        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except Exception as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError(f"Invalid token: {str(e)}")

    def is_admin(self, payload: TokenPayload) -> bool:
        """Whether the token grants the provisioning admin role."""
        return self._settings.admin_role in payload.roles
