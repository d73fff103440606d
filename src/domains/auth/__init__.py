# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain: JWT access token validation.

Exports:
    JWTManager: JWT token decoding and role checks.
"""

from src.domains.auth.jwt import (
    InvalidTokenError,
    JWTManager,
    TokenExpiredError,
    TokenPayload,
)

__all__ = [
    "InvalidTokenError",
    "JWTManager",
    "TokenExpiredError",
    "TokenPayload",
]
