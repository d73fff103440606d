# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""HTTP client for the external identity provider."""

from src.infrastructure.identity.client import IdentityProviderClient

__all__ = ["IdentityProviderClient"]
