# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for logging helpers."""

import structlog

from src.utils.logging import REDACTED, bind_context, clear_context, redact_secrets


class TestRedactSecrets:
    """Tests for the redact_secrets processor."""

    def test_passwords_are_redacted(self) -> None:
        """Test password fields never reach the renderer."""
        event = {
            "event": "row_provisioned",
            "username": "baatare",
            "temporary_password": "99123456BE$",
            "Password": "hunter2",
        }

        result = redact_secrets(None, "info", event)

        assert result["temporary_password"] == REDACTED
        assert result["Password"] == REDACTED
        assert result["username"] == "baatare"
        assert result["event"] == "row_provisioned"

    def test_authorization_is_redacted(self) -> None:
        """Test bearer headers are hidden."""
        result = redact_secrets(None, "debug", {"authorization": "Bearer sk_live"})

        assert result["authorization"] == REDACTED


class TestContext:
    """Tests for context binding helpers."""

    def test_bind_and_clear(self) -> None:
        """Test bound values are visible until cleared."""
        bind_context(batch_id="b-1", role="student")

        assert structlog.contextvars.get_contextvars() == {
            "batch_id": "b-1",
            "role": "student",
        }

        clear_context()

        assert structlog.contextvars.get_contextvars() == {}
