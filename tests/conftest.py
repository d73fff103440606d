# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across unit and integration tests.
"""

from typing import Any

import pytest

from src.core.config.settings import ProvisioningSettings
from src.domains.provisioning.service import ProvisioningService
from tests.fakes import FakeDirectoryStore, FakeIdentityProvider


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# =============================================================================
# Provisioning Fixtures
# =============================================================================


@pytest.fixture
def provisioning_settings() -> ProvisioningSettings:
    """Provisioning settings with short timeouts."""
    return ProvisioningSettings(
        max_username_attempts=100,
        min_username_length=4,
        max_concurrency=1,
        external_call_timeout=1.0,
        batch_delay_seconds=0.0,
    )


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    """In-memory identity provider."""
    return FakeIdentityProvider()


@pytest.fixture
def directory() -> FakeDirectoryStore:
    """In-memory directory store."""
    return FakeDirectoryStore()


@pytest.fixture
def service(
    identity_provider: FakeIdentityProvider,
    directory: FakeDirectoryStore,
    provisioning_settings: ProvisioningSettings,
) -> ProvisioningService:
    """Provisioning service wired to the in-memory adapters."""
    return ProvisioningService(identity_provider, directory, provisioning_settings)


# =============================================================================
# Sample Rows
# =============================================================================


@pytest.fixture
def student_row() -> dict[str, Any]:
    """A valid student row with canonical headers."""
    return {
        "lastName": "Батбаяр",
        "firstName": "Хонгорзул",
        "phone1": "99123456",
        "grade": 5,
        "group": "Б",
    }


@pytest.fixture
def localized_student_row() -> dict[str, Any]:
    """A valid student row with localized headers."""
    return {
        "Овог": "Дорж",
        "Нэр": "Баатар",
        "Анги": "7",
        "Бүлэг": "А",
        "Утас 1": 88112233.0,
        "Утас 2": "",
    }


@pytest.fixture
def teacher_row() -> dict[str, Any]:
    """A valid teacher row without class binding."""
    return {
        "lastName": "Эрдэнэ",
        "firstName": "Сараа",
        "phone1": "95001122",
    }
