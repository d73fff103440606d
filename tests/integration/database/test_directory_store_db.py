# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the directory store.

Tests the SQLAlchemy store against a real database.
Requires PostgreSQL to be running.
"""

import os
from typing import Any

import pytest
from sqlalchemy import update

from src.domains.provisioning.exceptions import DirectoryStoreError
from src.domains.provisioning.validation import validate_row
from src.infrastructure.database.directory import SQLAlchemyDirectoryStore
from src.infrastructure.database.models.directory import Person
from src.models.provisioning import PersonRole

# Skip all tests if database is not available
pytestmark = pytest.mark.skipif(
    not os.environ.get("TEST_DATABASE_URL"),
    reason="TEST_DATABASE_URL not set",
)


@pytest.fixture
def store(directory_sessionmaker) -> SQLAlchemyDirectoryStore:
    """Directory store on the test database."""
    return SQLAlchemyDirectoryStore(directory_sessionmaker)


class TestDirectoryStore:
    """Tests for SQLAlchemyDirectoryStore on PostgreSQL."""

    @pytest.mark.asyncio
    async def test_insert_and_list(
        self,
        store: SQLAlchemyDirectoryStore,
        student_row: dict[str, Any],
    ) -> None:
        """Verify an inserted record shows up in the username listing."""
        person = validate_row(student_row).person

        record_id = await store.insert_person(person, "user_1", "khongorzulb")

        assert record_id
        assert await store.list_usernames() == {"khongorzulb"}

    @pytest.mark.asyncio
    async def test_duplicate_identity_rejected(
        self,
        store: SQLAlchemyDirectoryStore,
        student_row: dict[str, Any],
    ) -> None:
        """Verify one identity cannot back two records."""
        person = validate_row(student_row).person
        await store.insert_person(person, "user_1", "khongorzulb")

        with pytest.raises(DirectoryStoreError):
            await store.insert_person(person, "user_1", "khongorzulb2")

    @pytest.mark.asyncio
    async def test_existing_phones_by_role(
        self,
        store: SQLAlchemyDirectoryStore,
        student_row: dict[str, Any],
    ) -> None:
        """Verify phone lookups are scoped to the role."""
        person = validate_row(student_row).person
        await store.insert_person(person, "user_1", "khongorzulb")

        students = await store.existing_phones(["99123456", "88000000"], PersonRole.STUDENT)
        teachers = await store.existing_phones(["99123456"], PersonRole.TEACHER)

        assert students == {"99123456"}
        assert teachers == set()

    @pytest.mark.asyncio
    async def test_soft_deleted_phone_is_free(
        self,
        store: SQLAlchemyDirectoryStore,
        directory_sessionmaker,
        student_row: dict[str, Any],
    ) -> None:
        """Verify soft-deleted records free their phone but keep their username."""
        person = validate_row(student_row).person
        await store.insert_person(person, "user_1", "khongorzulb")

        async with directory_sessionmaker() as session:
            await session.execute(update(Person).values(deleted_at=Person.created_at))
            await session.commit()

        assert await store.existing_phones(["99123456"], PersonRole.STUDENT) == set()
        assert await store.list_usernames() == {"khongorzulb"}
