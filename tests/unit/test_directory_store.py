# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the SQLAlchemy directory store.

The session factory is mocked; these tests cover the mapping between
domain inputs, ORM rows and adapter errors.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.domains.provisioning.exceptions import DirectoryStoreError
from src.domains.provisioning.validation import validate_row
from src.infrastructure.database.directory import SQLAlchemyDirectoryStore
from src.infrastructure.database.models.directory import Person
from src.models.provisioning import PersonRole


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock async session."""
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_sessionmaker(mock_session: AsyncMock) -> MagicMock:
    """Session factory yielding mock_session."""
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_session
    factory.return_value.__aexit__.return_value = False
    return factory


@pytest.fixture
def store(mock_sessionmaker: MagicMock) -> SQLAlchemyDirectoryStore:
    """Directory store over the mock session factory."""
    return SQLAlchemyDirectoryStore(mock_sessionmaker)


def _scalars_result(values: list[Any]) -> MagicMock:
    result = MagicMock()
    result.scalars.return_value.all.return_value = values
    return result


class TestInsertPerson:
    """Tests for SQLAlchemyDirectoryStore.insert_person."""

    @pytest.mark.asyncio
    async def test_inserts_linked_record(
        self,
        store: SQLAlchemyDirectoryStore,
        mock_session: AsyncMock,
        student_row: dict[str, Any],
    ) -> None:
        """Test the record references the identity and is committed."""
        person = validate_row(student_row).person

        record_id = await store.insert_person(person, "user_1", "khongorzulb")

        added = mock_session.add.call_args[0][0]
        assert isinstance(added, Person)
        assert record_id == added.id
        assert added.identity_id == "user_1"
        assert added.username == "khongorzulb"
        assert added.role == "student"
        assert added.phone1 == "99123456"
        assert added.grade == 5
        assert added.group == "Б"
        mock_session.flush.assert_awaited_once()
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unique_violation(
        self,
        store: SQLAlchemyDirectoryStore,
        mock_session: AsyncMock,
        student_row: dict[str, Any],
    ) -> None:
        """Test an integrity error is rolled back and reported as a conflict."""
        mock_session.flush.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))
        person = validate_row(student_row).person

        with pytest.raises(DirectoryStoreError) as exc_info:
            await store.insert_person(person, "user_1", "khongorzulb")

        assert "conflicts" in str(exc_info.value)
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()


class TestLookups:
    """Tests for the directory read operations."""

    @pytest.mark.asyncio
    async def test_list_usernames(
        self,
        store: SQLAlchemyDirectoryStore,
        mock_session: AsyncMock,
    ) -> None:
        """Test usernames are returned as a set."""
        mock_session.execute.return_value = _scalars_result(["baatare", "tsetsegd"])

        assert await store.list_usernames() == {"baatare", "tsetsegd"}

    @pytest.mark.asyncio
    async def test_list_usernames_failure(
        self,
        store: SQLAlchemyDirectoryStore,
        mock_session: AsyncMock,
    ) -> None:
        """Test query failures become DirectoryStoreError."""
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(DirectoryStoreError):
            await store.list_usernames()

    @pytest.mark.asyncio
    async def test_existing_phones(
        self,
        store: SQLAlchemyDirectoryStore,
        mock_session: AsyncMock,
    ) -> None:
        """Test registered phones are returned."""
        mock_session.execute.return_value = _scalars_result(["99000001"])

        found = await store.existing_phones({"99000001", "99000002"}, PersonRole.STUDENT)

        assert found == {"99000001"}
        mock_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_existing_phones_empty_input(
        self,
        store: SQLAlchemyDirectoryStore,
        mock_sessionmaker: MagicMock,
    ) -> None:
        """Test no query runs for an empty phone list."""
        assert await store.existing_phones([], PersonRole.TEACHER) == set()
        mock_sessionmaker.assert_not_called()
