# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy implementation of the directory store.

Each call runs in its own session and commits on success, so one row's
insert never shares a transaction with another row.
"""

import logging
import uuid
from collections.abc import Collection

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domains.provisioning.exceptions import DirectoryStoreError
from src.domains.provisioning.ports import DirectoryStore
from src.infrastructure.database.connection import DatabaseError, session_scope
from src.infrastructure.database.models.directory import Person
from src.models.provisioning import PersonInput, PersonRole

logger = logging.getLogger(__name__)


class SQLAlchemyDirectoryStore(DirectoryStore):
    """Directory store backed by the people table.

    Attributes:
        _sessionmaker: Factory for directory database sessions.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker

    async def insert_person(
        self,
        person: PersonInput,
        identity_id: str,
        username: str,
    ) -> str:
        """Insert a person record linked to an identity.

        Args:
            person: Validated person.
            identity_id: Identity created for this person.
            username: Username of that identity.

        Returns:
            Id of the new directory record.

        Raises:
            DirectoryStoreError: If the insert fails (including unique
                constraint violations on identity_id or username).
        """
        record = Person(
            id=str(uuid.uuid4()),
            identity_id=identity_id,
            username=username,
            role=person.role.value,
            last_name=person.last_name,
            first_name=person.first_name,
            phone1=person.phone1,
            phone2=person.phone2,
            grade=person.grade,
            group=person.group,
        )

        try:
            async with session_scope(self._sessionmaker) as session:
                session.add(record)
                await session.flush()
                record_id = str(record.id)
        except DatabaseError as e:
            if isinstance(e.original_error, IntegrityError):
                raise DirectoryStoreError(
                    f"Directory record conflicts with an existing one: {username}"
                ) from e
            raise DirectoryStoreError(str(e)) from e

        logger.debug("Directory record created: id=%s, identity_id=%s", record_id, identity_id)
        return record_id

    async def list_usernames(self) -> set[str]:
        """Return every username referenced by a record, soft-deleted included.

        Raises:
            DirectoryStoreError: If the query fails.
        """
        try:
            async with session_scope(self._sessionmaker) as session:
                result = await session.execute(select(Person.username))
                return set(result.scalars().all())
        except (DatabaseError, SQLAlchemyError) as e:
            raise DirectoryStoreError(f"Failed to list usernames: {e}") from e

    async def existing_phones(
        self,
        phones: Collection[str],
        role: PersonRole,
    ) -> set[str]:
        """Return the subset of phones already registered for role.

        Raises:
            DirectoryStoreError: If the query fails.
        """
        if not phones:
            return set()

        stmt = select(Person.phone1).where(
            Person.role == role.value,
            Person.phone1.in_(list(phones)),
            Person.deleted_at.is_(None),
        )
        try:
            async with session_scope(self._sessionmaker) as session:
                result = await session.execute(stmt)
                return set(result.scalars().all())
        except (DatabaseError, SQLAlchemyError) as e:
            raise DirectoryStoreError(f"Failed to look up phones: {e}") from e
