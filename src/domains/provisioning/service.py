# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Provisioning service: paired identity + directory writes.

A person is provisioned by writing to two systems that share no
transaction, so the write is a two-step saga with one compensating
action:

1. Reserve a username from the run's pool and derive the password
2. Create the identity (tagged with role, forced password change)
3. Insert the directory record referencing the identity id
4. If step 3 fails, delete the identity from step 2
5. Return the ProvisionedAccount

A directory record never exists without its identity. When the rollback
in step 4 fails too, the saga ends in ``orphaned`` and the identity is
reported for manual deletion.

provision_one never raises for row-level failures; it returns a
ProvisioningResult carrying either the account or the error. Callers are
trusted: authorization happens before this service is reached.

Example:
    >>> service = ProvisioningService(identity_provider, directory)
    >>> pool = await service.build_username_pool()
    >>> result = await service.provision_one(person, pool)
    >>> account = result.unwrap()
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TypeVar

from src.core.config.settings import ProvisioningSettings
from src.domains.provisioning.credentials import generate_password, generate_username
from src.domains.provisioning.exceptions import (
    DirectoryInsertFailedError,
    DuplicatePhoneError,
    GenerationExhaustedError,
    IdentityCreateFailedError,
    OrphanedIdentityError,
    ProvisioningError,
    ProvisioningUnavailableError,
)
from src.domains.provisioning.ports import DirectoryStore, IdentityMetadata, IdentityProvider
from src.domains.provisioning.saga import ProvisioningSaga
from src.models.provisioning import PersonInput, ProvisionedAccount

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UsernamePool:
    """Usernames taken during one provisioning run.

    Wraps the given set without copying it. Picking a username and adding
    it to the pool happen under one lock, so rows provisioned concurrently
    never receive the same username.
    """

    def __init__(self, usernames: set[str] | None = None) -> None:
        self._usernames = usernames if usernames is not None else set()
        self._lock = asyncio.Lock()

    def __contains__(self, username: object) -> bool:
        return username in self._usernames

    def __len__(self) -> int:
        return len(self._usernames)

    def snapshot(self) -> frozenset[str]:
        """Immutable copy of the current pool."""
        return frozenset(self._usernames)

    async def reserve(
        self,
        first_name: str,
        last_name: str,
        max_attempts: int,
        min_length: int,
    ) -> str:
        """Pick a free username and add it to the pool.

        Raises:
            GenerationExhaustedError: If no candidate is free.
        """
        async with self._lock:
            username = generate_username(
                first_name,
                last_name,
                self._usernames,
                max_attempts=max_attempts,
                min_length=min_length,
            )
            self._usernames.add(username)
            return username


@dataclass
class ProvisioningResult:
    """Outcome of one provisioning attempt.

    Attributes:
        state: Terminal saga state.
        account: The provisioned account on success.
        error: The failure otherwise.
        username: Username reserved for the attempt, if any.
    """

    state: str
    account: ProvisionedAccount | None = None
    error: ProvisioningError | None = None
    username: str | None = None

    @property
    def ok(self) -> bool:
        """True when both records were written."""
        return self.account is not None and self.error is None

    def unwrap(self) -> ProvisionedAccount:
        """Return the account or raise the recorded error.

        Raises:
            ProvisioningError: The recorded error, or a generic one when the
                attempt ended without an account.
        """
        if self.error is not None:
            raise self.error
        if self.account is None:
            raise ProvisioningError(
                f"Provisioning ended in state {self.state} without an account",
                details={"state": self.state, "username": self.username},
            )
        return self.account


class ProvisioningService:
    """Orchestrates the identity + directory write for one person.

    Attributes:
        _identity: Identity provider adapter.
        _directory: Directory store adapter.
        _settings: Provisioning settings.
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        directory: DirectoryStore,
        settings: ProvisioningSettings | None = None,
    ) -> None:
        """Initialize the provisioning service.

        Args:
            identity_provider: Identity provider adapter.
            directory: Directory store adapter.
            settings: Provisioning settings (defaults from environment).
        """
        self._identity = identity_provider
        self._directory = directory
        self._settings = settings or ProvisioningSettings()

    @property
    def settings(self) -> ProvisioningSettings:
        """Provisioning settings in effect."""
        return self._settings

    async def _call(self, awaitable: Awaitable[T]) -> T:
        """Await an external call bounded by the configured timeout."""
        return await asyncio.wait_for(awaitable, timeout=self._settings.external_call_timeout)

    # =========================================================================
    # Run-level lookups
    # =========================================================================

    async def build_username_pool(self) -> UsernamePool:
        """Snapshot the usernames of both systems into a new pool.

        Returns:
            UsernamePool seeded with the union of both username sets.

        Raises:
            ProvisioningUnavailableError: If either system cannot be read.
        """
        try:
            identity_names, directory_names = await asyncio.gather(
                self._call(self._identity.list_usernames()),
                self._call(self._directory.list_usernames()),
            )
        except Exception as e:
            logger.error("Failed to load existing usernames: %s", str(e))
            raise ProvisioningUnavailableError(
                f"Cannot read existing usernames: {str(e)}",
                {"error_type": type(e).__name__},
            ) from e

        usernames = set(identity_names) | set(directory_names)
        logger.info(
            "Username pool loaded: %s names (identity=%s, directory=%s)",
            len(usernames),
            len(identity_names),
            len(directory_names),
        )
        return UsernamePool(usernames)

    async def registered_phones(self, persons: list[PersonInput]) -> set[str]:
        """Return the phones among persons already in the directory.

        Raises:
            ProvisioningUnavailableError: If the directory cannot be read.
        """
        if not persons:
            return set()

        found: set[str] = set()
        for role in {p.role for p in persons}:
            phones = {p.phone1 for p in persons if p.role == role}
            try:
                found |= await self._call(self._directory.existing_phones(phones, role))
            except Exception as e:
                logger.error("Failed to look up existing phones: %s", str(e))
                raise ProvisioningUnavailableError(
                    f"Cannot read directory phones: {str(e)}",
                    {"error_type": type(e).__name__},
                ) from e
        return found

    # =========================================================================
    # Single person
    # =========================================================================

    async def provision_person(self, person: PersonInput) -> ProvisionedAccount:
        """Provision one person outside of a batch.

        Loads a fresh username pool and rejects phones that are already
        registered before running the saga.

        Raises:
            ProvisioningUnavailableError: If either system is unreachable.
            DuplicatePhoneError: If phone1 is already registered.
            ProvisioningError: Any saga failure (see provision_one).
        """
        pool = await self.build_username_pool()
        if person.phone1 in await self.registered_phones([person]):
            raise DuplicatePhoneError(person.phone1, reason="phone_already_registered")

        result = await self.provision_one(person, pool)
        return result.unwrap()

    async def provision_one(
        self,
        person: PersonInput,
        pool: UsernamePool | set[str],
        row_index: int | None = None,
    ) -> ProvisioningResult:
        """Provision one person against a shared username pool.

        The reserved username stays in the pool even when the attempt
        fails, so a retry in the same run picks the next candidate.

        Args:
            person: Validated person.
            pool: Usernames taken so far in this run; updated in place.
            row_index: Source row, for logs and orphan reports.

        Returns:
            ProvisioningResult with the account or the error.
        """
        if not isinstance(pool, UsernamePool):
            pool = UsernamePool(pool)

        saga = ProvisioningSaga()

        try:
            username = await pool.reserve(
                person.first_name,
                person.last_name,
                max_attempts=self._settings.max_username_attempts,
                min_length=self._settings.min_username_length,
            )
        except GenerationExhaustedError as e:
            saga.identity_failed()
            logger.warning("Username generation exhausted: row=%s, base=%s", row_index, e.base)
            return ProvisioningResult(state=saga.state_name, error=e)

        password = generate_password(person.phone1, person.first_name, person.last_name)

        # Once the identity exists the saga must reach a terminal state,
        # so the writes are shielded from caller cancellation.
        return await asyncio.shield(
            self._write_pair(saga, person, username, password, row_index)
        )

    async def _write_pair(
        self,
        saga: ProvisioningSaga,
        person: PersonInput,
        username: str,
        password: str,
        row_index: int | None,
    ) -> ProvisioningResult:
        """Run saga steps 2-5."""
        try:
            identity_id = await self._call(
                self._identity.create_account(
                    username,
                    password,
                    IdentityMetadata(role=person.role),
                )
            )
        except Exception as e:
            saga.identity_failed()
            logger.warning(
                "Identity creation failed: row=%s, username=%s, error=%s",
                row_index,
                username,
                _describe(e),
            )
            return ProvisioningResult(
                state=saga.state_name,
                username=username,
                error=IdentityCreateFailedError(
                    f"Identity creation failed: {_describe(e)}",
                    {"username": username},
                ),
            )
        saga.identity_ok()

        try:
            record_id = await self._call(
                self._directory.insert_person(person, identity_id, username)
            )
        except Exception as e:
            return await self._compensate(saga, identity_id, username, e, row_index)
        saga.directory_ok()

        logger.info(
            "Provisioned %s: row=%s, username=%s, identity_id=%s, record_id=%s",
            person.role.value,
            row_index,
            username,
            identity_id,
            record_id,
        )
        return ProvisioningResult(
            state=saga.state_name,
            username=username,
            account=ProvisionedAccount(
                identity_id=identity_id,
                record_id=record_id,
                username=username,
                temporary_password=password,
                role=person.role,
            ),
        )

    async def _compensate(
        self,
        saga: ProvisioningSaga,
        identity_id: str,
        username: str,
        cause: Exception,
        row_index: int | None,
    ) -> ProvisioningResult:
        """Delete the identity after a failed directory write."""
        logger.warning(
            "Directory insert failed, rolling back identity: row=%s, identity_id=%s, error=%s",
            row_index,
            identity_id,
            _describe(cause),
        )

        try:
            await self._call(self._identity.delete_account(identity_id))
        except Exception as e:
            saga.compensation_failed()
            logger.critical(
                "Rollback failed, orphaned identity: identity_id=%s, row=%s, username=%s, error=%s",
                identity_id,
                row_index,
                username,
                _describe(e),
            )
            return ProvisioningResult(
                state=saga.state_name,
                username=username,
                error=OrphanedIdentityError(
                    identity_id=identity_id,
                    username=username,
                    cause=_describe(cause),
                    row_index=row_index,
                ),
            )

        saga.compensated()
        return ProvisioningResult(
            state=saga.state_name,
            username=username,
            error=DirectoryInsertFailedError(
                f"Directory insert failed: {_describe(cause)}",
                {"identity_id": identity_id, "rolled_back": True},
            ),
        )


def _describe(error: BaseException) -> str:
    """Readable error text, naming timeouts explicitly."""
    if isinstance(error, TimeoutError):
        return "timed out"
    return str(error) or type(error).__name__
