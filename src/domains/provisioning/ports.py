# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capability sets consumed by provisioning.

Provisioning writes to two systems of record:

- IdentityProvider: external owner of login credentials. Accounts are
  referenced by an opaque identity id.
- DirectoryStore: internal owner of teacher/student records, each
  referencing its identity id.

Implementations live in src.infrastructure (HTTP identity client,
SQLAlchemy directory store). They raise IdentityProviderError /
DirectoryStoreError; the orchestrator converts those into row outcomes.
"""

from abc import ABC, abstractmethod
from collections.abc import Collection
from dataclasses import dataclass
from typing import Any

from src.models.provisioning import PersonInput, PersonRole


@dataclass(frozen=True)
class IdentityMetadata:
    """Metadata attached to a new identity.

    Attributes:
        role: Role the account is provisioned for.
        require_password_change: Force a password change on first login.
    """

    role: PersonRole
    require_password_change: bool = True

    def to_public_metadata(self) -> dict[str, Any]:
        """Render as the provider's public metadata payload."""
        return {
            "role": self.role.value,
            "requirePasswordChange": self.require_password_change,
        }


class IdentityProvider(ABC):
    """External identity provider."""

    @abstractmethod
    async def create_account(
        self,
        username: str,
        password: str,
        metadata: IdentityMetadata,
    ) -> str:
        """Create an account and return its identity id."""

    @abstractmethod
    async def delete_account(self, identity_id: str) -> None:
        """Delete an account by identity id."""

    @abstractmethod
    async def list_usernames(self) -> set[str]:
        """Return every username currently registered."""


class DirectoryStore(ABC):
    """Internal directory of teacher and student records."""

    @abstractmethod
    async def insert_person(
        self,
        person: PersonInput,
        identity_id: str,
        username: str,
    ) -> str:
        """Insert a person record linked to identity_id, return its id."""

    @abstractmethod
    async def list_usernames(self) -> set[str]:
        """Return every username referenced by a directory record."""

    @abstractmethod
    async def existing_phones(
        self,
        phones: Collection[str],
        role: PersonRole,
    ) -> set[str]:
        """Return the subset of phones already registered for role."""
