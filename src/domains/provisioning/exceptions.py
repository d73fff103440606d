# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions for account provisioning.

Hierarchy:
- ProvisioningError: Base exception for all provisioning errors
  - RowValidationError: Field-level violations in one row
  - DuplicatePhoneError: phone1 repeated in a batch or already registered
  - GenerationExhaustedError: No free username within the attempt bound
  - IdentityCreateFailedError: Identity provider refused or timed out
  - DirectoryInsertFailedError: Directory write failed (identity rolled back)
  - OrphanedIdentityError: Directory write failed AND rollback failed
  - ProvisioningUnavailableError: An external system is unreachable;
    fatal for a whole run

Adapter-level errors (IdentityProviderError, DirectoryStoreError) are raised
by the infrastructure clients and converted by the orchestrator.

Every exception carries a machine-readable ``code`` that ends up in the
batch report.
"""

from typing import Any


class ProvisioningError(Exception):
    """Base exception for all provisioning errors.

    Attributes:
        message: Human-readable error description.
        details: Additional error context.
    """

    code = "provisioning_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize provisioning error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class RowValidationError(ProvisioningError):
    """Raised when a single-record request fails validation.

    Attributes:
        issues: The collected field violations.
    """

    code = "validation_error"

    def __init__(self, issues: list[Any]) -> None:
        self.issues = issues
        fields = ", ".join(sorted({issue.field for issue in issues}))
        super().__init__(f"Invalid fields: {fields}")


class DuplicatePhoneError(ProvisioningError):
    """Raised when phone1 is not unique."""

    code = "duplicate_phone"

    def __init__(
        self,
        phone: str,
        first_index: int | None = None,
        reason: str = "duplicate_in_batch",
    ) -> None:
        self.phone = phone
        self.first_index = first_index
        self.reason = reason
        details: dict[str, Any] = {"phone": phone, "reason": reason}
        if first_index is not None:
            details["duplicate_of"] = first_index
        super().__init__(f"Duplicate phone: {phone}", details)


class GenerationExhaustedError(ProvisioningError):
    """Raised when no free username exists within the attempt bound."""

    code = "generation_exhausted"

    def __init__(self, base: str, attempts: int) -> None:
        self.base = base
        self.attempts = attempts
        super().__init__(
            f"No free username for base '{base}' after {attempts} attempts",
            {"base": base, "attempts": attempts},
        )


class IdentityCreateFailedError(ProvisioningError):
    """Raised when the identity provider does not create the account."""

    code = "identity_create_failed"


class DirectoryInsertFailedError(ProvisioningError):
    """Raised when the directory write fails and the identity was deleted."""

    code = "directory_insert_failed"


class OrphanedIdentityError(ProvisioningError):
    """Raised when the directory write failed and so did the rollback.

    The identity still exists in the identity provider and must be deleted
    manually by an operator.

    Attributes:
        identity_id: The orphaned identity.
        username: Username of the orphaned identity.
    """

    code = "orphaned_identity"

    def __init__(
        self,
        identity_id: str,
        username: str,
        cause: str,
        row_index: int | None = None,
    ) -> None:
        self.identity_id = identity_id
        self.username = username
        details: dict[str, Any] = {
            "identity_id": identity_id,
            "username": username,
            "cause": cause,
        }
        if row_index is not None:
            details["row_index"] = row_index
        super().__init__(
            f"Rollback failed, identity {identity_id} requires manual deletion",
            details,
        )


class ProvisioningUnavailableError(ProvisioningError):
    """Raised when the identity provider or directory cannot be reached."""

    code = "provisioning_unavailable"


class IdentityProviderError(Exception):
    """Error returned by the identity provider adapter.

    Attributes:
        status_code: HTTP status code, if the provider answered.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code:
            return f"[{self.status_code}] {base}"
        return base


class DirectoryStoreError(Exception):
    """Error returned by the directory store adapter."""
