# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account provisioning data models.

This module defines the records that flow through provisioning:

- PersonInput / ClassPersonInput: validated person data. The field
  constraints on these models are the row validation schema.
- Credentials: generated username and temporary password.
- ProvisionedAccount: the identity + directory record pair.
- BatchRow / BatchReport: per-row outcomes of a bulk import.
- Request/response bodies for the provisioning API.

Field names use snake_case in Python and the canonical camelCase column
names (lastName, phone1, ...) as aliases, so rows keyed by canonical
headers validate directly.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from src.utils.datetime import utc_now

PHONE_LENGTH = 8
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 20
GRADE_MIN = 1
GRADE_MAX = 12

# Latin plus Cyrillic, including the Mongolian letters Ө and Ү
GROUP_PATTERN = r"^[A-Za-zА-Яа-яЁёӨөҮү]{1,2}$"

_DIGITS = re.compile(r"[0-9]+")


class PersonRole(str, Enum):
    """Role an account is provisioned for."""

    STUDENT = "student"
    TEACHER = "teacher"


class RowOutcome(str, Enum):
    """Outcome attached to a single batch row."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


def _check_phone(value: str) -> str:
    if len(value) != PHONE_LENGTH:
        raise PydanticCustomError(
            "wrong_length",
            "Phone number must be exactly {length} digits",
            {"length": PHONE_LENGTH},
        )
    if not _DIGITS.fullmatch(value):
        raise PydanticCustomError("not_digits", "Phone number must contain digits only")
    return value


class PersonInput(BaseModel):
    """Validated person record.

    Teachers created through the admin path carry no grade/group; when
    present, grade and group are still range/pattern checked.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    role: PersonRole = PersonRole.STUDENT
    last_name: str = Field(
        alias="lastName",
        min_length=NAME_MIN_LENGTH,
        max_length=NAME_MAX_LENGTH,
    )
    first_name: str = Field(
        alias="firstName",
        min_length=NAME_MIN_LENGTH,
        max_length=NAME_MAX_LENGTH,
    )
    phone1: str
    phone2: str | None = None
    grade: int | None = Field(default=None, ge=GRADE_MIN, le=GRADE_MAX)
    group: str | None = Field(default=None, pattern=GROUP_PATTERN)

    @field_validator("phone1")
    @classmethod
    def validate_phone1(cls, value: str) -> str:
        """Require exactly 8 ASCII digits."""
        return _check_phone(value)

    @field_validator("phone2", mode="before")
    @classmethod
    def validate_phone2(cls, value: Any) -> Any:
        """Treat an empty cell as absent, otherwise require 8 digits."""
        if value is None:
            return None
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                return None
            return _check_phone(value)
        return value

    @property
    def display_name(self) -> str:
        """Full name as shown in the directory."""
        return f"{self.last_name} {self.first_name}"

    def directory_fields(self) -> dict[str, Any]:
        """Fields written to the directory record."""
        return self.model_dump(exclude_none=True, mode="json")


class ClassPersonInput(PersonInput):
    """Person bound to a class (students, teachers as class owners)."""

    grade: int = Field(ge=GRADE_MIN, le=GRADE_MAX)
    group: str = Field(pattern=GROUP_PATTERN)


class ValidationIssue(BaseModel):
    """A single field violation.

    Attributes:
        field: Canonical field name (e.g. "phone1").
        code: Machine-readable reason code (e.g. "wrong_length").
        message: Human-readable description.
    """

    field: str
    code: str
    message: str


class ValidationResult(BaseModel):
    """Result of validating one raw row."""

    person: PersonInput | None = None
    errors: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """True when the row passed every field check."""
        return self.person is not None and not self.errors


class Credentials(BaseModel):
    """Generated login credentials."""

    username: str
    temporary_password: str


class ProvisionedAccount(BaseModel):
    """Identity-provider account paired with its directory record."""

    identity_id: str
    record_id: str
    username: str
    temporary_password: str
    role: PersonRole


class RowError(BaseModel):
    """Error attached to a failed row.

    Attributes:
        code: Error category code (validation_error, duplicate_phone,
            generation_exhausted, identity_create_failed,
            directory_insert_failed, orphaned_identity, cancelled).
        message: Human-readable description.
        details: Extra context (e.g. orphaned identity id).
    """

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class BatchRow(BaseModel):
    """Transient per-row state of a bulk import."""

    index: int
    input: dict[str, Any]
    validation_errors: list[ValidationIssue] = Field(default_factory=list)
    credentials: Credentials | None = None
    identity_id: str | None = None
    record_id: str | None = None
    outcome: RowOutcome = RowOutcome.PENDING
    error: RowError | None = None

    def mark_failed(self, error: RowError) -> None:
        """Set a failed outcome with its error."""
        self.outcome = RowOutcome.FAILED
        self.error = error

    def mark_success(self, account: ProvisionedAccount) -> None:
        """Set a success outcome from the provisioned account."""
        self.outcome = RowOutcome.SUCCESS
        self.error = None
        self.credentials = Credentials(
            username=account.username,
            temporary_password=account.temporary_password,
        )
        self.identity_id = account.identity_id
        self.record_id = account.record_id


class BatchReport(BaseModel):
    """Aggregated result of one bulk import run.

    Handed to an external exporter; never persisted by this service.
    """

    role: PersonRole
    rows: list[BatchRow]
    total_count: int
    success_count: int
    failure_count: int
    started_at: datetime
    finished_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_rows(
        cls,
        rows: list[BatchRow],
        role: PersonRole,
        started_at: datetime,
    ) -> "BatchReport":
        """Build a report, deriving the counts from row outcomes."""
        ordered = sorted(rows, key=lambda r: r.index)
        success = sum(1 for r in ordered if r.outcome == RowOutcome.SUCCESS)
        return cls(
            role=role,
            rows=ordered,
            total_count=len(ordered),
            success_count=success,
            failure_count=len(ordered) - success,
            started_at=started_at,
        )

    @property
    def orphaned_identities(self) -> list[dict[str, Any]]:
        """Identities left behind by failed compensations."""
        return [
            {"row_index": r.index, **r.error.details}
            for r in self.rows
            if r.error is not None and r.error.code == "orphaned_identity"
        ]


# =============================================================================
# API request / response bodies
# =============================================================================


class BulkImportRequest(BaseModel):
    """Bulk import body: rows keyed by localized or canonical headers."""

    rows: list[dict[str, Any]] = Field(
        description="Tabular rows, e.g. {'Овог': 'Батбаяр', 'Нэр': 'Хонгорзул', 'Утас 1': '99123456'}",
    )


class ProvisionPersonResponse(BaseModel):
    """Result of a single-record provisioning call."""

    success: bool = True
    username: str
    temporary_password: str
    identity_id: str
    record_id: str
    role: PersonRole
