# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Row parsing and validation for provisioning input.

Rows arrive already tabular (spreadsheet decoding happens upstream),
keyed either by the localized column headers of the import template
(Овог, Нэр, Анги, Бүлэг, Утас 1, Утас 2) or by canonical names
(lastName, firstName, grade, group, phone1, phone2).

Validation collects every violated field of a row, each tagged with a
machine-readable reason code. The schema itself lives on the pydantic
models in src.models.provisioning.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from src.models.provisioning import (
    ClassPersonInput,
    PersonInput,
    PersonRole,
    ValidationIssue,
    ValidationResult,
)

logger = logging.getLogger(__name__)

# Canonical field -> localized header
LOCALIZED_HEADERS: dict[str, str] = {
    "lastName": "Овог",
    "firstName": "Нэр",
    "grade": "Анги",
    "group": "Бүлэг",
    "phone1": "Утас 1",
    "phone2": "Утас 2",
}

# Pydantic error types -> reason codes. Custom phone errors already carry
# their own code (wrong_length, not_digits).
REASON_CODES: dict[str, str] = {
    "missing": "required",
    "string_too_short": "too_short",
    "string_too_long": "too_long",
    "string_type": "invalid_type",
    "string_pattern_mismatch": "invalid_characters",
    "int_parsing": "not_an_integer",
    "int_from_float": "not_an_integer",
    "int_type": "not_an_integer",
    "greater_than_equal": "out_of_range",
    "less_than_equal": "out_of_range",
    "enum": "invalid_role",
}


def _cell_to_text(value: Any) -> str:
    """Render a spreadsheet cell as stripped text.

    Numeric phone cells come through as floats (99119911.0); they are
    rendered without the fractional part.
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_raw_row(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Map a tabular row onto canonical field names.

    Localized headers take precedence over canonical ones. Grade keeps
    numeric cells as numbers so validation can coerce them; every other
    field becomes stripped text. Empty cells are dropped, so validation
    reports them as missing.

    Args:
        raw: Row keyed by column header.

    Returns:
        Dictionary keyed by canonical field names.
    """
    parsed: dict[str, Any] = {}
    for field, header in LOCALIZED_HEADERS.items():
        value = raw.get(header)
        if value is None or value == "":
            value = raw.get(field)

        if field == "grade":
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                parsed[field] = value
            elif value is not None and _cell_to_text(value) != "":
                parsed[field] = _cell_to_text(value)
            continue

        text = _cell_to_text(value)
        if text == "":
            continue
        parsed[field] = text
    return parsed


def _issues_from_error(error: ValidationError) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    for item in error.errors():
        field = str(item["loc"][0]) if item["loc"] else "unknown"
        # One violation per field, all fields reported
        if field in seen:
            continue
        seen.add(field)
        issues.append(
            ValidationIssue(
                field=field,
                code=REASON_CODES.get(item["type"], item["type"]),
                message=item["msg"],
            )
        )
    return issues


def validate_row(
    raw: Mapping[str, Any],
    role: PersonRole = PersonRole.STUDENT,
    require_class: bool | None = None,
) -> ValidationResult:
    """Validate one row against the person schema.

    Grade/group are required for students and, when require_class is set,
    for teachers who own a class. Teachers created through the admin path
    carry neither.

    Coercion failures (e.g. grade "five") are reported as violations,
    never raised.

    Args:
        raw: Row keyed by canonical field names (see parse_raw_row).
        role: Role the row is imported as.
        require_class: Override whether grade/group are required.

    Returns:
        ValidationResult with either a person or the collected issues.
    """
    if require_class is None:
        require_class = role == PersonRole.STUDENT

    schema = ClassPersonInput if require_class else PersonInput
    data = {**raw, "role": role}

    try:
        person = schema.model_validate(data)
    except ValidationError as e:
        return ValidationResult(errors=_issues_from_error(e))

    return ValidationResult(person=person)


def _phone_of(row: PersonInput | Mapping[str, Any]) -> str:
    if isinstance(row, Mapping):
        return str(row["phone1"])
    return row.phone1


def find_duplicate_phones(rows: Sequence[PersonInput | Mapping[str, Any]]) -> dict[int, str]:
    """Flag repeated phone1 values within a batch.

    The first occurrence of a phone is never flagged; every later
    occurrence is.

    Args:
        rows: Validated rows (models or mappings with phone1), in batch order.

    Returns:
        Map of position in rows -> reason ("Duplicate phone: <phone>").
    """
    first_seen: dict[str, int] = {}
    duplicates: dict[int, str] = {}

    for index, row in enumerate(rows):
        phone = _phone_of(row)
        if phone in first_seen:
            duplicates[index] = f"Duplicate phone: {phone}"
        else:
            first_seen[phone] = index

    if duplicates:
        logger.debug("Duplicate phones in batch: %s", len(duplicates))

    return duplicates


def first_occurrences(rows: Sequence[PersonInput | Mapping[str, Any]]) -> dict[str, int]:
    """Position of the first row carrying each phone1."""
    seen: dict[str, int] = {}
    for index, row in enumerate(rows):
        seen.setdefault(_phone_of(row), index)
    return seen
