# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk import pipeline.

run_batch turns already-tabular rows into one BatchReport:

1. Parse each row (localized or canonical headers)
2. Validate every row; invalid rows fail immediately
3. Flag repeated phone1 values among the valid rows
4. Reject phones already registered in the directory
5. Provision the remaining rows against one shared username pool
6. Report exactly one outcome per input row, in input order

A row's failure never aborts, retries or rolls back another row. Only
ProvisioningUnavailableError escapes, when either system cannot be
reached before provisioning starts.
"""

import asyncio
import contextlib
import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from src.core.config.settings import ProvisioningSettings
from src.domains.provisioning.exceptions import DuplicatePhoneError
from src.domains.provisioning.service import ProvisioningService, UsernamePool
from src.domains.provisioning.validation import (
    find_duplicate_phones,
    first_occurrences,
    parse_raw_row,
    validate_row,
)
from src.models.provisioning import (
    BatchReport,
    BatchRow,
    PersonInput,
    PersonRole,
    RowError,
    RowOutcome,
)
from src.utils.datetime import utc_now
from src.utils.logging import bind_context, clear_context, get_logger

logger = get_logger(__name__)

CANCELLED_CODE = "cancelled"


class BatchImportService:
    """Runs bulk imports through the provisioning service.

    Attributes:
        _service: Provisioning service used for each row.
        _max_concurrency: Rows provisioned at once (1 = sequential).
        _chunk_size: Rows provisioned between pauses.
        _chunk_delay: Seconds paused between chunks.
    """

    def __init__(
        self,
        service: ProvisioningService,
        settings: ProvisioningSettings | None = None,
    ) -> None:
        self._service = service
        settings = settings or service.settings
        self._max_concurrency = max(1, settings.max_concurrency)
        self._chunk_size = max(1, settings.batch_chunk_size)
        self._chunk_delay = settings.batch_delay_seconds

    async def run_batch(
        self,
        raw_rows: Sequence[Mapping[str, Any]],
        role: PersonRole = PersonRole.STUDENT,
        require_class: bool | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchReport:
        """Import a batch of rows.

        Args:
            raw_rows: Rows keyed by localized or canonical column headers.
            role: Role every row is provisioned as.
            require_class: Override whether grade/group are required.
            cancel_event: When set, rows not yet started fail as cancelled.

        Returns:
            BatchReport with one row per input row.

        Raises:
            ProvisioningUnavailableError: If either system is unreachable.
        """
        started_at = utc_now()
        batch_id = str(uuid.uuid4())
        bind_context(batch_id=batch_id, role=role.value)

        try:
            logger.info("batch_import_started", row_count=len(raw_rows))

            rows = [
                BatchRow(index=index, input=parse_raw_row(raw))
                for index, raw in enumerate(raw_rows)
            ]
            candidates = self._validate(rows, role, require_class)
            candidates = self._drop_batch_duplicates(candidates)

            pool = await self._service.build_username_pool()
            candidates = await self._drop_registered(candidates)

            await self._provision_all(candidates, pool, cancel_event)

            report = BatchReport.from_rows(rows, role=role, started_at=started_at)
            logger.info(
                "batch_import_finished",
                total=report.total_count,
                success=report.success_count,
                failed=report.failure_count,
            )
            for orphan in report.orphaned_identities:
                logger.error("orphaned_identity", **orphan)
            return report
        finally:
            clear_context()

    def _validate(
        self,
        rows: list[BatchRow],
        role: PersonRole,
        require_class: bool | None,
    ) -> list[tuple[BatchRow, PersonInput]]:
        """Validate rows, failing the invalid ones in place."""
        valid: list[tuple[BatchRow, PersonInput]] = []
        for row in rows:
            result = validate_row(row.input, role=role, require_class=require_class)
            if not result.is_valid:
                row.validation_errors = result.errors
                fields = ", ".join(issue.field for issue in result.errors)
                row.mark_failed(
                    RowError(
                        code="validation_error",
                        message=f"Invalid fields: {fields}",
                        details={"issues": [issue.model_dump() for issue in result.errors]},
                    )
                )
                logger.warning("row_invalid", row_index=row.index, fields=fields)
                continue
            valid.append((row, result.person))
        return valid

    def _drop_batch_duplicates(
        self,
        candidates: list[tuple[BatchRow, PersonInput]],
    ) -> list[tuple[BatchRow, PersonInput]]:
        """Fail every repeated phone1 after its first occurrence."""
        persons = [person for _, person in candidates]
        duplicates = find_duplicate_phones(persons)
        if not duplicates:
            return candidates

        first_seen = first_occurrences(persons)
        remaining = []
        for position, (row, person) in enumerate(candidates):
            if position not in duplicates:
                remaining.append((row, person))
                continue
            original = candidates[first_seen[person.phone1]][0]
            _fail(row, DuplicatePhoneError(person.phone1, first_index=original.index))
            logger.warning(
                "row_duplicate_phone",
                row_index=row.index,
                duplicate_of=original.index,
            )
        return remaining

    async def _drop_registered(
        self,
        candidates: list[tuple[BatchRow, PersonInput]],
    ) -> list[tuple[BatchRow, PersonInput]]:
        """Fail rows whose phone1 is already in the directory."""
        registered = await self._service.registered_phones([p for _, p in candidates])
        if not registered:
            return candidates

        remaining = []
        for row, person in candidates:
            if person.phone1 in registered:
                _fail(row, DuplicatePhoneError(person.phone1, reason="phone_already_registered"))
                logger.warning("row_phone_registered", row_index=row.index)
            else:
                remaining.append((row, person))
        return remaining

    async def _provision_all(
        self,
        candidates: list[tuple[BatchRow, PersonInput]],
        pool: UsernamePool,
        cancel_event: asyncio.Event | None,
    ) -> None:
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def provision(row: BatchRow, person: PersonInput) -> None:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    row.mark_failed(
                        RowError(
                            code=CANCELLED_CODE,
                            message="Batch cancelled before this row started",
                        )
                    )
                    return

                result = await self._service.provision_one(person, pool, row_index=row.index)
                if result.ok:
                    row.mark_success(result.unwrap())
                else:
                    _fail(row, result.error)

        chunks = [
            candidates[start:start + self._chunk_size]
            for start in range(0, len(candidates), self._chunk_size)
        ]
        for number, chunk in enumerate(chunks):
            if number:
                await self._pause(cancel_event)

            if self._max_concurrency == 1:
                for row, person in chunk:
                    await provision(row, person)
            else:
                await asyncio.gather(*(provision(row, person) for row, person in chunk))

        cancelled = sum(
            1
            for row, _ in candidates
            if row.outcome == RowOutcome.FAILED and row.error and row.error.code == CANCELLED_CODE
        )
        if cancelled:
            logger.warning("batch_cancelled", rows_not_provisioned=cancelled)

    async def _pause(self, cancel_event: asyncio.Event | None) -> None:
        """Wait between chunks to respect the identity provider rate limit.

        Returns early once cancel_event is set.
        """
        if self._chunk_delay <= 0:
            return
        if cancel_event is None:
            await asyncio.sleep(self._chunk_delay)
            return
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(cancel_event.wait(), timeout=self._chunk_delay)


def _fail(row: BatchRow, error: Exception) -> None:
    """Record a provisioning exception as the row's outcome."""
    row.mark_failed(
        RowError(
            code=getattr(error, "code", "provisioning_error"),
            message=getattr(error, "message", str(error)),
            details=dict(getattr(error, "details", {})),
        )
    )
