# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account provisioning API endpoints.

This module provides the endpoints administrators use to create teacher
and student accounts:
- POST /students, POST /teachers - Provision one person
- POST /students/bulk-import, POST /teachers/bulk-import - Provision rows

Each person gets an identity-provider account and a directory record.
Bodies are rows keyed by either the canonical (lastName, phone1, ...) or
the localized (Овог, Утас 1, ...) column headers.

Authentication:
    Requires a bearer token whose roles include the admin role. The
    check happens once, before any row is processed.

Example:
    POST /api/v1/provisioning/students
    Headers:
        Authorization: Bearer <token>
    Body:
        {
            "lastName": "Батбаяр",
            "firstName": "Хонгорзул",
            "phone1": "99123456",
            "grade": 5,
            "group": "Б"
        }
"""

import logging
from typing import Any, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from src.api.dependencies import (
    get_batch_import_service,
    get_provisioning_service,
    require_admin,
)
from src.api.middleware.auth import CurrentUser
from src.domains.provisioning import (
    BatchImportService,
    DirectoryInsertFailedError,
    DuplicatePhoneError,
    GenerationExhaustedError,
    IdentityCreateFailedError,
    OrphanedIdentityError,
    ProvisioningError,
    ProvisioningService,
    ProvisioningUnavailableError,
    RowValidationError,
    parse_raw_row,
    validate_row,
)
from src.models.provisioning import (
    BatchReport,
    BulkImportRequest,
    PersonRole,
    ProvisionPersonResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_STATUS: dict[type[ProvisioningError], int] = {
    RowValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    DuplicatePhoneError: status.HTTP_409_CONFLICT,
    GenerationExhaustedError: status.HTTP_409_CONFLICT,
    IdentityCreateFailedError: status.HTTP_502_BAD_GATEWAY,
    DirectoryInsertFailedError: status.HTTP_502_BAD_GATEWAY,
    OrphanedIdentityError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ProvisioningUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _raise_http(error: ProvisioningError) -> NoReturn:
    """Translate a provisioning error into an HTTPException."""
    status_code = _ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail: dict[str, Any] = {
        "code": error.code,
        "message": error.message,
        "details": error.details,
    }
    if isinstance(error, RowValidationError):
        detail["errors"] = [issue.model_dump() for issue in error.issues]
    raise HTTPException(status_code=status_code, detail=detail) from error


async def _provision_single(
    raw: dict[str, Any],
    role: PersonRole,
    require_class: bool | None,
    service: ProvisioningService,
) -> ProvisionPersonResponse:
    result = validate_row(parse_raw_row(raw), role=role, require_class=require_class)

    try:
        if not result.is_valid:
            raise RowValidationError(result.errors)
        account = await service.provision_person(result.person)
    except ProvisioningError as e:
        log = logger.critical if isinstance(e, OrphanedIdentityError) else logger.warning
        log("Provisioning %s failed: %s", role.value, str(e))
        _raise_http(e)

    return ProvisionPersonResponse(
        username=account.username,
        temporary_password=account.temporary_password,
        identity_id=account.identity_id,
        record_id=account.record_id,
        role=account.role,
    )


async def _bulk_import(
    request: BulkImportRequest,
    role: PersonRole,
    require_class: bool | None,
    service: BatchImportService,
) -> BatchReport:
    if not request.rows:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No rows to import",
        )

    try:
        return await service.run_batch(request.rows, role=role, require_class=require_class)
    except ProvisioningUnavailableError as e:
        logger.error("Bulk import aborted: %s", str(e))
        _raise_http(e)


# =============================================================================
# Students
# =============================================================================


@router.post(
    "/students",
    response_model=ProvisionPersonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Provision a student",
    responses={
        409: {"description": "Phone already registered"},
        422: {"description": "Invalid fields"},
        502: {"description": "Identity provider or directory write failed"},
        503: {"description": "Identity provider or directory unreachable"},
    },
)
async def create_student(
    raw: dict[str, Any] = Body(...),
    current_user: CurrentUser = Depends(require_admin),
    service: ProvisioningService = Depends(get_provisioning_service),
) -> ProvisionPersonResponse:
    """Create the account and directory record for one student.

    Grade and group are required.
    """
    logger.info("Student provisioning requested by %s", current_user.id)
    return await _provision_single(raw, PersonRole.STUDENT, None, service)


@router.post(
    "/students/bulk-import",
    response_model=BatchReport,
    summary="Bulk import students",
)
async def bulk_import_students(
    request: BulkImportRequest,
    current_user: CurrentUser = Depends(require_admin),
    service: BatchImportService = Depends(get_batch_import_service),
) -> BatchReport:
    """Provision every row; the report has one outcome per input row."""
    logger.info(
        "Student bulk import of %s rows requested by %s",
        len(request.rows),
        current_user.id,
    )
    return await _bulk_import(request, PersonRole.STUDENT, None, service)


# =============================================================================
# Teachers
# =============================================================================


@router.post(
    "/teachers",
    response_model=ProvisionPersonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Provision a teacher",
    responses={
        409: {"description": "Phone already registered"},
        422: {"description": "Invalid fields"},
        502: {"description": "Identity provider or directory write failed"},
        503: {"description": "Identity provider or directory unreachable"},
    },
)
async def create_teacher(
    raw: dict[str, Any] = Body(...),
    require_class: bool = Query(False, description="Teacher owns a class: grade/group required"),
    current_user: CurrentUser = Depends(require_admin),
    service: ProvisioningService = Depends(get_provisioning_service),
) -> ProvisionPersonResponse:
    """Create the account and directory record for one teacher."""
    logger.info("Teacher provisioning requested by %s", current_user.id)
    return await _provision_single(raw, PersonRole.TEACHER, require_class, service)


@router.post(
    "/teachers/bulk-import",
    response_model=BatchReport,
    summary="Bulk import teachers",
)
async def bulk_import_teachers(
    request: BulkImportRequest,
    require_class: bool = Query(False, description="Every teacher owns a class"),
    current_user: CurrentUser = Depends(require_admin),
    service: BatchImportService = Depends(get_batch_import_service),
) -> BatchReport:
    """Provision every teacher row; the report has one outcome per input row."""
    logger.info(
        "Teacher bulk import of %s rows requested by %s",
        len(request.rows),
        current_user.id,
    )
    return await _bulk_import(request, PersonRole.TEACHER, require_class, service)
