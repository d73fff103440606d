# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

Dependencies are used to:
- Wire the provisioning services to their adapters
- Get authenticated users and enforce the admin role

Example:
    @router.post("/students")
    async def create_student(
        service: ProvisioningService = Depends(get_provisioning_service),
        _admin: CurrentUser = Depends(require_admin),
    ):
        ...
"""

import logging

from fastapi import Depends, HTTPException, Request, status

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.domains.provisioning.batch import BatchImportService
from src.domains.provisioning.service import ProvisioningService
from src.infrastructure.database.connection import (
    close_directory_database,
    get_directory_sessionmaker,
    init_directory_database,
)
from src.infrastructure.database.directory import SQLAlchemyDirectoryStore
from src.infrastructure.identity.client import IdentityProviderClient

logger = logging.getLogger(__name__)

_identity_client: IdentityProviderClient | None = None
_provisioning_service: ProvisioningService | None = None


async def init_services() -> None:
    """Initialize the directory database and the identity provider client."""
    global _identity_client, _provisioning_service
    settings = get_settings()

    await init_directory_database(settings)
    _identity_client = IdentityProviderClient(settings.identity_provider)
    _provisioning_service = ProvisioningService(
        identity_provider=_identity_client,
        directory=SQLAlchemyDirectoryStore(get_directory_sessionmaker()),
        settings=settings.provisioning,
    )


async def close_services() -> None:
    """Close the identity provider client and the database pool."""
    global _identity_client, _provisioning_service

    if _identity_client is not None:
        await _identity_client.close()
        _identity_client = None
    _provisioning_service = None

    await close_directory_database()


def get_provisioning_service() -> ProvisioningService:
    """Get the provisioning service.

    Raises:
        HTTPException: 503 if the service was not initialized at startup.
    """
    if _provisioning_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Provisioning service not initialized",
        )
    return _provisioning_service


def get_batch_import_service(
    service: ProvisioningService = Depends(get_provisioning_service),
) -> BatchImportService:
    """Get a bulk import service bound to the provisioning service."""
    return BatchImportService(service)


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(request: Request) -> CurrentUser:
    """Require a user holding the provisioning admin role.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated or not admin.
    """
    user = require_auth(request)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
