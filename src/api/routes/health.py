# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoint."""

import logging
import time
from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src import __version__
from src.core.config import get_settings
from src.infrastructure.database.connection import check_directory_database_connection
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

_server_start_time = time.time()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    directory_database: str = Field(description="Directory database status")
    checked_at: datetime = Field(description="When health was checked")


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness with directory database reachability.

    The identity provider is not probed; it is only reached while
    provisioning.
    """
    database_ok = await check_directory_database_connection()
    if not database_ok:
        logger.warning("Directory database health check failed")

    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=__version__,
        environment=get_settings().environment,
        uptime_seconds=int(time.time() - _server_start_time),
        directory_database="healthy" if database_ok else "unhealthy",
        checked_at=utc_now(),
    )
