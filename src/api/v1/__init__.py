# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    provisioning: Teacher and student account provisioning endpoints.
"""

from fastapi import APIRouter

from src.api.v1 import provisioning

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(provisioning.router, prefix="/provisioning", tags=["Provisioning"])

__all__ = ["router"]
