# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the directory database."""

from src.infrastructure.database.models.base import Base, SoftDeleteMixin, TimestampMixin
from src.infrastructure.database.models.directory import Person

__all__ = [
    "Base",
    "Person",
    "SoftDeleteMixin",
    "TimestampMixin",
]
