# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Directory record for teachers and students.

Every row references exactly one identity in the external identity
provider through identity_id.
"""

import uuid

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, SoftDeleteMixin, TimestampMixin


class Person(Base, TimestampMixin, SoftDeleteMixin):
    """Teacher or student record."""

    __tablename__ = "people"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    identity_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    last_name: Mapped[str] = mapped_column(String(20), nullable=False)
    first_name: Mapped[str] = mapped_column(String(20), nullable=False)
    phone1: Mapped[str] = mapped_column(String(8), nullable=False)
    phone2: Mapped[str | None] = mapped_column(String(8), nullable=True)
    grade: Mapped[int | None] = mapped_column(Integer, nullable=True)
    group: Mapped[str | None] = mapped_column("class_group", String(2), nullable=True)

    __table_args__ = (
        CheckConstraint("role IN ('student', 'teacher')", name="valid_person_role"),
        CheckConstraint("grade IS NULL OR (grade BETWEEN 1 AND 12)", name="valid_person_grade"),
        Index("ix_people_role_phone1", "role", "phone1"),
    )

    @property
    def display_name(self) -> str:
        """Full name as shown in the directory."""
        return f"{self.last_name} {self.first_name}"

    def __repr__(self) -> str:
        return f"<Person(id={self.id}, username={self.username}, role={self.role})>"
