# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial directory database schema.

Revision ID: 001_directory_initial
Revises: None
Create Date: 2026-10-19

Creates the people table holding teacher and student records.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_directory_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = ("directory",)
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create directory tables."""
    op.create_table(
        "people",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("identity_id", sa.String(64), unique=True, nullable=False),
        sa.Column("username", sa.String(64), unique=True, nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("last_name", sa.String(20), nullable=False),
        sa.Column("first_name", sa.String(20), nullable=False),
        sa.Column("phone1", sa.String(8), nullable=False),
        sa.Column("phone2", sa.String(8), nullable=True),
        sa.Column("grade", sa.Integer, nullable=True),
        sa.Column("class_group", sa.String(2), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('student', 'teacher')", name="valid_person_role"),
        sa.CheckConstraint(
            "grade IS NULL OR (grade BETWEEN 1 AND 12)",
            name="valid_person_grade",
        ),
    )
    op.create_index("ix_people_role_phone1", "people", ["role", "phone1"])


def downgrade() -> None:
    """Drop directory tables."""
    op.drop_index("ix_people_role_phone1", table_name="people")
    op.drop_table("people")
