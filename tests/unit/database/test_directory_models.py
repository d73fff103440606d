# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database models.

Tests model definitions and helper methods.
"""

from datetime import datetime, timezone

from src.infrastructure.database.models.base import Base, SoftDeleteMixin, TimestampMixin
from src.infrastructure.database.models.directory import Person


class TestBase:
    """Test base model functionality."""

    def test_base_inherits_declarative_base(self):
        """Verify Base is a declarative base."""
        assert hasattr(Base, "metadata")
        assert hasattr(Base, "registry")

    def test_timestamp_mixin_has_created_at(self):
        """Verify TimestampMixin has created_at field."""
        assert hasattr(TimestampMixin, "created_at")
        assert hasattr(TimestampMixin, "updated_at")

    def test_soft_delete_mixin_has_deleted_at(self):
        """Verify SoftDeleteMixin has deleted_at field."""
        assert hasattr(SoftDeleteMixin, "deleted_at")


class TestPerson:
    """Test the directory Person model."""

    def test_table(self):
        """Verify table name and registration on the metadata."""
        assert Person.__tablename__ == "people"
        assert "people" in Base.metadata.tables

    def test_group_column_name(self):
        """Verify group is stored as class_group."""
        columns = Base.metadata.tables["people"].columns

        assert "class_group" in columns
        assert "group" not in columns

    def test_unique_identity_and_username(self):
        """Verify identity_id and username are unique."""
        columns = Base.metadata.tables["people"].columns

        assert columns["identity_id"].unique
        assert columns["username"].unique
        assert not columns["phone1"].unique

    def test_display_name(self):
        """Test display_name joins last and first name."""
        person = Person(last_name="Батбаяр", first_name="Хонгорзул")

        assert person.display_name == "Батбаяр Хонгорзул"

    def test_is_deleted(self):
        """Test is_deleted follows deleted_at."""
        person = Person(username="khongorzulb")
        assert not person.is_deleted

        person.deleted_at = datetime.now(timezone.utc)
        assert person.is_deleted
