# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the directory database (PostgreSQL).

Example:
    from src.infrastructure.database import (
        init_directory_database,
        get_directory_sessionmaker,
        SQLAlchemyDirectoryStore,
    )

    await init_directory_database(settings)
    store = SQLAlchemyDirectoryStore(get_directory_sessionmaker())
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_directory_database_connection,
    close_directory_database,
    get_directory_sessionmaker,
    init_directory_database,
    session_scope,
)
from src.infrastructure.database.directory import SQLAlchemyDirectoryStore

__all__ = [
    "DatabaseError",
    "SQLAlchemyDirectoryStore",
    "check_directory_database_connection",
    "close_directory_database",
    "get_directory_sessionmaker",
    "init_directory_database",
    "session_scope",
]
