"""Database layer for ledgerrules."""

from ledgerrules.database.base import Database
from ledgerrules.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
