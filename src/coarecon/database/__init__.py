"""Database layer for coarecon."""

from coarecon.database.base import Database
from coarecon.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
