"""Database layer — SQLite store shared by all repositories."""

from zeno.db.connection import Database

__all__ = ["Database"]
