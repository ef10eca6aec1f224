"""Database layer for Trador."""

from trador.db.store import DataStore

__all__ = ["DataStore"]
