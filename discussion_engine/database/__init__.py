"""Database management module."""

from .database import DatabaseManager, get_database_path

__all__ = ["DatabaseManager", "get_database_path"]
