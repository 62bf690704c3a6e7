"""Database operations for user accounts."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, TypedDict

from config.settings import get_default_config
from discussion_engine.database.schema import SchemaManager
from discussion_engine.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class UserData(TypedDict):
    """Type definition for user data."""

    id: int
    email: str
    username: str | None
    password_hash: str
    created_at: str
    updated_at: str


class AuthDatabaseManager:
    """Database manager specifically for authentication operations."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            db_path = get_default_config().get_database_path()
        self.db_path = Path(db_path)
        self._schema_ready = False

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection, creating the schema on first use."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            if not self._schema_ready:
                SchemaManager().initialize_database_schema(conn.cursor())
                conn.commit()
                self._schema_ready = True
            yield conn
        except sqlite3.IntegrityError:
            if conn:
                conn.rollback()
            raise
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            logger.error(f"Database error: {e}")
            raise StoreUnavailableError(f"User store unavailable: {e}") from e
        finally:
            if conn:
                conn.close()

    def create_user(self, email: str, password_hash: str, username: str) -> int:
        """
        Create a new user account.

        Raises:
            sqlite3.IntegrityError: If email already exists
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO users (email, username, password_hash, created_at, updated_at)
                VALUES (?, ?, ?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """,
                (email, username, password_hash),
            )
            user_id = cursor.lastrowid
            if user_id is None:
                raise RuntimeError("Failed to get user ID from database")

            conn.commit()
            logger.info(f"Created user account for email: {email}")
            return user_id

    def get_user_by_email(self, email: str) -> UserData | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            return self._row_to_user(row) if row else None

    def get_user_by_id(self, user_id: int) -> UserData | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._row_to_user(row) if row else None

    def email_exists(self, email: str) -> bool:
        with self._get_connection() as conn:
            row = conn.execute("SELECT 1 FROM users WHERE email = ?", (email,)).fetchone()
            return row is not None

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> UserData:
        return {
            "id": row["id"],
            "email": row["email"],
            "username": row["username"],
            "password_hash": row["password_hash"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }
