"""Applies the discussion store schema from ordered SQL files."""

import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Referenced tables first, indexes last
TABLE_FILES: tuple[str, ...] = (
    "users.sql",
    "discussions.sql",
    "participants.sql",
    "observers.sql",
    "final_votes.sql",
    "messages.sql",
    "message_likes.sql",
    "indexes.sql",
)


class SchemaManager:
    """Creates tables and indexes for discussions, rosters, votes and messages.

    Every statement uses ``IF NOT EXISTS``, so applying the schema to an
    existing database is a no-op apart from stamping ``user_version``.
    """

    def __init__(self, schema_dir: Path | None = None):
        self.schema_dir = schema_dir or Path(__file__).parent
        self.tables_dir = self.schema_dir / "tables"
        self.table_creation_order = list(TABLE_FILES)

    def missing_files(self) -> list[str]:
        return [
            name for name in self.table_creation_order
            if not (self.tables_dir / name).exists()
        ]

    def validate_schema_files(self) -> bool:
        """True when every schema file is present."""
        missing = self.missing_files()
        if missing:
            logger.error(f"Missing schema files: {missing}")
            return False
        return True

    def statements(self, filename: str) -> Iterator[str]:
        """Yield the SQL statements of one schema file."""
        path = self.tables_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"Schema file not found: {path}")
        for statement in path.read_text(encoding="utf-8").split(";"):
            if statement.strip():
                yield statement.strip()

    def initialize_database_schema(self, cursor: sqlite3.Cursor) -> None:
        for filename in self.table_creation_order:
            try:
                for statement in self.statements(filename):
                    cursor.execute(statement)
            except sqlite3.Error as e:
                logger.error(f"Failed to apply schema file {filename}: {e}")
                raise
            logger.debug(f"Applied schema file: {filename}")

        cursor.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        logger.info(f"Database schema at version {SCHEMA_VERSION}")
