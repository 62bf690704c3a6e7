"""SQLite document store for discussions and their message streams."""

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from ..exceptions import StoreUnavailableError
from ..models import Discussion, FinalVote, Message, Participant
from ..types import (
    DebatePhase,
    DiscussionStatus,
    DiscussionType,
    MessageType,
    ParticipantRole,
    VoteChoice,
)
from .schema import SchemaManager

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "debox.db"

# Columns update_status() may set alongside the status itself
_STATUS_FIELDS = ("started_at", "ended_at", "current_phase", "phase_start_time")


def get_database_path() -> Path:
    """Database location, overridable with DEBOX_DB_PATH."""
    return Path(os.environ.get("DEBOX_DB_PATH", DEFAULT_DB_PATH))


def _ts(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat(timespec="microseconds")


def _parse_ts(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _db_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return _ts(value)
    if hasattr(value, "value"):
        return value.value
    return value


class DatabaseManager:
    """Manages SQLite connections and queries for discussions.

    Uniqueness of roster, observer, vote and like entries is enforced by
    primary keys; phase and status transitions are conditional updates that
    only apply when the stored value still matches what the caller read.
    """

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path is not None else get_database_path()
        self.schema_manager = SchemaManager()
        self._init_database()

    def _init_database(self):
        """Initialize the database with required tables using schema manager."""
        if not self.schema_manager.validate_schema_files():
            raise RuntimeError("Database schema validation failed - missing schema files")

        with self._get_connection() as conn:
            cursor = conn.cursor()
            self.schema_manager.initialize_database_schema(cursor)
            conn.commit()
            logger.info(f"Database initialized at {self.db_path}")

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row  # Enable column access by name
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except sqlite3.IntegrityError:
            if conn:
                conn.rollback()
            raise
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            logger.error(f"Database error: {e}")
            raise StoreUnavailableError(f"Discussion store unavailable: {e}") from e
        finally:
            if conn:
                conn.close()

    # Discussions

    def create_discussion(self, discussion: Discussion) -> str:
        """Insert a new discussion record and return its ID."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO discussions (
                    id, title, description, type, status, current_phase, category,
                    created_by, created_at, started_at, ended_at, allow_observers,
                    max_participants, time_limit, phase_time_limit, phase_start_time,
                    winner
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    discussion.id,
                    discussion.title,
                    discussion.description,
                    discussion.type.value,
                    discussion.status.value,
                    discussion.current_phase.value if discussion.current_phase else None,
                    discussion.category,
                    discussion.created_by,
                    _ts(discussion.created_at),
                    _ts(discussion.started_at),
                    _ts(discussion.ended_at),
                    int(discussion.allow_observers),
                    discussion.max_participants,
                    discussion.time_limit,
                    discussion.phase_time_limit,
                    _ts(discussion.phase_start_time),
                    discussion.winner.value if discussion.winner else None,
                ),
            )
            conn.commit()
            logger.info(f"Created discussion {discussion.id}: {discussion.title}")
            return discussion.id

    def get_discussion(self, discussion_id: str) -> Discussion | None:
        """Load a discussion with its roster, observers and votes."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM discussions WHERE id = ?", (discussion_id,)
            ).fetchone()
            if not row:
                return None
            return self._load_discussion(conn, row)

    def list_discussions(
        self, limit: int | None = None, offset: int = 0
    ) -> list[Discussion]:
        """List discussions, newest first."""
        with self._get_connection() as conn:
            query = "SELECT * FROM discussions ORDER BY created_at DESC"
            params: list[Any] = []
            if limit:
                query += " LIMIT ? OFFSET ?"
                params.extend([limit, offset])

            rows = conn.execute(query, params).fetchall()
            return [self._load_discussion(conn, row) for row in rows]

    def count_discussions(self) -> int:
        with self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM discussions").fetchone()[0]

    def list_discussion_ids_by_status(self, status: DiscussionStatus) -> list[str]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT id FROM discussions WHERE status = ? ORDER BY created_at",
                (status.value,),
            ).fetchall()
            return [row["id"] for row in rows]

    def update_status(
        self,
        discussion_id: str,
        expected_status: DiscussionStatus,
        new_status: DiscussionStatus,
        **fields: Any,
    ) -> bool:
        """Change status only if it still equals ``expected_status``.

        Extra keyword fields (started_at, ended_at, current_phase,
        phase_start_time) are written in the same statement.
        """
        unknown = set(fields) - set(_STATUS_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields with status: {sorted(unknown)}")

        set_clauses = ["status = ?"]
        params: list[Any] = [new_status.value]
        for name in _STATUS_FIELDS:
            if name in fields:
                set_clauses.append(f"{name} = ?")
                params.append(_db_value(fields[name]))
        params.extend([discussion_id, expected_status.value])

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"""
                UPDATE discussions
                SET {', '.join(set_clauses)}
                WHERE id = ? AND status = ?
                """,
                params,
            )
            updated = cursor.rowcount > 0
            conn.commit()

        if updated:
            logger.info(
                f"Discussion {discussion_id} status {expected_status.value} -> {new_status.value}"
            )
        return updated

    def update_phase(
        self,
        discussion_id: str,
        expected_phase: DebatePhase,
        new_phase: DebatePhase,
        phase_start_time: datetime,
        ended_at: datetime | None = None,
    ) -> bool:
        """Advance an active discussion only if it is still in ``expected_phase``.

        When ``ended_at`` is given the status moves to ended in the same write.
        """
        set_clauses = ["current_phase = ?", "phase_start_time = ?"]
        params: list[Any] = [new_phase.value, _ts(phase_start_time)]
        if ended_at is not None:
            set_clauses.extend(["status = ?", "ended_at = ?"])
            params.extend([DiscussionStatus.ENDED.value, _ts(ended_at)])
        params.extend(
            [discussion_id, expected_phase.value, DiscussionStatus.ACTIVE.value]
        )

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"""
                UPDATE discussions
                SET {', '.join(set_clauses)}
                WHERE id = ? AND current_phase = ? AND status = ?
                """,
                params,
            )
            updated = cursor.rowcount > 0
            conn.commit()

        if updated:
            logger.info(
                f"Discussion {discussion_id} phase {expected_phase.value} -> {new_phase.value}"
            )
        return updated

    def set_winner(self, discussion_id: str, winner: VoteChoice | None) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE discussions SET winner = ? WHERE id = ?",
                (winner.value if winner else None, discussion_id),
            )
            conn.commit()

    # Roster

    def add_participant(self, discussion_id: str, participant: Participant) -> bool:
        """Append a participant; False if the user is already on the roster."""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO participants (
                        discussion_id, user_id, username, role, joined_at, is_team_leader
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        discussion_id,
                        participant.user_id,
                        participant.username,
                        participant.role.value,
                        _ts(participant.joined_at),
                        int(participant.is_team_leader),
                    ),
                )
                conn.commit()
                return True
        except sqlite3.IntegrityError:
            logger.warning(
                f"Participant {participant.user_id} already joined {discussion_id}"
            )
            return False

    def add_observer(self, discussion_id: str, user_id: str, joined_at: datetime) -> bool:
        """Add a user to the observer set; False if already present."""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "INSERT INTO observers (discussion_id, user_id, joined_at) VALUES (?, ?, ?)",
                    (discussion_id, user_id, _ts(joined_at)),
                )
                conn.commit()
                return True
        except sqlite3.IntegrityError:
            logger.warning(f"Observer {user_id} already watching {discussion_id}")
            return False

    # Votes

    def upsert_vote(self, discussion_id: str, vote: FinalVote) -> None:
        """Record a vote, replacing any earlier vote by the same user."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO final_votes (discussion_id, user_id, vote, reasoning, timestamp)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (discussion_id, user_id) DO UPDATE SET
                    vote = excluded.vote,
                    reasoning = excluded.reasoning,
                    timestamp = excluded.timestamp
                """,
                (
                    discussion_id,
                    vote.user_id,
                    vote.vote.value,
                    vote.reasoning,
                    _ts(vote.timestamp),
                ),
            )
            conn.commit()

    # Messages

    def add_message(self, message: Message) -> int:
        """Append a message and return its ID."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO messages (
                    discussion_id, user_id, username, content, timestamp, role,
                    phase, message_type, reply_to
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message.discussion_id,
                    message.user_id,
                    message.username,
                    message.content,
                    _ts(message.timestamp),
                    message.role.value,
                    message.phase.value if message.phase else None,
                    message.message_type.value,
                    message.reply_to,
                ),
            )
            message_id = cursor.lastrowid
            if message_id is None:
                raise RuntimeError("Failed to get message ID from database")
            conn.commit()
            return message_id

    def get_message(self, message_id: int) -> Message | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM messages WHERE id = ?", (message_id,)
            ).fetchone()
            if not row:
                return None
            likers = [
                r["user_id"]
                for r in conn.execute(
                    "SELECT user_id FROM message_likes WHERE message_id = ? ORDER BY liked_at",
                    (message_id,),
                )
            ]
            return self._row_to_message(row, likers)

    def list_messages(self, discussion_id: str) -> list[Message]:
        """Messages of a discussion in chat order (oldest first)."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM messages
                WHERE discussion_id = ?
                ORDER BY timestamp ASC, id ASC
                """,
                (discussion_id,),
            ).fetchall()

            likers: dict[int, list[str]] = {}
            for like in conn.execute(
                """
                SELECT ml.message_id, ml.user_id
                FROM message_likes ml
                JOIN messages m ON m.id = ml.message_id
                WHERE m.discussion_id = ?
                ORDER BY ml.liked_at
                """,
                (discussion_id,),
            ):
                likers.setdefault(like["message_id"], []).append(like["user_id"])

            return [self._row_to_message(row, likers.get(row["id"], [])) for row in rows]

    def add_like(self, message_id: int, user_id: str, liked_at: datetime) -> bool:
        """Add a user to a message's likers; False if already liked."""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "INSERT INTO message_likes (message_id, user_id, liked_at) VALUES (?, ?, ?)",
                    (message_id, user_id, _ts(liked_at)),
                )
                conn.commit()
                return True
        except sqlite3.IntegrityError:
            return False

    # Row mapping

    def _load_discussion(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Discussion:
        discussion_id = row["id"]
        participants = [
            Participant(
                user_id=p["user_id"],
                username=p["username"],
                role=ParticipantRole(p["role"]),
                joined_at=_parse_ts(p["joined_at"]),
                is_team_leader=bool(p["is_team_leader"]),
            )
            for p in conn.execute(
                "SELECT * FROM participants WHERE discussion_id = ? ORDER BY joined_at, rowid",
                (discussion_id,),
            )
        ]
        observers = [
            o["user_id"]
            for o in conn.execute(
                "SELECT user_id FROM observers WHERE discussion_id = ? ORDER BY joined_at, rowid",
                (discussion_id,),
            )
        ]
        votes = {
            v["user_id"]: FinalVote(
                user_id=v["user_id"],
                vote=VoteChoice(v["vote"]),
                timestamp=_parse_ts(v["timestamp"]),
                reasoning=v["reasoning"],
            )
            for v in conn.execute(
                "SELECT * FROM final_votes WHERE discussion_id = ? ORDER BY timestamp",
                (discussion_id,),
            )
        }

        return Discussion(
            id=discussion_id,
            title=row["title"],
            description=row["description"],
            type=DiscussionType(row["type"]),
            status=DiscussionStatus(row["status"]),
            current_phase=DebatePhase(row["current_phase"]) if row["current_phase"] else None,
            category=row["category"],
            created_by=row["created_by"],
            created_at=_parse_ts(row["created_at"]),
            started_at=_parse_ts(row["started_at"]),
            ended_at=_parse_ts(row["ended_at"]),
            allow_observers=bool(row["allow_observers"]),
            max_participants=row["max_participants"],
            time_limit=row["time_limit"],
            phase_time_limit=row["phase_time_limit"],
            phase_start_time=_parse_ts(row["phase_start_time"]),
            participants=participants,
            observers=observers,
            final_votes=votes,
            winner=VoteChoice(row["winner"]) if row["winner"] else None,
        )

    @staticmethod
    def _row_to_message(row: sqlite3.Row, likers: list[str]) -> Message:
        return Message(
            id=row["id"],
            discussion_id=row["discussion_id"],
            user_id=row["user_id"],
            username=row["username"],
            content=row["content"],
            timestamp=_parse_ts(row["timestamp"]),
            role=ParticipantRole(row["role"]),
            phase=DebatePhase(row["phase"]) if row["phase"] else None,
            message_type=MessageType(row["message_type"]),
            reply_to=row["reply_to"],
            likes=len(likers),
            liked_by=likers,
        )
