"""
Persistence of the segment state in SQLite.

``StateRepository`` stores a full snapshot of segments and memberships.
``save_state`` rewrites both tables inside one transaction, so a failed
write leaves the previously saved snapshot in place.  Queries use
parameterized statements only.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from segment_manager_api.app.core.db import get_connection, get_database_path, init_db
from segment_manager_api.app.core.errors import PersistenceError
from segment_manager_api.app.schemas.segment import Segment


class StateRepository:
    """Load and save segment state snapshots."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = get_database_path(db_path)

    def init_schema(self) -> int:
        try:
            return init_db(self.db_path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot initialise database {self.db_path}: {exc}") from exc

    def load_state(self) -> Tuple[List[Segment], Dict[str, Set[str]]]:
        """Return the saved segments (in listing order) and memberships.

        Both collections are empty when nothing has been saved yet.
        """
        conn = self._connect()
        try:
            cursor = conn.cursor()
            rows = cursor.execute(
                "SELECT id, name, description, created_at, updated_at FROM segments ORDER BY position ASC"
            ).fetchall()
            segments = [self._row_to_segment(row) for row in rows]
            memberships: Dict[str, Set[str]] = {}
            for row in cursor.execute("SELECT user_id, segment_id FROM user_segments"):
                memberships.setdefault(row["user_id"], set()).add(row["segment_id"])
            return segments, memberships
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot load state from {self.db_path}: {exc}") from exc
        finally:
            conn.close()

    def save_state(self, segments: Iterable[Segment], memberships: Mapping[str, Iterable[str]]) -> None:
        """Replace the saved snapshot with the given state.

        Runs as a single transaction; on any database error the
        transaction is rolled back and ``PersistenceError`` is raised.
        """
        logger = logging.getLogger(__name__)
        conn = self._connect()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM user_segments")
            cursor.execute("DELETE FROM segments")
            cursor.executemany(
                """
                INSERT INTO segments (id, name, description, position, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        segment.id,
                        segment.name,
                        segment.description,
                        position,
                        segment.created_at.isoformat(),
                        segment.updated_at.isoformat(),
                    )
                    for position, segment in enumerate(segments)
                ],
            )
            cursor.executemany(
                "INSERT INTO user_segments (user_id, segment_id) VALUES (?, ?)",
                [
                    (user_id, segment_id)
                    for user_id, segment_ids in memberships.items()
                    for segment_id in sorted(segment_ids)
                ],
            )
            conn.commit()
            logger.debug("Saved state to %s", self.db_path)
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(f"Cannot save state to {self.db_path}: {exc}") from exc
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        try:
            return get_connection(self.db_path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open database {self.db_path}: {exc}") from exc

    @staticmethod
    def _row_to_segment(row: sqlite3.Row) -> Segment:
        """Convert a database row to a ``Segment`` record."""
        return Segment(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
