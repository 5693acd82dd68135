"""
SQLite database integration and simple migration system.

This module provides functions for locating the database file
(``get_database_path``), obtaining a connection (``get_connection``)
and applying migrations (``init_db``).  SQLite stands in for the
browser local storage of the original tool: it keeps the last saved
snapshot of segments and memberships between runs.

Applied migration versions are stored in the ``migrations`` table and
new migrations are executed in order.
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .config import settings


def get_database_path(db_url: Optional[str] = None) -> str:
    """Compute the path to the SQLite database file.

    An absolute path is used as is.  Otherwise the path is resolved
    relative to the project root.
    """
    db_url = db_url or settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # segment_manager_api/
    return str((base_dir / db_url).resolve())


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Timestamps are stored as ISO strings and parsed by the
    schema layer, so no type detection is enabled here.
    """
    conn = sqlite3.connect(get_database_path(db_path))
    conn.row_factory = sqlite3.Row
    # Foreign keys are off by default in SQLite and must be enabled per connection.
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor(db_path: Optional[str] = None) -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection(db_path)
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: segments and memberships
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS segments (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            description TEXT NOT NULL DEFAULT '',
            position INTEGER NOT NULL,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP NOT NULL
        );

        CREATE TABLE IF NOT EXISTS user_segments (
            user_id TEXT NOT NULL,
            segment_id TEXT NOT NULL,
            PRIMARY KEY (user_id, segment_id),
            FOREIGN KEY(segment_id) REFERENCES segments(id) ON DELETE CASCADE
        );
        """,
    ),
    # Migration 2: lookup of members by segment
    (
        2,
        """
        CREATE INDEX IF NOT EXISTS idx_user_segments_segment_id ON user_segments(segment_id);
        """,
    ),
]


def init_db(db_path: Optional[str] = None) -> int:
    """Initialise the database and apply pending migrations.

    Returns the schema version after all migrations have run.
    """
    with get_cursor(db_path) as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
    return current_version
