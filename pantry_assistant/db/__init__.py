"""SQLite connections and schema setup for the list and pantry stores."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Bumped whenever schema.sql changes shape.
SCHEMA_VERSION = 1

_MEMORY_URI = "file:pantry_assistant_memdb?mode=memory&cache=shared"
_BUSY_TIMEOUT_MS = 5000

# A shared in-memory database lives only while a connection to it is open.
_memory_anchor: sqlite3.Connection | None = None


def get_connection(db_path: str) -> sqlite3.Connection:
    """Open a connection with WAL journaling and ``sqlite3.Row`` rows.

    ``":memory:"`` maps to one shared in-memory database, so every
    store in the process sees the same tables.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.

    Returns:
        Configured sqlite3.Connection.
    """
    if db_path == ":memory:":
        conn = sqlite3.connect(_MEMORY_URI, uri=True)
    else:
        conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={_BUSY_TIMEOUT_MS}")
    conn.row_factory = sqlite3.Row
    return conn


def schema_version(conn: sqlite3.Connection) -> int:
    """Return the schema version recorded in the database header."""
    return int(conn.execute("PRAGMA user_version").fetchone()[0])


def init_db(db_path: str) -> None:
    """Create the tables and indexes if they are missing.

    Safe to call on every store construction: the DDL is idempotent and
    is skipped entirely once the database reports the current version.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.
    """
    global _memory_anchor
    if db_path == ":memory:" and _memory_anchor is None:
        _memory_anchor = get_connection(db_path)

    conn = get_connection(db_path)
    try:
        if schema_version(conn) >= SCHEMA_VERSION:
            return
        conn.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")
        conn.commit()
        logger.info("Initialized schema v%d at %s", SCHEMA_VERSION, db_path)
    finally:
        conn.close()
