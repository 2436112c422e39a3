"""Database initialization and snapshot persistence."""
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from concept_refresher.config import DEFAULT_DB_PATH

PROGRESS_KEY = "concept_refresher_progress"

SCHEMA = """
CREATE TABLE IF NOT EXISTS progress_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def read_value(db_path: str, key: str = PROGRESS_KEY) -> Optional[str]:
    conn = get_connection(db_path)
    try:
        row = conn.execute("SELECT value FROM progress_store WHERE key = ?", (key,)).fetchone()
    finally:
        conn.close()
    return row["value"] if row else None


def write_value(db_path: str, value: str, key: str = PROGRESS_KEY) -> None:
    """Upsert ``value`` under ``key`` in a single committed transaction."""
    conn = get_connection(db_path)
    try:
        with conn:
            conn.execute(
                """INSERT INTO progress_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at""",
                (key, value, datetime.now().isoformat()),
            )
    finally:
        conn.close()
