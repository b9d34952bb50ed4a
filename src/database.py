"""
Lehrershow Song Submissions - SQLite Database

Embedded SQLite database holding the song submissions and the site-wide
settings row.  Uses aiosqlite for async operations within FastAPI and plain
sqlite3 for schema setup.

The settings table can only ever hold one row: its primary key is pinned to
1 by a CHECK constraint and all writes go through an upsert on that key.
"""

import sqlite3
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import aiosqlite
from loguru import logger

from src.config import DB_PATH

SETTINGS_ROW_ID = 1

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS submissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    submitter_name TEXT NOT NULL,
    submitter_email TEXT NOT NULL,
    submission_type TEXT NOT NULL
        CHECK (submission_type IN ('search', 'youtube', 'file')),
    song_search TEXT,
    youtube_id TEXT,
    song_file TEXT,
    title TEXT,
    artist TEXT,
    additional_info TEXT,
    notes TEXT,
    is_accepted INTEGER NOT NULL DEFAULT 0,
    accepted_by TEXT,
    accepted_at TIMESTAMP,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_submissions_is_accepted ON submissions(is_accepted);

CREATE TRIGGER IF NOT EXISTS update_submissions_timestamp
    AFTER UPDATE ON submissions
    FOR EACH ROW
BEGIN
    UPDATE submissions SET updated_at = CURRENT_TIMESTAMP WHERE id = OLD.id;
END;

CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    allow_new_submissions INTEGER NOT NULL DEFAULT 1,
    updated_by TEXT,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# ---------------------------------------------------------------------------
# Migration helpers
# ---------------------------------------------------------------------------
_MIGRATIONS = [
    # Migration 1: staff notes on a submission
    {
        "check": "SELECT COUNT(*) FROM pragma_table_info('submissions') WHERE name='notes'",
        "apply": [
            "ALTER TABLE submissions ADD COLUMN notes TEXT",
        ],
        "description": "Add notes column",
    },
    # Migration 2: record who approved a submission and when
    {
        "check": "SELECT COUNT(*) FROM pragma_table_info('submissions') WHERE name='accepted_by'",
        "apply": [
            "ALTER TABLE submissions ADD COLUMN accepted_by TEXT",
            "ALTER TABLE submissions ADD COLUMN accepted_at TIMESTAMP",
        ],
        "description": "Add approval audit columns",
    },
]


def _run_migrations(conn: sqlite3.Connection) -> None:
    """Run any pending schema migrations."""
    for migration in _MIGRATIONS:
        cursor = conn.execute(str(migration["check"]))
        (count,) = cursor.fetchone()
        if count == 0:
            logger.info("🔄 Running migration: {}", migration["description"])
            for stmt in migration["apply"]:
                conn.execute(stmt)
            conn.commit()
            logger.success("✅ Migration applied: {}", migration["description"])


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------
def init_db() -> None:
    """Initialize the SQLite database, create tables, and run migrations."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    try:
        with sqlite3.connect(str(DB_PATH)) as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
            _run_migrations(conn)
        logger.success("✅ Database initialized at {}", DB_PATH)
    except sqlite3.Error as e:
        logger.critical("❌ Failed to initialize database: {}", e)
        raise


# ---------------------------------------------------------------------------
# Async context manager (for use in FastAPI routes and services)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def get_async_connection():
    """Async context manager for an aiosqlite connection with row factory."""
    db = await aiosqlite.connect(str(DB_PATH))
    db.row_factory = aiosqlite.Row
    try:
        yield db
    finally:
        await db.close()


def row_to_dict(row) -> Dict[str, Any]:
    """Convert a database row to a plain dictionary."""
    if row is None:
        return {}
    return dict(row)


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------
async def insert_submission(
    submitter_name: str,
    submitter_email: str,
    submission_type: str,
    song_search: Optional[str] = None,
    youtube_id: Optional[str] = None,
    song_file: Optional[str] = None,
    title: Optional[str] = None,
    artist: Optional[str] = None,
    additional_info: Optional[str] = None,
) -> int:
    """Insert a pending submission and return its id."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            """
            INSERT INTO submissions (
                submitter_name, submitter_email, submission_type,
                song_search, youtube_id, song_file,
                title, artist, additional_info, is_accepted
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0)
            """,
            (
                submitter_name,
                submitter_email,
                submission_type,
                song_search,
                youtube_id,
                song_file,
                title,
                artist,
                additional_info,
            ),
        )
        await db.commit()
        submission_id = cursor.lastrowid or 0
        logger.success(
            "✅ Submission added (id={}, type={}): {} - {}",
            submission_id,
            submission_type,
            title or "?",
            artist or "?",
        )
        return submission_id


async def get_submission_by_id(submission_id: int) -> Optional[Dict[str, Any]]:
    """Fetch a single submission by its id."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            "SELECT * FROM submissions WHERE id = ?", (submission_id,)
        )
        row = await cursor.fetchone()
        return row_to_dict(row) if row else None


async def get_submissions_by_acceptance(accepted: bool) -> List[Dict[str, Any]]:
    """Fetch all submissions with the given acceptance state, newest first.

    The WHERE clause is served by ``idx_submissions_is_accepted``.
    """
    async with get_async_connection() as db:
        cursor = await db.execute(
            """
            SELECT * FROM submissions
            WHERE is_accepted = ?
            ORDER BY id DESC
            """,
            (1 if accepted else 0,),
        )
        rows = await cursor.fetchall()
        return [row_to_dict(r) for r in rows]


async def count_submissions(accepted: Optional[bool] = None) -> int:
    """Count submissions, optionally filtered by acceptance state."""
    async with get_async_connection() as db:
        if accepted is None:
            cursor = await db.execute("SELECT COUNT(*) FROM submissions")
        else:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM submissions WHERE is_accepted = ?",
                (1 if accepted else 0,),
            )
        (count,) = await cursor.fetchone()
        return count


async def mark_submission_accepted(submission_id: int, accepted_by: str) -> bool:
    """Flip a pending submission to accepted.

    Returns True if a row changed.  Rows that are already accepted are left
    untouched so the first approver and timestamp are kept.
    """
    async with get_async_connection() as db:
        cursor = await db.execute(
            """
            UPDATE submissions
            SET is_accepted = 1, accepted_by = ?, accepted_at = CURRENT_TIMESTAMP
            WHERE id = ? AND is_accepted = 0
            """,
            (accepted_by, submission_id),
        )
        await db.commit()
        return cursor.rowcount > 0


async def update_submission_notes(submission_id: int, notes: Optional[str]) -> bool:
    """Replace the staff notes of a submission. Returns True if the row exists."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            "UPDATE submissions SET notes = ? WHERE id = ?",
            (notes, submission_id),
        )
        await db.commit()
        return cursor.rowcount > 0


# ---------------------------------------------------------------------------
# Settings (single row)
# ---------------------------------------------------------------------------
async def get_settings_row() -> Optional[Dict[str, Any]]:
    """Return the settings row, or None if it was never written."""
    async with get_async_connection() as db:
        cursor = await db.execute(
            "SELECT * FROM settings WHERE id = ?", (SETTINGS_ROW_ID,)
        )
        row = await cursor.fetchone()
        return row_to_dict(row) if row else None


async def upsert_settings_row(allow_new_submissions: bool, updated_by: str) -> int:
    """Insert the settings row or update it in place. Returns the row id."""
    async with get_async_connection() as db:
        await db.execute(
            """
            INSERT INTO settings (id, allow_new_submissions, updated_by, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(id) DO UPDATE SET
                allow_new_submissions = excluded.allow_new_submissions,
                updated_by = excluded.updated_by,
                updated_at = CURRENT_TIMESTAMP
            """,
            (SETTINGS_ROW_ID, 1 if allow_new_submissions else 0, updated_by),
        )
        await db.commit()
    logger.info(
        "⚙️ Settings updated by '{}': allow_new_submissions={}",
        updated_by,
        allow_new_submissions,
    )
    return SETTINGS_ROW_ID

