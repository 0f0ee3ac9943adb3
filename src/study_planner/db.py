"""Database initialization and connection management."""
import logging
import os
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.environ.get(
    "STUDY_PLANNER_DB", str(Path.home() / ".study_planner" / "planner.db")
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS exams (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    exam_date TEXT NOT NULL,
    description TEXT,
    is_active INTEGER DEFAULT 1,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS subjects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    strength TEXT DEFAULT 'average' CHECK (strength IN ('weak', 'average', 'strong')),
    color TEXT DEFAULT '#0d9488'
);

CREATE TABLE IF NOT EXISTS topics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    subject_id INTEGER NOT NULL REFERENCES subjects(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    confidence_level INTEGER DEFAULT 1 CHECK (confidence_level BETWEEN 1 AND 5),
    priority_score INTEGER DEFAULT 50 CHECK (priority_score BETWEEN 0 AND 100),
    estimated_hours REAL DEFAULT 1.0,
    completed_hours REAL DEFAULT 0.0,
    last_studied_at TEXT,
    last_revision_date TEXT,
    next_revision_at TEXT,
    revision_count INTEGER DEFAULT 0,
    is_completed INTEGER DEFAULT 0,
    notes TEXT,
    UNIQUE(subject_id, name)
);

CREATE TABLE IF NOT EXISTS study_sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    topic_id INTEGER NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
    session_type TEXT DEFAULT 'learning' CHECK (session_type IN ('learning', 'revision', 'recall')),
    planned_duration_minutes INTEGER NOT NULL,
    actual_duration_minutes INTEGER DEFAULT 0,
    scheduled_at TEXT NOT NULL,
    started_at TEXT,
    completed_at TEXT,
    status TEXT DEFAULT 'scheduled'
        CHECK (status IN ('scheduled', 'in_progress', 'completed', 'missed', 'skipped')),
    priority_score INTEGER DEFAULT 0,
    reason TEXT,
    pomodoros_completed INTEGER DEFAULT 0,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS daily_progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL UNIQUE,
    planned_minutes INTEGER DEFAULT 0,
    completed_minutes INTEGER DEFAULT 0,
    sessions_planned INTEGER DEFAULT 0,
    sessions_completed INTEGER DEFAULT 0,
    streak_maintained INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS weekly_reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    week_start TEXT NOT NULL UNIQUE,
    week_end TEXT NOT NULL,
    total_planned_minutes INTEGER DEFAULT 0,
    total_completed_minutes INTEGER DEFAULT 0,
    sessions_planned INTEGER DEFAULT 0,
    sessions_completed INTEGER DEFAULT 0,
    exam_readiness TEXT DEFAULT 'not_ready',
    readiness_percentage INTEGER DEFAULT 0,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS revision_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    topic_id INTEGER NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
    session_id INTEGER REFERENCES study_sessions(id) ON DELETE SET NULL,
    confidence_before INTEGER NOT NULL,
    confidence_after INTEGER NOT NULL,
    completed INTEGER DEFAULT 0,
    skipped INTEGER DEFAULT 0,
    revision_type TEXT DEFAULT 'scheduled',
    notes TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS video_cache (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    topic_id INTEGER NOT NULL UNIQUE REFERENCES topics(id) ON DELETE CASCADE,
    search_query TEXT NOT NULL,
    videos TEXT NOT NULL DEFAULT '[]',
    fetched_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
    logger.debug("Initialized database at %s", db_path)
