"""Subject and topic storage."""
import logging
import sqlite3
from datetime import datetime

from study_planner.db import get_connection
from study_planner.exceptions import NotFoundError
from study_planner.models import (
    DEFAULT_SUBJECT_COLOR, MAX_CONFIDENCE, MIN_CONFIDENCE, Strength, Subject, Topic, clamp,
    parse_strength, subject_from_record, topic_from_record,
)
from study_planner.priority import score_learning_priority

logger = logging.getLogger(__name__)


def add_subject(
    db_path: str,
    name: str,
    strength: Strength | str = Strength.AVERAGE,
    color: str = DEFAULT_SUBJECT_COLOR,
) -> int:
    """Insert a subject (or update strength/colour if the name exists). Returns its id."""
    strength = parse_strength(strength)
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO subjects (name, strength, color) VALUES (?, ?, ?)
        ON CONFLICT(name) DO UPDATE SET strength=excluded.strength, color=excluded.color""",
        (name, strength.value, color),
    )
    conn.commit()
    subject_id = conn.execute("SELECT id FROM subjects WHERE name = ?", (name,)).fetchone()["id"]
    conn.close()
    return subject_id


def list_subjects(db_path: str) -> list:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM subjects ORDER BY id").fetchall()
    conn.close()
    return rows


def get_subject_by_name(db_path: str, name: str) -> sqlite3.Row | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM subjects WHERE name = ?", (name,)).fetchone()
    conn.close()
    return row


def get_subject(db_path: str, subject_id: int) -> sqlite3.Row:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM subjects WHERE id = ?", (subject_id,)).fetchone()
    conn.close()
    if row is None:
        raise NotFoundError(f"Subject {subject_id} not found")
    return row


def set_subject_strength(db_path: str, subject_id: int, strength: Strength | str) -> None:
    conn = get_connection(db_path)
    cur = conn.execute(
        "UPDATE subjects SET strength = ? WHERE id = ?",
        (parse_strength(strength).value, subject_id),
    )
    conn.commit()
    updated = cur.rowcount
    conn.close()
    if updated == 0:
        raise NotFoundError(f"Subject {subject_id} not found")


def add_topic(
    db_path: str,
    subject_id: int,
    name: str,
    estimated_hours: float = 1.0,
    confidence_level: int = MIN_CONFIDENCE,
    notes: str = "",
) -> int:
    conn = get_connection(db_path)
    subject = conn.execute("SELECT id FROM subjects WHERE id = ?", (subject_id,)).fetchone()
    if subject is None:
        conn.close()
        raise NotFoundError(f"Subject {subject_id} not found")
    cur = conn.execute(
        """INSERT INTO topics (subject_id, name, estimated_hours, confidence_level, notes)
        VALUES (?, ?, ?, ?, ?)""",
        (
            subject_id, name, max(0.0, estimated_hours),
            clamp(int(confidence_level), MIN_CONFIDENCE, MAX_CONFIDENCE), notes,
        ),
    )
    conn.commit()
    topic_id = cur.lastrowid
    conn.close()
    return topic_id


def get_topic(db_path: str, topic_id: int) -> Topic:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM topics WHERE id = ?", (topic_id,)).fetchone()
    conn.close()
    if row is None:
        raise NotFoundError(f"Topic {topic_id} not found")
    return topic_from_record(row)


def list_topics(
    db_path: str,
    subject_id: int | None = None,
    include_completed: bool = True,
) -> list[Topic]:
    """List topics, optionally for one subject and/or only the open ones."""
    query = "SELECT * FROM topics WHERE 1 = 1"
    params = []
    if subject_id is not None:
        query += " AND subject_id = ?"
        params.append(subject_id)
    if not include_completed:
        query += " AND is_completed = 0"
    query += " ORDER BY id"
    conn = get_connection(db_path)
    rows = conn.execute(query, params).fetchall()
    conn.close()
    return [topic_from_record(r) for r in rows]


def get_subjects_with_topics(db_path: str, include_completed: bool = True) -> list[Subject]:
    """Load every subject with its topics, normalized and ready for scheduling."""
    conn = get_connection(db_path)
    subjects = conn.execute("SELECT * FROM subjects ORDER BY id").fetchall()
    result = []
    for s in subjects:
        query = "SELECT * FROM topics WHERE subject_id = ?"
        if not include_completed:
            query += " AND is_completed = 0"
        topics = conn.execute(query + " ORDER BY id", (s["id"],)).fetchall()
        result.append(subject_from_record(s, topics))
    conn.close()
    return result


def update_topic_confidence(db_path: str, topic_id: int, confidence_level: int) -> None:
    _update_topic(db_path, topic_id, "confidence_level", clamp(int(confidence_level), MIN_CONFIDENCE, MAX_CONFIDENCE))


def mark_topic_completed(db_path: str, topic_id: int, completed: bool = True) -> None:
    _update_topic(db_path, topic_id, "is_completed", int(completed))


def _update_topic(db_path: str, topic_id: int, column: str, value) -> None:
    conn = get_connection(db_path)
    cur = conn.execute(f"UPDATE topics SET {column} = ? WHERE id = ?", (value, topic_id))
    conn.commit()
    updated = cur.rowcount
    conn.close()
    if updated == 0:
        raise NotFoundError(f"Topic {topic_id} not found")


def record_study_time(db_path: str, topic_id: int, minutes: int, now: datetime) -> None:
    """Add studied minutes to a topic and stamp it as studied at ``now``."""
    conn = get_connection(db_path)
    cur = conn.execute(
        """UPDATE topics SET completed_hours = completed_hours + ?, last_studied_at = ?
        WHERE id = ?""",
        (max(0, minutes) / 60, now.isoformat(), topic_id),
    )
    conn.commit()
    updated = cur.rowcount
    conn.close()
    if updated == 0:
        raise NotFoundError(f"Topic {topic_id} not found")


def refresh_priority_scores(db_path: str, days_until_exam: int, now: datetime) -> dict[int, int]:
    """Recompute and store the cached learning priority of every open topic."""
    scores = {}
    for subject in get_subjects_with_topics(db_path, include_completed=False):
        for topic in subject.topics:
            scores[topic.id] = score_learning_priority(topic, subject.strength, days_until_exam, now).score
    conn = get_connection(db_path)
    conn.executemany(
        "UPDATE topics SET priority_score = ? WHERE id = ?",
        [(score, topic_id) for topic_id, score in scores.items()],
    )
    conn.commit()
    conn.close()
    logger.info("Refreshed priority scores for %d topics", len(scores))
    return scores


def delete_subject(db_path: str, subject_id: int) -> None:
    """Delete a subject; its topics, sessions and revision history cascade."""
    conn = get_connection(db_path)
    cur = conn.execute("DELETE FROM subjects WHERE id = ?", (subject_id,))
    conn.commit()
    deleted = cur.rowcount
    conn.close()
    if deleted == 0:
        raise NotFoundError(f"Subject {subject_id} not found")
    logger.info("Deleted subject %d", subject_id)


def update_topic(
    db_path: str,
    topic_id: int,
    name: str | None = None,
    estimated_hours: float | None = None,
    notes: str | None = None,
) -> Topic:
    """Edit a topic's name, estimated hours or notes. Fields left as None are unchanged."""
    changes = {}
    if name is not None:
        name = name.strip()
        if not name:
            raise ValueError("Topic name cannot be empty")
        changes["name"] = name
    if estimated_hours is not None:
        changes["estimated_hours"] = max(0.0, float(estimated_hours))
    if notes is not None:
        changes["notes"] = notes
    for column, value in changes.items():
        _update_topic(db_path, topic_id, column, value)
    return get_topic(db_path, topic_id)


def delete_topic(db_path: str, topic_id: int) -> None:
    conn = get_connection(db_path)
    cur = conn.execute("DELETE FROM topics WHERE id = ?", (topic_id,))
    conn.commit()
    deleted = cur.rowcount
    conn.close()
    if deleted == 0:
        raise NotFoundError(f"Topic {topic_id} not found")
    logger.info("Deleted topic %d", topic_id)
