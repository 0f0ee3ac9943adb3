"""Revision history, confidence re-rating and weak topic identification."""
import logging
from datetime import datetime, timedelta

from study_planner.db import get_connection
from study_planner.models import MAX_CONFIDENCE, MIN_CONFIDENCE, PostRevisionUpdate, RevisionSummary, clamp
from study_planner.revision import calculate_next_revision, calculate_post_revision_updates, get_revision_summary
from study_planner.topics import get_topic, list_topics

logger = logging.getLogger(__name__)


def record_revision(
    db_path: str,
    topic_id: int,
    completed: bool,
    skipped: bool,
    now: datetime,
    session_id: int | None = None,
    revision_type: str = "scheduled",
    notes: str | None = None,
) -> PostRevisionUpdate:
    """Log a revision outcome and move the topic's confidence and next revision date."""
    topic = get_topic(db_path, topic_id)
    update = calculate_post_revision_updates(topic.confidence_level, topic.revision_count, completed, skipped)
    next_revision_at = now + timedelta(days=update.next_revision_days)

    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO revision_history
        (topic_id, session_id, confidence_before, confidence_after, completed, skipped,
         revision_type, notes, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            topic_id, session_id, topic.confidence_level, update.new_confidence,
            int(completed), int(skipped), revision_type, notes, now.isoformat(),
        ),
    )
    conn.execute(
        """UPDATE topics SET confidence_level = ?, last_revision_date = ?, next_revision_at = ?,
            revision_count = revision_count + ?
        WHERE id = ?""",
        (
            update.new_confidence, now.isoformat(), next_revision_at.isoformat(),
            1 if completed else 0, topic_id,
        ),
    )
    conn.commit()
    conn.close()
    logger.info(
        "Revision of topic %d: confidence %d -> %d, next in %d days",
        topic_id, topic.confidence_level, update.new_confidence, update.next_revision_days,
    )
    return update


def rate_topic(db_path: str, topic_id: int, confidence_level: int, now: datetime) -> int:
    """Store a fresh self-rating after studying a topic. Returns days until its next revision."""
    topic = get_topic(db_path, topic_id)
    confidence = clamp(int(confidence_level), MIN_CONFIDENCE, MAX_CONFIDENCE)
    revision_count = topic.revision_count + 1
    next_days = calculate_next_revision(confidence, revision_count)
    conn = get_connection(db_path)
    conn.execute(
        """UPDATE topics SET confidence_level = ?, revision_count = ?, last_studied_at = ?,
            next_revision_at = ?
        WHERE id = ?""",
        (confidence, revision_count, now.isoformat(), (now + timedelta(days=next_days)).isoformat(), topic_id),
    )
    conn.commit()
    conn.close()
    return next_days


def get_revision_history(db_path: str, topic_id: int | None = None, limit: int = 50) -> list[dict]:
    query = """SELECT rh.*, t.name as topic_name FROM revision_history rh
        JOIN topics t ON rh.topic_id = t.id"""
    params = []
    if topic_id is not None:
        query += " WHERE rh.topic_id = ?"
        params.append(topic_id)
    query += " ORDER BY rh.created_at DESC, rh.id DESC LIMIT ?"
    params.append(limit)
    conn = get_connection(db_path)
    rows = conn.execute(query, params).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_weekly_revision_stats(db_path: str, now: datetime) -> dict:
    """Counts and average confidence gain for revisions logged in the last seven days."""
    since = (now - timedelta(days=7)).isoformat()
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT COUNT(*) as total,
            COALESCE(SUM(completed), 0) as completed,
            COALESCE(SUM(skipped), 0) as skipped,
            AVG(confidence_after - confidence_before) as gain
        FROM revision_history WHERE created_at >= ?""",
        (since,),
    ).fetchone()
    conn.close()
    total = row["total"]
    return {
        "completed": row["completed"],
        "skipped": row["skipped"],
        "total": total,
        "avg_confidence_gain": round(row["gain"], 2) if total else 0.0,
        "completion_rate": round(row["completed"] / total * 100) if total else 0,
    }


def get_revision_summary_for_topics(db_path: str, now: datetime) -> RevisionSummary:
    return get_revision_summary(list_topics(db_path), now)


def get_weak_topics(db_path: str, max_confidence: int = 2) -> list[dict]:
    """Get open topics at or below a confidence level (sorted weakest first)."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT t.id, t.name, t.confidence_level, t.revision_count, s.name as subject_name,
            s.strength as subject_strength
        FROM topics t JOIN subjects s ON t.subject_id = s.id
        WHERE t.is_completed = 0 AND t.confidence_level <= ?
        ORDER BY t.confidence_level ASC, t.id ASC""",
        (max_confidence,),
    ).fetchall()
    conn.close()
    return [
        {
            "topic_id": r["id"],
            "topic_name": r["name"],
            "subject_name": r["subject_name"],
            "subject_strength": r["subject_strength"],
            "confidence_level": r["confidence_level"],
            "revision_count": r["revision_count"],
        }
        for r in rows
    ]
