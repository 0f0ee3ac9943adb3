"""Profile settings, the exam date, persisted schedules and daily progress."""
import logging
from datetime import date, datetime, timedelta

from study_planner.clock import days_until_exam
from study_planner.db import get_connection
from study_planner.exceptions import MissingDataError, NotFoundError
from study_planner.models import Profile, SessionStatus, profile_from_settings
from study_planner.scheduler import assign_start_times, generate_daily_schedule
from study_planner.topics import get_subjects_with_topics, record_study_time, refresh_priority_scores

logger = logging.getLogger(__name__)

PROFILE_KEYS = (
    "daily_study_hours", "pomodoro_work_minutes", "pomodoro_break_minutes",
    "preferred_study_slot", "current_streak", "longest_streak",
)


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def get_profile(db_path: str) -> Profile:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT key, value FROM user_settings").fetchall()
    conn.close()
    return profile_from_settings({r["key"]: r["value"] for r in rows})


def update_profile(db_path: str, **changes) -> Profile:
    """Store profile preferences. Unknown keys raise ValueError."""
    unknown = set(changes) - set(PROFILE_KEYS)
    if unknown:
        raise ValueError(f"Unknown profile settings: {', '.join(sorted(unknown))}")
    for key, value in changes.items():
        set_setting(db_path, key, str(getattr(value, "value", value)))
    return get_profile(db_path)


def set_exam(db_path: str, name: str, exam_date: date, description: str = "") -> int:
    """Add an exam and make it the only active one."""
    conn = get_connection(db_path)
    conn.execute("UPDATE exams SET is_active = 0")
    cur = conn.execute(
        "INSERT INTO exams (name, exam_date, description, is_active, created_at) VALUES (?, ?, ?, 1, ?)",
        (name, exam_date.isoformat(), description, datetime.now().isoformat()),
    )
    conn.commit()
    exam_id = cur.lastrowid
    conn.close()
    return exam_id


def get_active_exam(db_path: str) -> dict | None:
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT * FROM exams WHERE is_active = 1 ORDER BY id DESC LIMIT 1"
    ).fetchone()
    conn.close()
    return dict(row) if row else None


def delete_exam(db_path: str, exam_id: int) -> None:
    conn = get_connection(db_path)
    cur = conn.execute("DELETE FROM exams WHERE id = ?", (exam_id,))
    conn.commit()
    deleted = cur.rowcount
    conn.close()
    if deleted == 0:
        raise NotFoundError(f"Exam {exam_id} not found")
    logger.info("Deleted exam %d", exam_id)


def get_days_until_exam(db_path: str, today: date) -> int | None:
    exam = get_active_exam(db_path)
    if not exam:
        return None
    return days_until_exam(date.fromisoformat(exam["exam_date"]), today)


def generate_schedule_for_date(db_path: str, day: date, now: datetime) -> list[dict]:
    """Generate, time-slot and persist the sessions for ``day``.

    Sessions still in 'scheduled' state for that day are replaced; sessions the
    student has started or finished are kept.

    Raises:
        MissingDataError: no active exam, or no topics fit into the day.
    """
    days_left = get_days_until_exam(db_path, day)
    if days_left is None:
        raise MissingDataError("Set an exam date before generating a schedule.")
    profile = get_profile(db_path)
    refresh_priority_scores(db_path, days_left, now)
    subjects = get_subjects_with_topics(db_path, include_completed=False)

    sessions = generate_daily_schedule(
        subjects,
        profile.daily_study_minutes,
        profile.pomodoro_work_minutes,
        profile.pomodoro_break_minutes,
        days_left,
        now=now,
    )
    if not sessions:
        raise MissingDataError("No topics available to schedule. Add subjects and topics first.")

    placed = assign_start_times(sessions, day, profile.preferred_study_slot)
    start, end = _day_range(day)
    conn = get_connection(db_path)
    conn.execute(
        "DELETE FROM study_sessions WHERE status = 'scheduled' AND scheduled_at >= ? AND scheduled_at < ?",
        (start, end),
    )
    conn.executemany(
        """INSERT INTO study_sessions
        (topic_id, session_type, planned_duration_minutes, scheduled_at, status, priority_score, reason)
        VALUES (?, ?, ?, ?, 'scheduled', ?, ?)""",
        [
            (s.topic_id, s.type.value, s.duration_minutes, at.isoformat(), s.priority_score, s.reason)
            for at, s in placed
        ],
    )
    conn.commit()
    conn.close()

    planned = sum(s.duration_minutes for s in sessions)
    update_daily_progress(db_path, day, planned_minutes=planned, sessions_planned=len(sessions))
    logger.info("Scheduled %d sessions (%d minutes) for %s", len(sessions), planned, day.isoformat())
    return get_sessions_for_date(db_path, day)


def _day_range(day: date) -> tuple[str, str]:
    start = datetime.combine(day, datetime.min.time())
    return start.isoformat(), (start + timedelta(days=1)).isoformat()


def get_sessions_for_date(db_path: str, day: date) -> list[dict]:
    start, end = _day_range(day)
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT ss.*, t.name as topic_name, s.name as subject_name, s.color as subject_color
        FROM study_sessions ss
        JOIN topics t ON ss.topic_id = t.id
        JOIN subjects s ON t.subject_id = s.id
        WHERE ss.scheduled_at >= ? AND ss.scheduled_at < ?
        ORDER BY ss.scheduled_at""",
        (start, end),
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_session(db_path: str, session_id: int) -> dict:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM study_sessions WHERE id = ?", (session_id,)).fetchone()
    conn.close()
    if row is None:
        raise NotFoundError(f"Session {session_id} not found")
    return dict(row)


def _set_status(db_path: str, session_id: int, status: SessionStatus, **columns) -> None:
    assignments = ", ".join(["status = ?"] + [f"{c} = ?" for c in columns])
    conn = get_connection(db_path)
    cur = conn.execute(
        f"UPDATE study_sessions SET {assignments} WHERE id = ?",
        (status.value, *columns.values(), session_id),
    )
    conn.commit()
    updated = cur.rowcount
    conn.close()
    if updated == 0:
        raise NotFoundError(f"Session {session_id} not found")


def start_session(db_path: str, session_id: int, now: datetime) -> None:
    _set_status(db_path, session_id, SessionStatus.IN_PROGRESS, started_at=now.isoformat())


def skip_session(db_path: str, session_id: int) -> None:
    _set_status(db_path, session_id, SessionStatus.SKIPPED)


def complete_session(
    db_path: str,
    session_id: int,
    actual_minutes: int,
    now: datetime,
    pomodoros_completed: int = 0,
    notes: str | None = None,
) -> None:
    """Finish a session: log the time on the topic, the day and the streak."""
    session = get_session(db_path, session_id)
    _set_status(
        db_path, session_id, SessionStatus.COMPLETED,
        completed_at=now.isoformat(),
        actual_duration_minutes=actual_minutes,
        pomodoros_completed=pomodoros_completed,
        notes=notes,
    )
    record_study_time(db_path, session["topic_id"], actual_minutes, now)
    increment_daily_progress(db_path, now.date(), actual_minutes)
    update_streak(db_path, now.date())


def mark_missed_sessions(db_path: str, today: date) -> int:
    """Flag every still-scheduled session from before ``today`` as missed."""
    start, _ = _day_range(today)
    conn = get_connection(db_path)
    cur = conn.execute(
        "UPDATE study_sessions SET status = 'missed' WHERE status = 'scheduled' AND scheduled_at < ?",
        (start,),
    )
    conn.commit()
    count = cur.rowcount
    conn.close()
    if count:
        logger.info("Marked %d sessions as missed", count)
    return count


def get_missed_minutes(db_path: str, since: date) -> int:
    start, _ = _day_range(since)
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT COALESCE(SUM(planned_duration_minutes), 0) as total FROM study_sessions
        WHERE status = 'missed' AND scheduled_at >= ?""",
        (start,),
    ).fetchone()
    conn.close()
    return row["total"]


def get_daily_progress(db_path: str, day: date) -> dict | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM daily_progress WHERE date = ?", (day.isoformat(),)).fetchone()
    conn.close()
    return dict(row) if row else None


def get_progress_range(db_path: str, start: date, end: date) -> list[dict]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM daily_progress WHERE date >= ? AND date <= ? ORDER BY date",
        (start.isoformat(), end.isoformat()),
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def update_daily_progress(db_path: str, day: date, **updates) -> None:
    allowed = {"planned_minutes", "completed_minutes", "sessions_planned", "sessions_completed", "streak_maintained"}
    columns = [c for c in updates if c in allowed]
    conn = get_connection(db_path)
    conn.execute("INSERT OR IGNORE INTO daily_progress (date) VALUES (?)", (day.isoformat(),))
    if columns:
        conn.execute(
            f"UPDATE daily_progress SET {', '.join(f'{c} = ?' for c in columns)} WHERE date = ?",
            (*[updates[c] for c in columns], day.isoformat()),
        )
    conn.commit()
    conn.close()


def increment_daily_progress(db_path: str, day: date, completed_minutes: int, sessions_completed: int = 1) -> None:
    conn = get_connection(db_path)
    conn.execute("INSERT OR IGNORE INTO daily_progress (date) VALUES (?)", (day.isoformat(),))
    conn.execute(
        """UPDATE daily_progress
        SET completed_minutes = completed_minutes + ?, sessions_completed = sessions_completed + ?,
            streak_maintained = 1
        WHERE date = ?""",
        (completed_minutes, sessions_completed, day.isoformat()),
    )
    conn.commit()
    conn.close()


def update_streak(db_path: str, today: date) -> int:
    """Recount the run of consecutive study days ending today and store it."""
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT date FROM daily_progress WHERE streak_maintained = 1 AND date <= ? ORDER BY date DESC",
        (today.isoformat(),),
    ).fetchall()
    conn.close()
    streak = 0
    expected = today
    for row in rows:
        if date.fromisoformat(row["date"]) != expected:
            break
        streak += 1
        expected -= timedelta(days=1)
    longest = max(streak, int(get_setting(db_path, "longest_streak", "0")))
    set_setting(db_path, "current_streak", str(streak))
    set_setting(db_path, "longest_streak", str(longest))
    return streak
