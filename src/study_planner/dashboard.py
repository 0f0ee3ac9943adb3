"""Dashboard statistics, per-subject progress and weekly reports."""
import logging
from datetime import date, datetime, timedelta

from study_planner.clock import week_bounds
from study_planner.db import get_connection
from study_planner.models import DEFAULT_DAYS_UNTIL_EXAM, ReadinessResult, round_half_up
from study_planner.readiness import calculate_exam_readiness
from study_planner.study import get_active_exam, get_days_until_exam, get_profile

logger = logging.getLogger(__name__)

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _topic_totals(conn, subject_id: int | None = None) -> tuple[int, int, float]:
    query = """SELECT COUNT(*) as total, COALESCE(SUM(is_completed), 0) as completed,
        AVG(confidence_level) as confidence FROM topics"""
    params = ()
    if subject_id is not None:
        query += " WHERE subject_id = ?"
        params = (subject_id,)
    row = conn.execute(query, params).fetchone()
    return row["total"], row["completed"], row["confidence"] or 0.0


def _percent(part: int, whole: int) -> int:
    return round_half_up(part / whole * 100) if whole else 0


def _weekly_completed_minutes(conn, today: date) -> int:
    monday, sunday = week_bounds(today)
    row = conn.execute(
        """SELECT COALESCE(SUM(actual_duration_minutes), 0) as minutes FROM study_sessions
        WHERE status = 'completed' AND completed_at >= ? AND completed_at < ?""",
        (monday.isoformat(), (sunday + timedelta(days=1)).isoformat()),
    ).fetchone()
    return row["minutes"]


def get_readiness(db_path: str, today: date) -> ReadinessResult:
    return get_dashboard_stats(db_path, today)["readiness"]


def get_dashboard_stats(db_path: str, today: date) -> dict:
    """Everything the dashboard panel shows, including the readiness estimate."""
    profile = get_profile(db_path)
    exam = get_active_exam(db_path)
    days_left = get_days_until_exam(db_path, today)

    conn = get_connection(db_path)
    total, completed, avg_confidence = _topic_totals(conn)
    weekly_minutes = _weekly_completed_minutes(conn, today)
    today_row = conn.execute(
        "SELECT * FROM daily_progress WHERE date = ?", (today.isoformat(),)
    ).fetchone()
    conn.close()

    completion = _percent(completed, total)
    readiness = calculate_exam_readiness(
        completion,
        avg_confidence,
        profile.current_streak,
        days_left if days_left is not None else DEFAULT_DAYS_UNTIL_EXAM,
    )
    return {
        "streak": profile.current_streak,
        "longest_streak": profile.longest_streak,
        "weekly_hours": round(weekly_minutes / 60, 1),
        "topics_total": total,
        "topics_completed": completed,
        "completion_percentage": completion,
        "avg_confidence": round(avg_confidence, 1),
        "days_until_exam": days_left,
        "exam_name": exam["name"] if exam else None,
        "today_completed": today_row["completed_minutes"] if today_row else 0,
        "today_planned": today_row["planned_minutes"] if today_row else profile.daily_study_minutes,
        "today_sessions": today_row["sessions_completed"] if today_row else 0,
        "readiness": readiness,
    }


def get_subject_progress(db_path: str) -> list[dict]:
    conn = get_connection(db_path)
    subjects = conn.execute("SELECT * FROM subjects ORDER BY id").fetchall()
    results = []
    for s in subjects:
        total, completed, avg_confidence = _topic_totals(conn, s["id"])
        results.append({
            "subject_id": s["id"],
            "name": s["name"],
            "color": s["color"],
            "strength": s["strength"],
            "progress": _percent(completed, total),
            "topics": total,
            "completed": completed,
            "avg_confidence": round(avg_confidence, 1),
        })
    conn.close()
    return results


def get_weekly_analytics(db_path: str, today: date) -> list[dict]:
    """Planned vs completed minutes for each day of the current week."""
    default_planned = get_profile(db_path).daily_study_minutes
    monday, _ = week_bounds(today)
    conn = get_connection(db_path)
    result = []
    for offset, name in enumerate(DAY_NAMES):
        day = monday + timedelta(days=offset)
        row = conn.execute(
            "SELECT planned_minutes, completed_minutes FROM daily_progress WHERE date = ?",
            (day.isoformat(),),
        ).fetchone()
        result.append({
            "day": name,
            "date": day.isoformat(),
            "planned": row["planned_minutes"] if row else default_planned,
            "completed": row["completed_minutes"] if row else 0,
        })
    conn.close()
    return result


def get_next_session(db_path: str, now: datetime) -> dict | None:
    """The next upcoming session, or failing that the latest one still in progress."""
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT ss.*, t.name as topic_name, s.name as subject_name
        FROM study_sessions ss
        JOIN topics t ON ss.topic_id = t.id
        JOIN subjects s ON t.subject_id = s.id
        WHERE ss.status IN ('scheduled', 'in_progress') AND ss.scheduled_at >= ?
        ORDER BY ss.scheduled_at LIMIT 1""",
        (now.isoformat(),),
    ).fetchone()
    if row is None:
        row = conn.execute(
            """SELECT ss.*, t.name as topic_name, s.name as subject_name
            FROM study_sessions ss
            JOIN topics t ON ss.topic_id = t.id
            JOIN subjects s ON t.subject_id = s.id
            WHERE ss.status = 'in_progress'
            ORDER BY ss.started_at DESC LIMIT 1"""
        ).fetchone()
    conn.close()
    return dict(row) if row else None


def save_weekly_report(db_path: str, today: date, now: datetime) -> dict:
    """Snapshot the current week's totals and readiness into weekly_reports."""
    monday, sunday = week_bounds(today)
    conn = get_connection(db_path)
    totals = conn.execute(
        """SELECT COALESCE(SUM(planned_minutes), 0) as planned,
            COALESCE(SUM(completed_minutes), 0) as completed,
            COALESCE(SUM(sessions_planned), 0) as sessions_planned,
            COALESCE(SUM(sessions_completed), 0) as sessions_completed
        FROM daily_progress WHERE date >= ? AND date <= ?""",
        (monday.isoformat(), sunday.isoformat()),
    ).fetchone()
    conn.close()

    readiness = get_readiness(db_path, today)
    report = {
        "week_start": monday.isoformat(),
        "week_end": sunday.isoformat(),
        "total_planned_minutes": totals["planned"],
        "total_completed_minutes": totals["completed"],
        "sessions_planned": totals["sessions_planned"],
        "sessions_completed": totals["sessions_completed"],
        "exam_readiness": readiness.status.value,
        "readiness_percentage": readiness.percentage,
        "created_at": now.isoformat(),
    }
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO weekly_reports
        (week_start, week_end, total_planned_minutes, total_completed_minutes, sessions_planned,
         sessions_completed, exam_readiness, readiness_percentage, created_at)
        VALUES (:week_start, :week_end, :total_planned_minutes, :total_completed_minutes,
         :sessions_planned, :sessions_completed, :exam_readiness, :readiness_percentage, :created_at)
        ON CONFLICT(week_start) DO UPDATE SET
            total_planned_minutes=excluded.total_planned_minutes,
            total_completed_minutes=excluded.total_completed_minutes,
            sessions_planned=excluded.sessions_planned,
            sessions_completed=excluded.sessions_completed,
            exam_readiness=excluded.exam_readiness,
            readiness_percentage=excluded.readiness_percentage,
            created_at=excluded.created_at""",
        report,
    )
    conn.commit()
    conn.close()
    logger.info("Saved weekly report for %s: %d%% ready", report["week_start"], readiness.percentage)
    return report
