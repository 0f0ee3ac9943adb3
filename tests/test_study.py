# tests/test_study.py
from datetime import date, datetime, timedelta

import pytest

from study_planner.db import get_connection, init_db
from study_planner.exceptions import MissingDataError, NotFoundError
from study_planner.models import StudySlot
from study_planner.study import (
    complete_session, delete_exam, generate_schedule_for_date, get_active_exam, get_daily_progress,
    get_days_until_exam, get_missed_minutes, get_profile, get_sessions_for_date, get_setting,
    mark_missed_sessions, set_exam, set_setting, skip_session, start_session, update_profile,
    update_streak, increment_daily_progress,
)
from study_planner.topics import add_subject, add_topic, get_topic, list_topics


def _setup(db_path, day, exam_in_days=30):
    init_db(db_path)
    set_exam(db_path, "Finals", day + timedelta(days=exam_in_days))
    maths = add_subject(db_path, "Maths", "weak")
    physics = add_subject(db_path, "Physics", "strong")
    add_topic(db_path, maths, "Algebra")
    add_topic(db_path, maths, "Calculus", estimated_hours=3)
    add_topic(db_path, physics, "Optics", confidence_level=4)


def test_settings_round_trip(tmp_db):
    init_db(tmp_db)
    assert get_setting(tmp_db, "missing") is None
    assert get_setting(tmp_db, "missing", "x") == "x"
    set_setting(tmp_db, "k", "v1")
    set_setting(tmp_db, "k", "v2")
    assert get_setting(tmp_db, "k") == "v2"


def test_profile_defaults_and_update(tmp_db):
    init_db(tmp_db)
    assert get_profile(tmp_db).daily_study_minutes == 180
    profile = update_profile(tmp_db, daily_study_hours=2, preferred_study_slot=StudySlot.EVENING)
    assert profile.daily_study_minutes == 120
    assert profile.preferred_study_slot == StudySlot.EVENING
    assert get_profile(tmp_db) == profile


def test_update_profile_rejects_unknown_keys(tmp_db):
    init_db(tmp_db)
    with pytest.raises(ValueError):
        update_profile(tmp_db, favourite_colour="teal")


def test_only_latest_exam_is_active(tmp_db):
    init_db(tmp_db)
    set_exam(tmp_db, "Mocks", date(2026, 3, 20))
    set_exam(tmp_db, "Finals", date(2026, 6, 1))
    assert get_active_exam(tmp_db)["name"] == "Finals"
    assert get_days_until_exam(tmp_db, date(2026, 5, 30)) == 2


def test_delete_exam(tmp_db):
    init_db(tmp_db)
    exam_id = set_exam(tmp_db, "Finals", date(2026, 6, 1))
    delete_exam(tmp_db, exam_id)
    assert get_active_exam(tmp_db) is None
    assert get_days_until_exam(tmp_db, date(2026, 5, 30)) is None
    with pytest.raises(NotFoundError):
        delete_exam(tmp_db, exam_id)


def test_days_until_exam_without_exam(tmp_db):
    init_db(tmp_db)
    assert get_days_until_exam(tmp_db, date(2026, 3, 10)) is None


def test_generate_schedule_requires_exam(tmp_db, now):
    init_db(tmp_db)
    add_topic(tmp_db, add_subject(tmp_db, "Maths"), "Algebra")
    with pytest.raises(MissingDataError):
        generate_schedule_for_date(tmp_db, now.date(), now)


def test_generate_schedule_requires_topics(tmp_db, now):
    init_db(tmp_db)
    set_exam(tmp_db, "Finals", now.date() + timedelta(days=30))
    with pytest.raises(MissingDataError, match="No topics available to schedule"):
        generate_schedule_for_date(tmp_db, now.date(), now)


def test_generate_schedule_persists_sessions(tmp_db, now):
    _setup(tmp_db, now.date())
    sessions = generate_schedule_for_date(tmp_db, now.date(), now)
    # three unstudied topics at 60 minutes each fill the 180 minute default
    assert len(sessions) == 3
    assert all(s["status"] == "scheduled" for s in sessions)
    assert all(s["planned_duration_minutes"] == 60 for s in sessions)
    assert sessions[0]["scheduled_at"] == datetime.combine(now.date(), datetime.min.time()).replace(hour=9).isoformat()
    assert sessions[0]["subject_name"] == "Maths"

    progress = get_daily_progress(tmp_db, now.date())
    assert progress["planned_minutes"] == 180
    assert progress["sessions_planned"] == 3


def test_generate_schedule_refreshes_stored_priorities(tmp_db, now):
    _setup(tmp_db, now.date())
    assert {t.priority_score for t in list_topics(tmp_db)} == {50}
    generate_schedule_for_date(tmp_db, now.date(), now)
    # weak, unstudied, exam in 30 days: 30 + 20 + 25 + 15 + 5
    assert [(t.name, t.priority_score) for t in list_topics(tmp_db)] == [
        ("Algebra", 95), ("Calculus", 95), ("Optics", 55),
    ]


def test_regenerate_replaces_unstarted_sessions(tmp_db, now):
    _setup(tmp_db, now.date())
    first = generate_schedule_for_date(tmp_db, now.date(), now)
    start_session(tmp_db, first[0]["id"], now)
    second = generate_schedule_for_date(tmp_db, now.date(), now)
    statuses = sorted(s["status"] for s in second)
    assert statuses.count("in_progress") == 1
    assert statuses.count("scheduled") == 3


def test_complete_session_updates_topic_progress_and_streak(tmp_db, now):
    _setup(tmp_db, now.date())
    session = generate_schedule_for_date(tmp_db, now.date(), now)[0]
    start_session(tmp_db, session["id"], now)
    complete_session(tmp_db, session["id"], 50, now + timedelta(hours=1), pomodoros_completed=2)

    conn = get_connection(tmp_db)
    row = conn.execute("SELECT * FROM study_sessions WHERE id = ?", (session["id"],)).fetchone()
    conn.close()
    assert row["status"] == "completed"
    assert row["actual_duration_minutes"] == 50
    assert row["pomodoros_completed"] == 2

    topic = get_topic(tmp_db, session["topic_id"])
    assert topic.completed_hours == pytest.approx(50 / 60)
    assert topic.last_studied_at == now + timedelta(hours=1)

    progress = get_daily_progress(tmp_db, now.date())
    assert progress["completed_minutes"] == 50
    assert progress["sessions_completed"] == 1
    assert get_profile(tmp_db).current_streak == 1


def test_unknown_session_raises(tmp_db, now):
    init_db(tmp_db)
    with pytest.raises(NotFoundError):
        skip_session(tmp_db, 5)
    with pytest.raises(NotFoundError):
        complete_session(tmp_db, 5, 10, now)


def test_missed_sessions_and_minutes(tmp_db, now):
    yesterday = now - timedelta(days=1)
    _setup(tmp_db, yesterday.date())
    sessions = generate_schedule_for_date(tmp_db, yesterday.date(), yesterday)
    skip_session(tmp_db, sessions[0]["id"])

    assert mark_missed_sessions(tmp_db, now.date()) == 2
    assert mark_missed_sessions(tmp_db, now.date()) == 0
    assert get_missed_minutes(tmp_db, now.date() - timedelta(days=7)) == 120
    assert get_missed_minutes(tmp_db, now.date()) == 0
    assert [s["status"] for s in get_sessions_for_date(tmp_db, yesterday.date())].count("skipped") == 1


def test_streak_counts_consecutive_days(tmp_db):
    init_db(tmp_db)
    today = date(2026, 3, 10)
    for offset in (0, 1, 2, 4):
        increment_daily_progress(tmp_db, today - timedelta(days=offset), 30)
    assert update_streak(tmp_db, today) == 3
    assert get_profile(tmp_db).longest_streak == 3
    # a day with no study breaks the run but keeps the record
    assert update_streak(tmp_db, today + timedelta(days=2)) == 0
    assert get_profile(tmp_db).longest_streak == 3
