# tests/test_review.py
from datetime import timedelta

from study_planner.db import init_db
from study_planner.review import (
    get_revision_history, get_revision_summary_for_topics, get_weak_topics,
    get_weekly_revision_stats, rate_topic, record_revision,
)
from study_planner.revision import calculate_next_revision
from study_planner.topics import add_subject, add_topic, get_topic, mark_topic_completed


def _topic(db_path, confidence=3):
    init_db(db_path)
    return add_topic(db_path, add_subject(db_path, "History"), "Tudors", confidence_level=confidence)


def test_completed_revision_updates_topic(tmp_db, now):
    topic_id = _topic(tmp_db, confidence=3)
    update = record_revision(tmp_db, topic_id, completed=True, skipped=False, now=now)
    assert update.new_confidence == 4

    topic = get_topic(tmp_db, topic_id)
    assert topic.confidence_level == 4
    assert topic.revision_count == 1
    assert topic.last_revision_date == now
    assert topic.next_revision_at == now + timedelta(days=calculate_next_revision(4, 1))


def test_skipped_revision_keeps_count(tmp_db, now):
    topic_id = _topic(tmp_db, confidence=2)
    record_revision(tmp_db, topic_id, completed=False, skipped=True, now=now)
    topic = get_topic(tmp_db, topic_id)
    assert topic.revision_count == 0
    assert topic.confidence_level == 2  # 1.5 rounds up


def test_revision_uses_stored_revision_count(tmp_db, now):
    topic_id = _topic(tmp_db, confidence=3)
    for _ in range(2):
        record_revision(tmp_db, topic_id, completed=True, skipped=False, now=now)
    update = record_revision(tmp_db, topic_id, completed=True, skipped=False, now=now)
    # third completion: confidence 5, index 3 -> 14 * 5/3
    assert update.next_revision_days == 23
    assert get_topic(tmp_db, topic_id).revision_count == 3


def test_revision_history_is_logged(tmp_db, now):
    topic_id = _topic(tmp_db, confidence=3)
    record_revision(tmp_db, topic_id, completed=True, skipped=False, now=now, notes="went well")
    record_revision(tmp_db, topic_id, completed=False, skipped=True, now=now + timedelta(hours=1))
    history = get_revision_history(tmp_db, topic_id)
    assert len(history) == 2
    assert history[0]["skipped"] == 1
    assert history[1]["confidence_before"] == 3
    assert history[1]["confidence_after"] == 4
    assert history[1]["notes"] == "went well"
    assert history[1]["topic_name"] == "Tudors"


def test_weekly_revision_stats(tmp_db, now):
    topic_id = _topic(tmp_db, confidence=3)
    record_revision(tmp_db, topic_id, completed=True, skipped=False, now=now - timedelta(days=10))
    record_revision(tmp_db, topic_id, completed=True, skipped=False, now=now - timedelta(days=1))
    record_revision(tmp_db, topic_id, completed=False, skipped=True, now=now)
    stats = get_weekly_revision_stats(tmp_db, now)
    assert stats["total"] == 2
    assert stats["completed"] == 1
    assert stats["skipped"] == 1
    assert stats["completion_rate"] == 50
    # +1 (4 -> 5) and 0 (5 - 0.5 rounds back to 5)
    assert stats["avg_confidence_gain"] == 0.5


def test_weekly_revision_stats_empty(tmp_db, now):
    init_db(tmp_db)
    stats = get_weekly_revision_stats(tmp_db, now)
    assert stats == {"completed": 0, "skipped": 0, "total": 0, "avg_confidence_gain": 0.0, "completion_rate": 0}


def test_rate_topic_schedules_next_revision(tmp_db, now):
    topic_id = _topic(tmp_db, confidence=1)
    days = rate_topic(tmp_db, topic_id, 3, now)
    assert days == 3
    topic = get_topic(tmp_db, topic_id)
    assert topic.confidence_level == 3
    assert topic.revision_count == 1
    assert topic.last_studied_at == now
    assert topic.next_revision_at == now + timedelta(days=3)


def test_revision_summary_for_topics(tmp_db, now):
    topic_id = _topic(tmp_db, confidence=3)
    record_revision(tmp_db, topic_id, completed=True, skipped=False, now=now - timedelta(days=1))
    summary = get_revision_summary_for_topics(tmp_db, now)
    assert [t.id for t in summary.completed_this_week] == [topic_id]


def test_get_weak_topics(tmp_db):
    init_db(tmp_db)
    subject_id = add_subject(tmp_db, "Maths", "weak")
    add_topic(tmp_db, subject_id, "Algebra", confidence_level=2)
    add_topic(tmp_db, subject_id, "Geometry", confidence_level=1)
    add_topic(tmp_db, subject_id, "Stats", confidence_level=4)
    done = add_topic(tmp_db, subject_id, "Sets", confidence_level=1)
    mark_topic_completed(tmp_db, done)
    weak = get_weak_topics(tmp_db)
    assert [w["topic_name"] for w in weak] == ["Geometry", "Algebra"]
    assert weak[0]["subject_strength"] == "weak"
