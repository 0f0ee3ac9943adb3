# tests/test_topics.py
from datetime import datetime

import pytest

from study_planner.db import init_db
from study_planner.exceptions import NotFoundError
from study_planner.models import Strength
from study_planner.topics import (
    add_subject, add_topic, delete_subject, delete_topic, get_subject, get_subject_by_name,
    get_subjects_with_topics, get_topic, list_subjects, list_topics, mark_topic_completed,
    record_study_time, refresh_priority_scores, set_subject_strength, update_topic,
    update_topic_confidence,
)


def test_add_subject_and_list(tmp_db):
    init_db(tmp_db)
    subject_id = add_subject(tmp_db, "Chemistry", Strength.WEAK)
    rows = list_subjects(tmp_db)
    assert len(rows) == 1
    assert rows[0]["id"] == subject_id
    assert rows[0]["strength"] == "weak"


def test_add_subject_twice_updates_in_place(tmp_db):
    init_db(tmp_db)
    first = add_subject(tmp_db, "Chemistry", "weak")
    second = add_subject(tmp_db, "Chemistry", "strong", "#ff0000")
    assert first == second
    row = get_subject_by_name(tmp_db, "Chemistry")
    assert row["strength"] == "strong"
    assert row["color"] == "#ff0000"


def test_set_subject_strength(tmp_db):
    init_db(tmp_db)
    subject_id = add_subject(tmp_db, "Biology")
    set_subject_strength(tmp_db, subject_id, Strength.STRONG)
    assert get_subject_by_name(tmp_db, "Biology")["strength"] == "strong"
    with pytest.raises(NotFoundError):
        set_subject_strength(tmp_db, 999, Strength.WEAK)


def test_add_topic_clamps_confidence(tmp_db):
    init_db(tmp_db)
    subject_id = add_subject(tmp_db, "Maths")
    topic_id = add_topic(tmp_db, subject_id, "Integrals", estimated_hours=3, confidence_level=8)
    topic = get_topic(tmp_db, topic_id)
    assert topic.confidence_level == 5
    assert topic.estimated_hours == 3.0
    assert topic.subject_id == subject_id


def test_add_topic_unknown_subject(tmp_db):
    init_db(tmp_db)
    with pytest.raises(NotFoundError):
        add_topic(tmp_db, 42, "Nowhere")


def test_get_topic_missing(tmp_db):
    init_db(tmp_db)
    with pytest.raises(NotFoundError):
        get_topic(tmp_db, 1)


def test_list_topics_filters(tmp_db):
    init_db(tmp_db)
    maths = add_subject(tmp_db, "Maths")
    physics = add_subject(tmp_db, "Physics")
    a = add_topic(tmp_db, maths, "Algebra")
    add_topic(tmp_db, maths, "Geometry")
    add_topic(tmp_db, physics, "Optics")
    mark_topic_completed(tmp_db, a)
    assert len(list_topics(tmp_db)) == 3
    assert [t.name for t in list_topics(tmp_db, maths)] == ["Algebra", "Geometry"]
    assert [t.name for t in list_topics(tmp_db, maths, include_completed=False)] == ["Geometry"]


def test_get_subjects_with_topics(tmp_db):
    init_db(tmp_db)
    maths = add_subject(tmp_db, "Maths", Strength.WEAK)
    add_subject(tmp_db, "Empty")
    add_topic(tmp_db, maths, "Algebra")
    subjects = get_subjects_with_topics(tmp_db)
    assert [s.name for s in subjects] == ["Maths", "Empty"]
    assert subjects[0].strength == Strength.WEAK
    assert [t.name for t in subjects[0].topics] == ["Algebra"]
    assert subjects[1].topics == []


def test_update_topic_confidence(tmp_db):
    init_db(tmp_db)
    topic_id = add_topic(tmp_db, add_subject(tmp_db, "Maths"), "Algebra")
    update_topic_confidence(tmp_db, topic_id, 4)
    assert get_topic(tmp_db, topic_id).confidence_level == 4
    with pytest.raises(NotFoundError):
        update_topic_confidence(tmp_db, 999, 3)


def test_record_study_time(tmp_db, now):
    init_db(tmp_db)
    topic_id = add_topic(tmp_db, add_subject(tmp_db, "Maths"), "Algebra")
    record_study_time(tmp_db, topic_id, 90, now)
    topic = get_topic(tmp_db, topic_id)
    assert topic.completed_hours == 1.5
    assert topic.last_studied_at == now
    assert topic.has_been_studied


def test_refresh_priority_scores(tmp_db, now):
    init_db(tmp_db)
    weak = add_subject(tmp_db, "Maths", Strength.WEAK)
    topic_id = add_topic(tmp_db, weak, "Algebra", confidence_level=1)
    scores = refresh_priority_scores(tmp_db, 5, now)
    assert scores == {topic_id: 100}
    assert get_topic(tmp_db, topic_id).priority_score == 100


def test_get_subject(tmp_db):
    init_db(tmp_db)
    subject_id = add_subject(tmp_db, "Maths")
    assert get_subject(tmp_db, subject_id)["name"] == "Maths"
    with pytest.raises(NotFoundError):
        get_subject(tmp_db, 99)


def test_update_topic_changes_only_given_fields(tmp_db):
    init_db(tmp_db)
    topic_id = add_topic(tmp_db, add_subject(tmp_db, "Maths"), "Algebra", estimated_hours=2, notes="old")
    topic = update_topic(tmp_db, topic_id, name="  Linear algebra ", estimated_hours=-3)
    assert topic.name == "Linear algebra"
    assert topic.estimated_hours == 0.0
    assert topic.notes == "old"
    assert update_topic(tmp_db, topic_id, notes="new").notes == "new"


def test_update_topic_rejects_blank_name_and_unknown_topic(tmp_db):
    init_db(tmp_db)
    topic_id = add_topic(tmp_db, add_subject(tmp_db, "Maths"), "Algebra")
    with pytest.raises(ValueError):
        update_topic(tmp_db, topic_id, name="   ")
    with pytest.raises(NotFoundError):
        update_topic(tmp_db, 999, notes="x")


def test_delete_topic(tmp_db):
    init_db(tmp_db)
    maths = add_subject(tmp_db, "Maths")
    algebra = add_topic(tmp_db, maths, "Algebra")
    geometry = add_topic(tmp_db, maths, "Geometry")
    delete_topic(tmp_db, algebra)
    assert [t.id for t in list_topics(tmp_db)] == [geometry]
    with pytest.raises(NotFoundError):
        delete_topic(tmp_db, algebra)


def test_delete_subject_cascades_to_topics(tmp_db):
    init_db(tmp_db)
    maths = add_subject(tmp_db, "Maths")
    physics = add_subject(tmp_db, "Physics")
    add_topic(tmp_db, maths, "Algebra")
    optics = add_topic(tmp_db, physics, "Optics")
    delete_subject(tmp_db, maths)
    assert [t.id for t in list_topics(tmp_db)] == [optics]
    with pytest.raises(NotFoundError):
        delete_subject(tmp_db, maths)
