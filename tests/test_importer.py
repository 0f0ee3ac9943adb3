# tests/test_importer.py
import json

import pytest

from study_planner.db import init_db
from study_planner.exceptions import ImportFormatError
from study_planner.importer import import_file, read_import_file
from study_planner.models import Strength
from study_planner.topics import get_subjects_with_topics


def test_import_json(tmp_db, tmp_path):
    init_db(tmp_db)
    f = tmp_path / "plan.json"
    f.write_text(json.dumps({"subjects": [
        {"name": "Chemistry", "strength": "weak", "topics": [
            "Bonding",
            {"name": "Kinetics", "estimated_hours": 4, "confidence_level": 2, "notes": "hard"},
        ]},
    ]}))
    result = import_file(tmp_db, str(f))
    assert result == {"filename": "plan.json", "subjects": 1, "topics": 2, "skipped": 0}

    subject = get_subjects_with_topics(tmp_db)[0]
    assert subject.strength == Strength.WEAK
    kinetics = subject.topics[1]
    assert kinetics.estimated_hours == 4.0
    assert kinetics.confidence_level == 2
    assert kinetics.notes == "hard"


def test_import_yaml_list(tmp_db, tmp_path):
    init_db(tmp_db)
    f = tmp_path / "plan.yaml"
    f.write_text(
        "- name: History\n"
        "  color: '#aa0000'\n"
        "  topics:\n"
        "    - Tudors\n"
        "    - name: Stuarts\n"
        "      estimated_hours: 2.5\n"
    )
    result = import_file(tmp_db, str(f))
    assert result["topics"] == 2
    subject = get_subjects_with_topics(tmp_db)[0]
    assert subject.color == "#aa0000"
    assert subject.strength == Strength.AVERAGE


def test_import_csv_groups_by_subject(tmp_db, tmp_path):
    init_db(tmp_db)
    f = tmp_path / "plan.csv"
    f.write_text(
        "subject,topic,strength,estimated_hours,confidence_level\n"
        "Maths,Algebra,weak,2,1\n"
        "Maths,Geometry,,,\n"
        "Physics,Optics,strong,1.5,3\n"
    )
    import_file(tmp_db, str(f))
    subjects = get_subjects_with_topics(tmp_db)
    assert [(s.name, len(s.topics)) for s in subjects] == [("Maths", 2), ("Physics", 1)]
    assert subjects[0].strength == Strength.WEAK
    assert subjects[1].topics[0].confidence_level == 3


def test_reimport_skips_existing_topics(tmp_db, tmp_path):
    init_db(tmp_db)
    f = tmp_path / "plan.json"
    f.write_text(json.dumps([{"name": "Maths", "topics": ["Algebra", "Algebra", "Sets"]}]))
    first = import_file(tmp_db, str(f))
    assert (first["topics"], first["skipped"]) == (2, 1)
    second = import_file(tmp_db, str(f))
    assert (second["subjects"], second["topics"], second["skipped"]) == (0, 0, 3)


def test_unsupported_extension(tmp_path):
    f = tmp_path / "notes.pdf"
    f.write_text("x")
    with pytest.raises(ImportFormatError):
        read_import_file(str(f))


@pytest.mark.parametrize("name, content", [
    ("bad.json", "{not json"),
    ("bad.yaml", "a: [unclosed"),
    ("scalar.json", "42"),
    ("nosubject.csv", "subject,topic\n,Algebra\n"),
])
def test_malformed_files(tmp_path, name, content):
    f = tmp_path / name
    f.write_text(content)
    with pytest.raises(ImportFormatError):
        read_import_file(str(f))


def test_topic_without_name(tmp_db, tmp_path):
    init_db(tmp_db)
    f = tmp_path / "plan.json"
    f.write_text(json.dumps([{"name": "Maths", "topics": [{"estimated_hours": 2}]}]))
    with pytest.raises(ImportFormatError):
        import_file(tmp_db, str(f))
