"""Bulk import of subjects and topics from JSON, YAML or CSV files.

JSON and YAML files hold either a list of subjects or a mapping with a
``subjects`` key; each subject has a ``name``, optional ``strength`` and
``color``, and a ``topics`` list of names or mappings. CSV files have one row
per topic with ``subject`` and ``topic`` columns plus optional ``strength``,
``estimated_hours``, ``confidence_level`` and ``notes``.
"""
import csv
import json
import logging
from pathlib import Path

from study_planner.exceptions import ImportFormatError
from study_planner.models import (
    DEFAULT_ESTIMATED_HOURS, DEFAULT_SUBJECT_COLOR, MIN_CONFIDENCE, Strength, parse_strength,
)
from study_planner.topics import add_subject, add_topic, get_subject_by_name, list_topics

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".json", ".yaml", ".yml", ".csv")


def _rows_to_subjects(rows) -> list[dict]:
    subjects = {}
    for row in rows:
        subject_name = (row.get("subject") or "").strip()
        topic_name = (row.get("topic") or "").strip()
        if not subject_name:
            raise ImportFormatError("Every CSV row needs a 'subject' column")
        subject = subjects.setdefault(
            subject_name, {"name": subject_name, "strength": row.get("strength") or None, "topics": []}
        )
        if topic_name:
            topic = {"name": topic_name}
            for key in ("estimated_hours", "confidence_level", "notes"):
                if row.get(key):
                    topic[key] = row[key]
            subject["topics"].append(topic)
    return list(subjects.values())


def read_import_file(file_path: str) -> list[dict]:
    """Parse an import file into a list of subject dicts."""
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ImportFormatError(f"Unsupported file type '{suffix}'. Use one of: {', '.join(SUPPORTED_SUFFIXES)}")

    if suffix == ".csv":
        with path.open(newline="") as f:
            return _rows_to_subjects(csv.DictReader(f))

    if suffix == ".json":
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as exc:
            raise ImportFormatError(f"Invalid JSON in {path.name}: {exc}") from exc
    else:
        import yaml
        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as exc:
            raise ImportFormatError(f"Invalid YAML in {path.name}: {exc}") from exc

    if isinstance(data, dict):
        data = data.get("subjects")
    if not isinstance(data, list):
        raise ImportFormatError(f"{path.name} must contain a list of subjects")
    return data


def _topic_fields(entry) -> dict:
    if isinstance(entry, str):
        return {"name": entry}
    if not isinstance(entry, dict) or not entry.get("name"):
        raise ImportFormatError(f"Topic entries need a name, got {entry!r}")
    try:
        return {
            "name": str(entry["name"]),
            "estimated_hours": float(entry.get("estimated_hours", DEFAULT_ESTIMATED_HOURS)),
            "confidence_level": int(entry.get("confidence_level", MIN_CONFIDENCE)),
            "notes": str(entry.get("notes") or ""),
        }
    except (TypeError, ValueError) as exc:
        raise ImportFormatError(f"Bad numeric value in topic {entry['name']!r}") from exc


def import_file(db_path: str, file_path: str) -> dict:
    """Import subjects and topics from a file. Topics that already exist are skipped."""
    subjects = read_import_file(file_path)
    added_subjects = 0
    added_topics = 0
    skipped = 0

    for entry in subjects:
        if not isinstance(entry, dict) or not entry.get("name"):
            raise ImportFormatError(f"Subject entries need a name, got {entry!r}")
        name = str(entry["name"])
        existing = get_subject_by_name(db_path, name)
        strength = parse_strength(entry["strength"]) if entry.get("strength") else None
        if existing is None:
            subject_id = add_subject(
                db_path, name, strength or Strength.AVERAGE, entry.get("color") or DEFAULT_SUBJECT_COLOR
            )
            added_subjects += 1
        else:
            subject_id = existing["id"]

        known = {t.name for t in list_topics(db_path, subject_id)}
        for topic_entry in entry.get("topics") or []:
            fields = _topic_fields(topic_entry)
            if fields["name"] in known:
                skipped += 1
                continue
            add_topic(db_path, subject_id, **fields)
            known.add(fields["name"])
            added_topics += 1

    logger.info("Imported %s: %d subjects, %d topics", Path(file_path).name, added_subjects, added_topics)
    return {
        "filename": Path(file_path).name,
        "subjects": added_subjects,
        "topics": added_topics,
        "skipped": skipped,
    }
