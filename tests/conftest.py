from datetime import datetime

import pytest

from study_planner.models import Topic


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_planner.db")
    return db_path


@pytest.fixture
def now():
    """A fixed reference time (Tuesday morning)."""
    return datetime(2026, 3, 10, 8, 0)


@pytest.fixture
def make_topic():
    """Factory for Topic records with sensible defaults."""
    counter = iter(range(1, 10_000))

    def _make(**fields):
        fields.setdefault("id", next(counter))
        fields.setdefault("name", f"Topic {fields['id']}")
        return Topic(**fields)

    return _make
