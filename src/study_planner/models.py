"""Data classes and enums for the study planner domain model.

Records coming out of storage or import files go through the ``*_from_record``
helpers once, which fill in defaults and clamp values into range. The scoring
code downstream only ever sees fully populated records.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from study_planner.clock import parse_timestamp

DEFAULT_CONFIDENCE = 1
DEFAULT_PRIORITY = 50
DEFAULT_ESTIMATED_HOURS = 1.0
DEFAULT_SUBJECT_COLOR = "#0d9488"
DEFAULT_DAYS_UNTIL_EXAM = 30

MIN_CONFIDENCE = 1
MAX_CONFIDENCE = 5


class Strength(str, Enum):
    WEAK = "weak"
    AVERAGE = "average"
    STRONG = "strong"


class SessionType(str, Enum):
    LEARNING = "learning"
    REVISION = "revision"
    RECALL = "recall"


class ReadinessStatus(str, Enum):
    NOT_READY = "not_ready"
    IMPROVING = "improving"
    ALMOST_READY = "almost_ready"
    EXAM_READY = "exam_ready"


class StudySlot(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MISSED = "missed"
    SKIPPED = "skipped"


@dataclass
class Topic:
    id: int
    name: str
    subject_id: Optional[int] = None
    confidence_level: int = DEFAULT_CONFIDENCE
    priority_score: int = DEFAULT_PRIORITY
    estimated_hours: float = DEFAULT_ESTIMATED_HOURS
    completed_hours: float = 0.0
    last_studied_at: Optional[datetime] = None
    last_revision_date: Optional[datetime] = None
    next_revision_at: Optional[datetime] = None
    revision_count: int = 0
    is_completed: bool = False
    notes: str = ""

    @property
    def has_been_studied(self) -> bool:
        return self.last_studied_at is not None or self.completed_hours > 0


@dataclass
class Subject:
    id: int
    name: str
    strength: Strength = Strength.AVERAGE
    color: str = DEFAULT_SUBJECT_COLOR
    topics: list[Topic] = field(default_factory=list)


@dataclass
class ScheduleSession:
    topic_id: int
    topic_name: str
    subject_name: str
    subject_color: str
    type: SessionType
    duration_minutes: int
    priority_score: int
    reason: str
    is_revision_scheduled: bool = False


@dataclass
class PriorityResult:
    score: int
    reasons: list[str] = field(default_factory=list)


@dataclass
class RevisionEligibility:
    is_eligible: bool
    reasons: list[str] = field(default_factory=list)
    urgency_score: int = 0


@dataclass
class ReadinessResult:
    status: ReadinessStatus
    percentage: int
    message: str


@dataclass
class RecoveryPlan:
    extra_minutes_per_day: int
    days_to_recover: int
    message: str


@dataclass
class PostRevisionUpdate:
    new_confidence: int
    confidence_delta: float
    next_revision_days: int
    urgency_multiplier: float


@dataclass
class RevisionSummary:
    pending: list[Topic] = field(default_factory=list)
    completed_this_week: list[Topic] = field(default_factory=list)
    overdue: list[Topic] = field(default_factory=list)
    upcoming: list[Topic] = field(default_factory=list)


@dataclass
class Profile:
    daily_study_hours: float = 3.0
    pomodoro_work_minutes: int = 25
    pomodoro_break_minutes: int = 5
    preferred_study_slot: StudySlot = StudySlot.MORNING
    current_streak: int = 0
    longest_streak: int = 0

    @property
    def daily_study_minutes(self) -> int:
        return round(self.daily_study_hours * 60)


def clamp(value, low, high):
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero on the positive side (2.5 -> 3), unlike round()."""
    return math.floor(value + 0.5)


def _value(record: Mapping[str, Any], key: str, default=None):
    # sqlite3.Row supports keys() and [] but not get()
    if key in record.keys() and record[key] is not None:
        return record[key]
    return default


def parse_strength(value: Any) -> Strength:
    if isinstance(value, Strength):
        return value
    try:
        return Strength(str(value).lower())
    except ValueError:
        return Strength.AVERAGE


def parse_slot(value: Any) -> StudySlot:
    if isinstance(value, StudySlot):
        return value
    try:
        return StudySlot(str(value).lower())
    except ValueError:
        return StudySlot.MORNING


def topic_from_record(record: Mapping[str, Any]) -> Topic:
    """Build a Topic from a row or dict, defaulting missing fields and clamping ranges."""
    return Topic(
        id=record["id"],
        name=str(_value(record, "name", "")),
        subject_id=_value(record, "subject_id"),
        confidence_level=int(clamp(
            round_half_up(float(_value(record, "confidence_level", DEFAULT_CONFIDENCE))),
            MIN_CONFIDENCE, MAX_CONFIDENCE,
        )),
        priority_score=int(clamp(round_half_up(float(_value(record, "priority_score", DEFAULT_PRIORITY))), 0, 100)),
        estimated_hours=max(0.0, float(_value(record, "estimated_hours", DEFAULT_ESTIMATED_HOURS))),
        completed_hours=max(0.0, float(_value(record, "completed_hours", 0.0))),
        last_studied_at=parse_timestamp(_value(record, "last_studied_at")),
        last_revision_date=parse_timestamp(_value(record, "last_revision_date")),
        next_revision_at=parse_timestamp(_value(record, "next_revision_at")),
        revision_count=max(0, int(_value(record, "revision_count", 0))),
        is_completed=bool(_value(record, "is_completed", False)),
        notes=str(_value(record, "notes", "")),
    )


def subject_from_record(record: Mapping[str, Any], topics: Optional[list] = None) -> Subject:
    """Build a Subject; ``topics`` may hold raw records or Topic instances."""
    built = []
    for t in topics or []:
        built.append(t if isinstance(t, Topic) else topic_from_record(t))
    return Subject(
        id=record["id"],
        name=str(_value(record, "name", "")),
        strength=parse_strength(_value(record, "strength", Strength.AVERAGE.value)),
        color=str(_value(record, "color", DEFAULT_SUBJECT_COLOR)),
        topics=built,
    )


def profile_from_settings(settings: Mapping[str, str]) -> Profile:
    """Build a Profile from the key/value settings table, falling back to defaults."""
    defaults = Profile()
    return Profile(
        daily_study_hours=max(0.0, float(settings.get("daily_study_hours") or defaults.daily_study_hours)),
        pomodoro_work_minutes=max(1, int(settings.get("pomodoro_work_minutes") or defaults.pomodoro_work_minutes)),
        pomodoro_break_minutes=max(0, int(settings.get("pomodoro_break_minutes") or defaults.pomodoro_break_minutes)),
        preferred_study_slot=parse_slot(settings.get("preferred_study_slot") or defaults.preferred_study_slot.value),
        current_streak=max(0, int(settings.get("current_streak") or 0)),
        longest_streak=max(0, int(settings.get("longest_streak") or 0)),
    )
