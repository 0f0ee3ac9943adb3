"""Spaced revision intervals and post-revision topic updates."""
from datetime import datetime, timedelta

from study_planner.models import (
    MAX_CONFIDENCE, MIN_CONFIDENCE, PostRevisionUpdate, RevisionSummary, Topic, round_half_up,
)

BASE_INTERVALS = [1, 3, 7, 14, 30, 60]
COMPLETED_URGENCY = 0.8
SKIPPED_URGENCY = 1.3
SKIP_CONFIDENCE_PENALTY = 0.5


def calculate_next_revision(confidence_level: float, revision_count: int) -> int:
    """Days until the next revision.

    Args:
        confidence_level: Confidence 1-5 after the revision.
        revision_count: Completed revisions so far; picks the base interval.

    Returns:
        Base interval scaled by confidence/3 (so confidence 3 keeps the base).
    """
    index = min(max(revision_count, 0), len(BASE_INTERVALS) - 1)
    return round_half_up(BASE_INTERVALS[index] * (confidence_level / 3))


def calculate_post_revision_updates(
    current_confidence: int,
    revision_count: int,
    completed: bool,
    skipped: bool,
) -> PostRevisionUpdate:
    """Completing a revision raises confidence by one; skipping costs half a point."""
    new_confidence = float(current_confidence)
    delta = 0.0
    urgency = 1.0

    if completed:
        delta = float(min(1, MAX_CONFIDENCE - current_confidence))
        new_confidence = min(MAX_CONFIDENCE, current_confidence + delta)
        urgency = COMPLETED_URGENCY
    elif skipped:
        delta = -SKIP_CONFIDENCE_PENALTY
        new_confidence = max(MIN_CONFIDENCE, current_confidence - SKIP_CONFIDENCE_PENALTY)
        urgency = SKIPPED_URGENCY

    next_days = calculate_next_revision(new_confidence, revision_count + (1 if completed else 0))
    return PostRevisionUpdate(
        new_confidence=round_half_up(new_confidence),
        confidence_delta=delta,
        next_revision_days=next_days,
        urgency_multiplier=urgency,
    )


def get_revision_summary(topics: list[Topic], now: datetime) -> RevisionSummary:
    """Bucket topics into revised this week, overdue, upcoming and pending."""
    week_ago = now - timedelta(days=7)
    week_ahead = now + timedelta(days=7)
    summary = RevisionSummary()

    for topic in topics:
        if topic.last_revision_date is not None and topic.last_revision_date >= week_ago:
            summary.completed_this_week.append(topic)
            continue
        if topic.next_revision_at is not None:
            if topic.next_revision_at < now:
                summary.overdue.append(topic)
            elif topic.next_revision_at <= week_ahead:
                summary.upcoming.append(topic)
        elif topic.confidence_level <= 3 and topic.last_studied_at is not None:
            summary.pending.append(topic)
    return summary
