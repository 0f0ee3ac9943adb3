"""Topic priority scoring for learning and revision.

Learning priority = strength 30 + exam urgency 25 + confidence 25 + recency 15 + completion 5.
Revision priority = days since revision 35 + confidence 30 + exam proximity 20 + subject difficulty 15.

Each factor is a 0-100 score scaled by its weight, so the weighted sum is
itself 0-100.
"""
from datetime import datetime

from study_planner.clock import days_since
from study_planner.models import (
    MAX_CONFIDENCE, MIN_CONFIDENCE, PriorityResult, RevisionEligibility, Strength, Topic,
    clamp, round_half_up,
)

STRENGTH_WEIGHT = 30
URGENCY_WEIGHT = 25
CONFIDENCE_WEIGHT = 25
RECENCY_WEIGHT = 15
COMPLETION_WEIGHT = 5

REVISION_RECENCY_WEIGHT = 35
REVISION_CONFIDENCE_WEIGHT = 30
REVISION_PROXIMITY_WEIGHT = 20
REVISION_DIFFICULTY_WEIGHT = 15

STRENGTH_SCORES = {
    Strength.WEAK: 100,
    Strength.AVERAGE: 60,
    Strength.STRONG: 30,
}

REVISION_CONFIDENCE_THRESHOLD = 3
REVISION_DAYS_THRESHOLD = 7


def strength_score(strength: Strength) -> int:
    return STRENGTH_SCORES.get(strength, STRENGTH_SCORES[Strength.AVERAGE])


def confidence_score(confidence_level: int) -> float:
    """Linear inverse of confidence: 1 -> 100, 5 -> 0."""
    level = clamp(confidence_level, MIN_CONFIDENCE, MAX_CONFIDENCE)
    return (MAX_CONFIDENCE - level) / (MAX_CONFIDENCE - MIN_CONFIDENCE) * 100


def exam_urgency_score(days_until_exam: int) -> int:
    if days_until_exam <= 7:
        return 100
    elif days_until_exam <= 30:
        return 80
    elif days_until_exam <= 60:
        return 50
    return 30


def exam_proximity_score(days_until_exam: int) -> int:
    if days_until_exam <= 7:
        return 100
    elif days_until_exam <= 14:
        return 80
    elif days_until_exam <= 30:
        return 60
    return 30


def study_recency_score(days: int | None) -> int:
    """Bucketed staleness of the last study; never studied is most urgent."""
    if days is None or days >= 14:
        return 100
    elif days >= 7:
        return 75
    elif days >= 3:
        return 50
    return 25


def completion_score(completed_hours: float, estimated_hours: float) -> float:
    rate = completed_hours / estimated_hours if estimated_hours > 0 else 0
    return clamp((1 - rate) * 100, 0, 100)


def _clamped_confidence(topic: Topic) -> int:
    return int(clamp(topic.confidence_level, MIN_CONFIDENCE, MAX_CONFIDENCE))


def days_since_revision(topic: Topic, now: datetime) -> int | None:
    """Days since the last revision, falling back to the last study; None if neither."""
    if topic.last_revision_date is not None:
        return days_since(topic.last_revision_date, now)
    return days_since(topic.last_studied_at, now)


def score_learning_priority(
    topic: Topic,
    subject_strength: Strength,
    days_until_exam: int,
    now: datetime,
) -> PriorityResult:
    """Score how urgently a topic should be studied next.

    Args:
        topic: Normalized topic record.
        subject_strength: Self-assessed strength of the owning subject.
        days_until_exam: Whole days until the exam; zero or negative saturates
            to the most urgent tier.
        now: Reference time for recency bucketing.

    Returns:
        PriorityResult with an integer score in [0, 100] and the reasons that
        fired, in display order (the first one is used as the session reason).
    """
    reasons = []
    confidence = _clamped_confidence(topic)

    total = strength_score(subject_strength) / 100 * STRENGTH_WEIGHT
    if subject_strength == Strength.WEAK:
        reasons.append("Weak subject needs attention")

    total += exam_urgency_score(days_until_exam) / 100 * URGENCY_WEIGHT
    if days_until_exam <= 7:
        reasons.append("Exam is less than a week away!")
    elif days_until_exam <= 30:
        reasons.append("Exam approaching soon")

    total += confidence_score(confidence) / 100 * CONFIDENCE_WEIGHT
    if confidence <= 2:
        reasons.append("Low confidence - needs more practice")

    studied_days = days_since(topic.last_studied_at, now)
    total += study_recency_score(studied_days) / 100 * RECENCY_WEIGHT
    if studied_days is None:
        reasons.append("Never studied before")
    elif studied_days >= 7:
        reasons.append("Due for revision")

    total += completion_score(topic.completed_hours, topic.estimated_hours) / 100 * COMPLETION_WEIGHT

    return PriorityResult(score=round_half_up(clamp(total, 0, 100)), reasons=reasons)


def check_revision_eligibility(
    topic: Topic,
    days_until_exam: int,
    now: datetime,
) -> RevisionEligibility:
    """Decide whether a topic should be scheduled as revision rather than fresh learning.

    A topic qualifies once it has been studied at all and either its
    confidence is at most 3 or a week or more has passed since it was last
    revised (or studied, if it was never revised).
    """
    reasons = []
    urgency = 0
    confidence = _clamped_confidence(topic)

    low_confidence = confidence <= REVISION_CONFIDENCE_THRESHOLD
    if low_confidence:
        reasons.append(f"Low confidence ({confidence}/5)")
        urgency += (REVISION_CONFIDENCE_THRESHOLD - confidence + 1) * 20

    days = days_since_revision(topic, now)
    due_by_time = days is not None and days >= REVISION_DAYS_THRESHOLD
    if due_by_time and topic.has_been_studied:
        reasons.append(f"Not revised in {days} days")
        urgency += min(days * 5, 50)

    if days_until_exam <= 7:
        urgency += 30
        reasons.append("Exam approaching - final revision needed")
    elif days_until_exam <= 14:
        urgency += 20

    return RevisionEligibility(
        is_eligible=topic.has_been_studied and (low_confidence or due_by_time),
        reasons=reasons,
        urgency_score=int(clamp(urgency, 0, 100)),
    )


def score_revision_priority(
    topic: Topic,
    subject_strength: Strength,
    days_until_exam: int,
    now: datetime,
) -> PriorityResult:
    """Rank a revision-eligible topic. Higher means it needs revising sooner."""
    reasons = []
    confidence = _clamped_confidence(topic)

    days = days_since_revision(topic, now) or 0
    total = min(days * 5, 100) / 100 * REVISION_RECENCY_WEIGHT
    if days >= 14:
        reasons.append("Overdue for revision")
    elif days >= 7:
        reasons.append("Due for scheduled revision")

    total += confidence_score(confidence) / 100 * REVISION_CONFIDENCE_WEIGHT
    if confidence <= 2:
        reasons.append("Low confidence - revision critical")
    elif confidence <= 3:
        reasons.append("Moderate confidence - revision recommended")

    total += exam_proximity_score(days_until_exam) / 100 * REVISION_PROXIMITY_WEIGHT

    total += strength_score(subject_strength) / 100 * REVISION_DIFFICULTY_WEIGHT
    if subject_strength == Strength.WEAK:
        reasons.append("Weak subject - extra attention needed")

    return PriorityResult(score=round_half_up(clamp(total, 0, 100)), reasons=reasons)
