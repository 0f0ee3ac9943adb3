"""Exam readiness estimate from aggregate progress."""
from study_planner.models import ReadinessResult, ReadinessStatus, clamp, round_half_up

COMPLETION_WEIGHT = 0.40
CONFIDENCE_WEIGHT = 0.35
CONSISTENCY_WEIGHT = 0.15
TIME_WEIGHT = 0.10

STREAK_CAP_DAYS = 14
TIME_CAP_DAYS = 30

READINESS_MESSAGES = {
    ReadinessStatus.EXAM_READY: "You're well prepared! Keep up the consistency.",
    ReadinessStatus.ALMOST_READY: "Great progress! Focus on weak areas to get exam-ready.",
    ReadinessStatus.IMPROVING: "You're making progress. Stay consistent with your schedule.",
    ReadinessStatus.NOT_READY: "Let's build your study momentum. Start with high-priority topics.",
}


def get_readiness_status(percentage: float) -> ReadinessStatus:
    if percentage >= 80:
        return ReadinessStatus.EXAM_READY
    elif percentage >= 60:
        return ReadinessStatus.ALMOST_READY
    elif percentage >= 35:
        return ReadinessStatus.IMPROVING
    return ReadinessStatus.NOT_READY


def get_readiness_label(status: ReadinessStatus) -> str:
    return status.value.replace("_", " ").upper()


def get_readiness_color(status: ReadinessStatus) -> str:
    return {
        ReadinessStatus.EXAM_READY: "green",
        ReadinessStatus.ALMOST_READY: "yellow",
        ReadinessStatus.IMPROVING: "dark_orange",
        ReadinessStatus.NOT_READY: "red",
    }[status]


def calculate_exam_readiness(
    completion_percentage: float,
    average_confidence: float,
    consistency_streak: int,
    days_until_exam: int,
) -> ReadinessResult:
    """Weighted readiness: completion 40%, confidence 35%, streak 15%, time left 10%.

    Inputs are clamped to their natural ranges first, so the percentage is
    always 0-100 and never decreases when any single input grows.
    """
    completion = clamp(completion_percentage, 0, 100) / 100
    confidence = clamp(average_confidence, 0, 5) / 5
    streak = min(max(consistency_streak, 0) / STREAK_CAP_DAYS, 1)
    time_left = min(days_until_exam / TIME_CAP_DAYS, 1) if days_until_exam > 0 else 0

    score = (
        completion * COMPLETION_WEIGHT
        + confidence * CONFIDENCE_WEIGHT
        + streak * CONSISTENCY_WEIGHT
        + time_left * TIME_WEIGHT
    )
    percentage = round_half_up(score * 100)
    status = get_readiness_status(percentage)
    return ReadinessResult(status=status, percentage=percentage, message=READINESS_MESSAGES[status])
