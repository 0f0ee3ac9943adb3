"""Daily schedule generation: rank topics, pack sessions into the day, interleave."""
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, NamedTuple

from study_planner.models import (
    DEFAULT_DAYS_UNTIL_EXAM, MAX_CONFIDENCE, MIN_CONFIDENCE, ScheduleSession, SessionType,
    StudySlot, Subject, Topic, clamp,
)
from study_planner.priority import (
    check_revision_eligibility, score_learning_priority, score_revision_priority,
)

logger = logging.getLogger(__name__)

MAX_REVISION_PERCENTAGE = 40
RECALL_MIN_REVISIONS = 3
RECALL_MIN_CONFIDENCE = 3

SLOT_START_HOURS = {
    StudySlot.MORNING: 9,
    StudySlot.AFTERNOON: 14,
    StudySlot.EVENING: 18,
    StudySlot.NIGHT: 21,
}
GAP_BETWEEN_SESSIONS = 15


class _Candidate(NamedTuple):
    topic: Topic
    subject: Subject
    score: int
    reason: str


class _Packing(NamedTuple):
    sessions: list
    remaining: int
    revision_spent: int


def _session(candidate: _Candidate, kind: SessionType, duration: int, revision: bool) -> ScheduleSession:
    return ScheduleSession(
        topic_id=candidate.topic.id,
        topic_name=candidate.topic.name,
        subject_name=candidate.subject.name,
        subject_color=candidate.subject.color,
        type=kind,
        duration_minutes=duration,
        priority_score=candidate.score,
        reason=candidate.reason,
        is_revision_scheduled=revision,
    )


def revision_budget(available_minutes: int) -> int:
    """Most minutes of full revision sessions allowed in one day."""
    return max(0, int(available_minutes * MAX_REVISION_PERCENTAGE // 100))


def partition_candidates(
    subjects: Iterable[Subject],
    days_until_exam: int,
    now: datetime,
) -> tuple[list[_Candidate], list[_Candidate]]:
    """Split open topics into (revision, learning) candidates, each sorted by its own score.

    Sorting is stable, so equal scores keep subject-then-topic enumeration order.
    """
    revision, learning = [], []
    for subject in subjects:
        for topic in subject.topics:
            if topic.is_completed:
                continue
            eligibility = check_revision_eligibility(topic, days_until_exam, now)
            if eligibility.is_eligible:
                result = score_revision_priority(topic, subject.strength, days_until_exam, now)
                reason = eligibility.reasons[0] if eligibility.reasons else "Scheduled due to revision cycle"
                revision.append(_Candidate(topic, subject, result.score, reason))
            else:
                result = score_learning_priority(topic, subject.strength, days_until_exam, now)
                reason = result.reasons[0] if result.reasons else "Scheduled for today"
                learning.append(_Candidate(topic, subject, result.score, reason))
    revision.sort(key=lambda c: c.score, reverse=True)
    learning.sort(key=lambda c: c.score, reverse=True)
    return revision, learning


def _pack_revisions(
    candidates: list[_Candidate],
    state: _Packing,
    work_minutes: int,
    session_minutes: int,
    budget: int,
) -> _Packing:
    sessions, remaining, spent = list(state.sessions), state.remaining, state.revision_spent
    for candidate in candidates:
        if remaining < work_minutes or spent >= budget:
            break
        topic = candidate.topic
        confidence = clamp(topic.confidence_level, MIN_CONFIDENCE, MAX_CONFIDENCE)
        is_recall = (
            topic.revision_count >= RECALL_MIN_REVISIONS
            and confidence >= RECALL_MIN_CONFIDENCE
        )
        if is_recall:
            duration = min(work_minutes, remaining)
            sessions.append(_session(candidate, SessionType.RECALL, duration, True))
        else:
            duration = min(session_minutes, remaining)
            # over the revision cap; later recall candidates may still fit
            if spent + duration > budget:
                continue
            sessions.append(_session(candidate, SessionType.REVISION, duration, True))
            spent += duration
        remaining -= duration
    return _Packing(sessions, remaining, spent)


def _pack_learning(candidates: list[_Candidate], state: _Packing, session_minutes: int) -> _Packing:
    sessions, remaining = list(state.sessions), state.remaining
    for candidate in candidates:
        if remaining < session_minutes:
            break
        if candidate.topic.last_studied_at is None:
            # first exposure gets two pomodoros
            duration = min(session_minutes * 2, remaining)
        else:
            duration = min(session_minutes, remaining)
        sessions.append(_session(candidate, SessionType.LEARNING, duration, False))
        remaining -= duration
    return _Packing(sessions, remaining, state.revision_spent)


def interleave_sessions(sessions: list[ScheduleSession]) -> list[ScheduleSession]:
    """Reorder as two non-revision sessions, then one revision, repeating until both run out."""
    revisions = [s for s in sessions if s.type == SessionType.REVISION]
    others = [s for s in sessions if s.type != SessionType.REVISION]
    result = []
    r = o = 0
    while r < len(revisions) or o < len(others):
        for _ in range(2):
            if o < len(others):
                result.append(others[o])
                o += 1
        if r < len(revisions):
            result.append(revisions[r])
            r += 1
    return result


def generate_daily_schedule(
    subjects: list[Subject],
    available_minutes: int,
    pomodoro_work_minutes: int = 25,
    pomodoro_break_minutes: int = 5,
    days_until_exam: int | None = DEFAULT_DAYS_UNTIL_EXAM,
    *,
    now: datetime,
) -> list[ScheduleSession]:
    """Build one day's study sessions.

    Revision-eligible topics are packed first, capped at 40% of the day for
    full revision sessions (recall sessions do not count toward the cap). A
    revision session that would cross the cap is left out and packing moves
    on to the next candidate.
    Learning topics fill what is left. The result is interleaved for variety,
    so it is not in priority order; read ``priority_score`` per session.

    Args:
        subjects: Normalized subjects with their topics.
        available_minutes: Study budget for the day.
        pomodoro_work_minutes: Length of one focused block; also the recall length.
        pomodoro_break_minutes: Break after each block.
        days_until_exam: Whole days until the exam; None means the 30-day default.
        now: Reference time for recency bucketing.

    Returns:
        Ordered list of ScheduleSession. Empty when nothing fits.
    """
    if days_until_exam is None:
        days_until_exam = DEFAULT_DAYS_UNTIL_EXAM

    session_minutes = pomodoro_work_minutes + pomodoro_break_minutes
    if available_minutes <= 0 or pomodoro_work_minutes <= 0 or session_minutes <= 0:
        return []

    revision_candidates, learning_candidates = partition_candidates(subjects, days_until_exam, now)
    budget = revision_budget(available_minutes)

    state = _Packing([], available_minutes, 0)
    state = _pack_revisions(revision_candidates, state, pomodoro_work_minutes, session_minutes, budget)
    state = _pack_learning(learning_candidates, state, session_minutes)

    logger.debug(
        "Scheduled %d sessions (%d revision minutes of %d budget, %d minutes unused)",
        len(state.sessions), state.revision_spent, budget, state.remaining,
    )
    return interleave_sessions(state.sessions)


def assign_start_times(
    sessions: list[ScheduleSession],
    day: date,
    slot: StudySlot = StudySlot.MORNING,
    gap_minutes: int = GAP_BETWEEN_SESSIONS,
) -> list[tuple[datetime, ScheduleSession]]:
    """Lay sessions out back to back from the preferred slot's start hour."""
    current = datetime.combine(day, time(hour=SLOT_START_HOURS.get(slot, 9)))
    placed = []
    for session in sessions:
        placed.append((current, session))
        current += timedelta(minutes=session.duration_minutes + gap_minutes)
    return placed
