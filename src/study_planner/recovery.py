"""Spread missed study time over the coming days without overloading any one day."""
import math

from study_planner.models import RecoveryPlan, round_half_up

DEFAULT_MAX_OVERLOAD_PERCENTAGE = 25


def rebalance_after_missed(
    missed_minutes: int,
    remaining_days: int,
    daily_study_minutes: int,
    max_overload_percentage: float = DEFAULT_MAX_OVERLOAD_PERCENTAGE,
) -> RecoveryPlan:
    """Work out how many extra minutes per day recover ``missed_minutes``.

    Extra time per day never exceeds ``max_overload_percentage`` of the daily
    budget. The deficit is spread over as few days as the cap allows, but
    never more days than remain before the exam.
    """
    if remaining_days <= 0:
        return RecoveryPlan(0, 0, "No time left to recover. Focus on key topics only.")
    if missed_minutes <= 0:
        return RecoveryPlan(0, 0, "Nothing to recover.")

    max_extra_per_day = round_half_up(daily_study_minutes * max_overload_percentage / 100)
    if max_extra_per_day <= 0:
        return RecoveryPlan(
            0, remaining_days,
            "Your daily budget leaves no room for extra time. Focus on key topics only.",
        )

    ideal_days = math.ceil(missed_minutes / max_extra_per_day)
    days_to_recover = min(ideal_days, remaining_days)
    extra = min(round_half_up(missed_minutes / days_to_recover), max_extra_per_day)
    return RecoveryPlan(
        extra_minutes_per_day=extra,
        days_to_recover=days_to_recover,
        message=f"Adding {extra} extra minutes for {days_to_recover} days to catch up.",
    )
