from decimal import Decimal
from typing import Any, Optional

from fitpulse.core.plans import DayEntry, ExerciseEntry, Intensity, WorkoutPlanDoc, is_number
from fitpulse.core.readiness import round_half_up

LOW_READINESS_BELOW = 60
HIGH_READINESS_ABOVE = 85

LOW_DURATION_FACTOR = Decimal("0.7")
HIGH_DURATION_FACTOR = Decimal("1.2")
MIN_DURATION_MINUTES = 20
MAX_DURATION_MINUTES = 90

SET_STEP = 1
REP_STEP = 2
MIN_SETS = 1
MIN_REPS = 5


def adjustment_bracket(readiness_score: int) -> Optional[Intensity]:
    """Intensity forced by a readiness score, or None when the plan stays as is."""
    if readiness_score < LOW_READINESS_BELOW:
        return Intensity.low
    if readiness_score > HIGH_READINESS_ABOVE:
        return Intensity.high
    return None


def _scale_duration(duration: Any, bracket: Intensity) -> Any:
    if not is_number(duration):
        return duration
    if bracket == Intensity.low:
        return max(MIN_DURATION_MINUTES, round_half_up(Decimal(str(duration)) * LOW_DURATION_FACTOR))
    return min(MAX_DURATION_MINUTES, round_half_up(Decimal(str(duration)) * HIGH_DURATION_FACTOR))


def _step(value: Any, delta: int, floor: int) -> Any:
    if not is_number(value):
        return value
    if delta < 0:
        return max(floor, value + delta)
    return value + delta


def _adjust_exercise(exercise: ExerciseEntry, bracket: Intensity) -> ExerciseEntry:
    direction = -1 if bracket == Intensity.low else 1
    return exercise.model_copy(
        deep=True,
        update={
            "sets": _step(exercise.sets, direction * SET_STEP, MIN_SETS),
            "reps": _step(exercise.reps, direction * REP_STEP, MIN_REPS),
        },
    )


def _adjust_day(day: DayEntry, bracket: Intensity) -> DayEntry:
    return day.model_copy(
        deep=True,
        update={
            "intensity": bracket,
            "duration": _scale_duration(day.duration, bracket),
            "exercises": [_adjust_exercise(item, bracket) for item in day.exercises],
        },
    )


def adjust_plan(readiness_score: int, plan: WorkoutPlanDoc) -> WorkoutPlanDoc:
    """Scale a workout plan's volume and intensity to a readiness score.

    Below 60 every day drops to Low intensity with 70% duration (20 minute
    floor), one set fewer (floor 1) and two reps fewer (floor 5). Above 85
    every day goes High with 120% duration (90 minute ceiling), one set more
    and two reps more. Anything in between returns an untouched copy.

    The input plan is never modified. Non-numeric durations, sets and reps
    are carried over as they are.
    """
    bracket = adjustment_bracket(readiness_score)
    if bracket is None:
        return plan.model_copy(deep=True)
    return plan.model_copy(
        deep=True,
        update={"weekly_schedule": [_adjust_day(day, bracket) for day in plan.weekly_schedule]},
    )
