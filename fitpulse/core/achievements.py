from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from fitpulse.core.streaks import compute_streak

PERFECT_DAY_READINESS = 80


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    icon: str
    category: str
    requirement: float
    type: str


ACHIEVEMENT_DEFINITIONS: list[AchievementDefinition] = [
    AchievementDefinition(
        id="first_workout",
        name="First Steps",
        description="Complete your first workout",
        icon="🎯",
        category="milestone",
        requirement=1,
        type="workouts_completed",
    ),
    AchievementDefinition(
        id="week_streak",
        name="Week Warrior",
        description="Check in 7 days straight",
        icon="🔥",
        category="streak",
        requirement=7,
        type="checkin_streak",
    ),
    AchievementDefinition(
        id="month_streak",
        name="Monthly Master",
        description="Check in 30 days straight",
        icon="👑",
        category="streak",
        requirement=30,
        type="checkin_streak",
    ),
    AchievementDefinition(
        id="strength_gains",
        name="Strength Gains",
        description="Increase your max weight by 50%",
        icon="💪",
        category="progress",
        requirement=1.5,
        type="strength_improvement",
    ),
    AchievementDefinition(
        id="consistency_king",
        name="Consistency King",
        description="Complete 50 total workouts",
        icon="⭐",
        category="milestone",
        requirement=50,
        type="workouts_completed",
    ),
    AchievementDefinition(
        id="perfect_week",
        name="Perfect Week",
        description="Log 7 check-ins with readiness above 80",
        icon="✨",
        category="excellence",
        requirement=7,
        type="perfect_days",
    ),
    AchievementDefinition(
        id="century_club",
        name="Century Club",
        description="Complete 100 total workouts",
        icon="🏆",
        category="milestone",
        requirement=100,
        type="workouts_completed",
    ),
]

DEFINITIONS_BY_ID = {item.id: item for item in ACHIEVEMENT_DEFINITIONS}


@dataclass
class AchievementStats:
    """Inputs for progress, gathered by the caller from storage."""

    workouts_completed: int = 0
    checkin_dates: tuple[date, ...] = ()
    readiness_scores: tuple[int, ...] = ()
    strength_ratio: float = 1.0


def best_strength_ratio(weight_records: Iterable[tuple[str, float]]) -> float:
    """Best max/first weight ratio over exercises, from (exercise, value) pairs in log order."""
    first: dict[str, float] = {}
    best: dict[str, float] = {}
    for exercise, value in weight_records:
        key = exercise.strip().lower()
        if key not in first:
            first[key] = value
        best[key] = max(best.get(key, value), value)
    ratios = [best[key] / first[key] for key in first if first[key] > 0]
    return max(ratios, default=1.0)


def _metric_value(definition: AchievementDefinition, stats: AchievementStats, today: Optional[date]) -> float:
    if definition.type == "workouts_completed":
        return float(stats.workouts_completed)
    if definition.type == "checkin_streak":
        return float(compute_streak(stats.checkin_dates, today=today))
    if definition.type == "perfect_days":
        return float(sum(1 for score in stats.readiness_scores if score > PERFECT_DAY_READINESS))
    if definition.type == "strength_improvement":
        return stats.strength_ratio
    return 0.0


def achievement_progress(
    definition: AchievementDefinition,
    stats: AchievementStats,
    earned: bool = False,
    today: Optional[date] = None,
) -> float:
    if earned:
        return 100.0
    value = _metric_value(definition, stats, today)
    return round(min(value / definition.requirement * 100.0, 100.0), 1)


def newly_completed(
    stats: AchievementStats, earned_ids: set[str], today: Optional[date] = None
) -> list[AchievementDefinition]:
    return [
        item
        for item in ACHIEVEMENT_DEFINITIONS
        if item.id not in earned_ids and achievement_progress(item, stats, today=today) >= 100.0
    ]
