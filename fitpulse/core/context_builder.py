import json
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from fitpulse.core.readiness import readiness_label
from fitpulse.core.streaks import compute_streak, utc_today
from fitpulse.db.models import CalorieEntry, ChatMessage, DailyCheckin, User, WorkoutPlan

RECENT_MESSAGE_LIMIT = 6


def _goals(user: User) -> list[str]:
    if not user.goals_json:
        return []
    try:
        parsed = json.loads(user.goals_json)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []
    return [str(item).strip() for item in parsed if str(item).strip()][:5]


def _plan_summary(row: Optional[WorkoutPlan]) -> Optional[dict[str, Any]]:
    if row is None:
        return None
    try:
        plan = json.loads(row.plan_json or "{}")
    except json.JSONDecodeError:
        return None
    schedule = plan.get("weeklySchedule") if isinstance(plan, dict) else None
    if not isinstance(schedule, list):
        schedule = []
    return {
        "overview": plan.get("overview") if isinstance(plan, dict) else None,
        "days": [
            {
                "day": item.get("day"),
                "workout_type": item.get("workoutType"),
                "duration": item.get("duration"),
                "intensity": item.get("intensity"),
                "exercise_count": len(item.get("exercises") or []),
            }
            for item in schedule
            if isinstance(item, dict)
        ],
        "adjusted_for_readiness": row.adjusted_for_readiness,
    }


def build_coaching_context(db: Session, user: User) -> dict[str, Any]:
    today = utc_today()
    day_start = datetime(today.year, today.month, today.day)
    checkin_days = [
        row.checkin_day for row in db.query(DailyCheckin.checkin_day).filter(DailyCheckin.user_id == user.id)
    ]
    today_checkin = (
        db.query(DailyCheckin)
        .filter(DailyCheckin.user_id == user.id, DailyCheckin.checkin_day == today)
        .first()
    )
    plan_row = db.query(WorkoutPlan).filter(WorkoutPlan.user_id == user.id).first()
    calories_today = (
        db.query(CalorieEntry)
        .filter(
            CalorieEntry.user_id == user.id,
            CalorieEntry.entry_date >= day_start,
            CalorieEntry.entry_date < day_start + timedelta(days=1),
        )
        .all()
    )
    recent_messages = (
        db.query(ChatMessage)
        .filter(ChatMessage.user_id == user.id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(RECENT_MESSAGE_LIMIT)
        .all()
    )

    readiness_summary = None
    if today_checkin:
        readiness_summary = {
            "score": today_checkin.readiness_score,
            "label": readiness_label(today_checkin.readiness_score),
            "soreness": today_checkin.soreness,
            "stress": today_checkin.stress,
            "notes": today_checkin.notes,
        }

    return {
        "profile": {
            "age": user.age,
            "weight": user.weight,
            "height": user.height,
            "fitness_level": user.fitness_level,
            "goals": _goals(user),
            "workout_days": user.workout_days,
            "calorie_target": user.calorie_target,
        },
        "today_readiness": readiness_summary,
        "checkin_streak": compute_streak(checkin_days, today=today),
        "workout_plan": _plan_summary(plan_row),
        "calories_today": sum(row.calories for row in calories_today),
        "recent_messages": [
            {"role": row.role, "content": row.content[:500]} for row in reversed(recent_messages)
        ],
    }
