import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import Field
from sqlalchemy.orm import Session

from fitpulse.api.users import get_user_or_404, user_goals
from fitpulse.core.plan_adjuster import adjust_plan, adjustment_bracket
from fitpulse.core.plans import WorkoutPlanDoc
from fitpulse.core.rate_limit import AI_RATE_LIMIT, limiter
from fitpulse.core.schema import CamelModel
from fitpulse.core.streaks import utc_today
from fitpulse.db.models import WorkoutPlan
from fitpulse.db.session import get_db
from fitpulse.services.llm import LLMClient, LLMNotConfiguredError, LLMRequestError, get_llm_client
from fitpulse.services.plan_generator import PlanGenerationError, WorkoutPlanParams, generate_workout_plan
from fitpulse.services.storage import SqlStore, get_store, load_plan_doc

router = APIRouter(prefix="/api/workout-plans", tags=["workout-plans"])
logger = logging.getLogger("uvicorn.error")


class WorkoutPlanGenerateRequest(CamelModel):
    user_id: int
    age: Optional[int] = Field(default=None, ge=13, le=120)
    weight: Optional[float] = Field(default=None, gt=0, le=500)
    height: Optional[float] = Field(default=None, gt=0, le=300)
    fitness_level: Optional[str] = Field(default=None, max_length=32)
    goals: Optional[list[str]] = None
    workout_days: Optional[int] = Field(default=None, ge=1, le=7)
    equipment: list[str] = Field(default_factory=list)


class WorkoutPlanAdjustRequest(CamelModel):
    user_id: int
    readiness_score: Optional[int] = Field(default=None, ge=0, le=100)
    current_plan: Optional[WorkoutPlanDoc] = None


class WorkoutPlanItem(CamelModel):
    id: int
    user_id: int
    plan: WorkoutPlanDoc
    adjusted_for_readiness: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


def _to_item(row: WorkoutPlan) -> WorkoutPlanItem:
    return WorkoutPlanItem(
        id=row.id,
        user_id=row.user_id,
        plan=load_plan_doc(row),
        adjusted_for_readiness=row.adjusted_for_readiness,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.post("/generate", response_model=WorkoutPlanItem)
@limiter.limit(AI_RATE_LIMIT)
def generate_plan(
    request: Request,
    payload: WorkoutPlanGenerateRequest,
    db: Session = Depends(get_db),
    store: SqlStore = Depends(get_store),
    llm: LLMClient = Depends(get_llm_client),
) -> WorkoutPlanItem:
    user = get_user_or_404(db, payload.user_id)
    merged = {
        "age": payload.age if payload.age is not None else user.age,
        "weight": payload.weight if payload.weight is not None else user.weight,
        "height": payload.height if payload.height is not None else user.height,
        "fitness_level": payload.fitness_level or user.fitness_level,
        "goals": payload.goals if payload.goals is not None else user_goals(user),
        "workout_days": payload.workout_days if payload.workout_days is not None else user.workout_days,
        "equipment": payload.equipment,
    }
    missing = [key for key, value in merged.items() if value is None]
    if missing:
        raise HTTPException(status_code=422, detail=f"Missing plan inputs: {', '.join(sorted(missing))}")

    try:
        plan = generate_workout_plan(llm, WorkoutPlanParams(**merged))
    except LLMNotConfiguredError as exc:
        raise HTTPException(status_code=503, detail="AI provider is not configured") from exc
    except (LLMRequestError, PlanGenerationError, ValueError) as exc:
        logger.exception("workout_plan_generate_error user_id=%s detail=%s", user.id, str(exc))
        raise HTTPException(status_code=502, detail="Failed to generate workout plan. Please try again.") from exc

    row = store.save_workout_plan(user.id, plan)
    return _to_item(row)


@router.get("/user/{user_id}", response_model=WorkoutPlanItem)
def get_user_plan(
    user_id: int,
    db: Session = Depends(get_db),
    store: SqlStore = Depends(get_store),
) -> WorkoutPlanItem:
    get_user_or_404(db, user_id)
    row = store.get_workout_plan(user_id)
    if not row:
        raise HTTPException(status_code=404, detail="No workout plan found")
    return _to_item(row)


@router.post("/adjust", response_model=WorkoutPlanItem)
def adjust_user_plan(
    payload: WorkoutPlanAdjustRequest,
    db: Session = Depends(get_db),
    store: SqlStore = Depends(get_store),
) -> WorkoutPlanItem:
    get_user_or_404(db, payload.user_id)

    score = payload.readiness_score
    if score is None:
        today = store.get_checkin_for_day(payload.user_id, utc_today())
        if not today:
            raise HTTPException(status_code=404, detail="No readiness score provided and no check-in today")
        score = today.readiness_score

    plan = payload.current_plan
    if plan is None:
        row = store.get_workout_plan(payload.user_id)
        if not row:
            raise HTTPException(status_code=404, detail="No workout plan found")
        plan = load_plan_doc(row)

    adjusted = adjust_plan(score, plan)
    bracket = adjustment_bracket(score)
    logger.info(
        "workout_plan_adjusted user_id=%s readiness=%s bracket=%s days=%s",
        payload.user_id,
        score,
        bracket.value if bracket else "unchanged",
        len(adjusted.weekly_schedule),
    )
    row = store.save_workout_plan(payload.user_id, adjusted, adjusted_for_readiness=score)
    return _to_item(row)
