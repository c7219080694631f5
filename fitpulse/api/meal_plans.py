import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import Field
from sqlalchemy.orm import Session

from fitpulse.api.users import get_user_or_404, user_goals
from fitpulse.core.plans import MealPlanDoc
from fitpulse.core.rate_limit import AI_RATE_LIMIT, limiter
from fitpulse.core.schema import CamelModel
from fitpulse.db.models import MealPlan
from fitpulse.db.session import get_db
from fitpulse.services.llm import LLMClient, LLMNotConfiguredError, LLMRequestError, get_llm_client
from fitpulse.services.plan_generator import MealPlanParams, PlanGenerationError, generate_meal_plan
from fitpulse.services.storage import utc_now

router = APIRouter(prefix="/api/meal-plans", tags=["meal-plans"])
logger = logging.getLogger("uvicorn.error")

# Fallback protein target in grams per kg of body weight.
PROTEIN_G_PER_KG = 1.6


class MealPlanGenerateRequest(CamelModel):
    user_id: int
    calorie_target: Optional[int] = Field(default=None, ge=800, le=10000)
    protein_target: Optional[int] = Field(default=None, ge=10, le=500)
    goals: Optional[list[str]] = None
    dietary_restrictions: list[str] = Field(default_factory=list)


class MealPlanItem(CamelModel):
    id: int
    user_id: int
    plan: MealPlanDoc
    created_at: datetime


def _to_item(row: MealPlan) -> MealPlanItem:
    try:
        loaded = json.loads(row.plan_json or "{}")
    except json.JSONDecodeError:
        loaded = {}
    return MealPlanItem(
        id=row.id,
        user_id=row.user_id,
        plan=MealPlanDoc.model_validate(loaded if isinstance(loaded, dict) else {}),
        created_at=row.created_at,
    )


@router.post("/generate", response_model=MealPlanItem)
@limiter.limit(AI_RATE_LIMIT)
def generate_plan(
    request: Request,
    payload: MealPlanGenerateRequest,
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> MealPlanItem:
    user = get_user_or_404(db, payload.user_id)
    calorie_target = payload.calorie_target or user.calorie_target
    if not calorie_target:
        raise HTTPException(status_code=422, detail="Missing plan inputs: calorie_target")
    protein_target = payload.protein_target
    if protein_target is None:
        protein_target = round((user.weight or 70) * PROTEIN_G_PER_KG)
    params = MealPlanParams(
        calorie_target=calorie_target,
        protein_target=protein_target,
        goals=payload.goals if payload.goals is not None else user_goals(user),
        dietary_restrictions=payload.dietary_restrictions,
    )

    try:
        plan = generate_meal_plan(llm, params)
    except LLMNotConfiguredError as exc:
        raise HTTPException(status_code=503, detail="AI provider is not configured") from exc
    except (LLMRequestError, PlanGenerationError, ValueError) as exc:
        logger.exception("meal_plan_generate_error user_id=%s detail=%s", user.id, str(exc))
        raise HTTPException(status_code=502, detail="Failed to generate meal plan. Please try again.") from exc

    row = MealPlan(
        user_id=user.id,
        plan_json=json.dumps(plan.model_dump(mode="json", by_alias=True), separators=(",", ":")),
        created_at=utc_now(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return _to_item(row)


@router.get("/user/{user_id}", response_model=list[MealPlanItem])
def list_meal_plans(user_id: int, db: Session = Depends(get_db)) -> list[MealPlanItem]:
    get_user_or_404(db, user_id)
    rows = (
        db.query(MealPlan)
        .filter(MealPlan.user_id == user_id)
        .order_by(MealPlan.created_at.desc(), MealPlan.id.desc())
        .all()
    )
    return [_to_item(row) for row in rows]


@router.get("/latest/{user_id}", response_model=MealPlanItem)
def get_latest_meal_plan(user_id: int, db: Session = Depends(get_db)) -> MealPlanItem:
    get_user_or_404(db, user_id)
    row = (
        db.query(MealPlan)
        .filter(MealPlan.user_id == user_id)
        .order_by(MealPlan.created_at.desc(), MealPlan.id.desc())
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="No meal plan found")
    return _to_item(row)
