import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import Field
from sqlalchemy.orm import Session

from fitpulse.api.users import get_user_or_404
from fitpulse.core.rate_limit import AI_RATE_LIMIT, CREATE_RATE_LIMIT, limiter
from fitpulse.core.schema import CamelModel
from fitpulse.core.streaks import utc_today
from fitpulse.db.models import CalorieEntry
from fitpulse.db.session import get_db
from fitpulse.services.llm import LLMClient, LLMRequestError, get_llm_client
from fitpulse.services.plan_generator import FoodAnalysis, analyze_food_calories
from fitpulse.services.storage import utc_now

router = APIRouter(prefix="/api/calories", tags=["calories"])
logger = logging.getLogger("uvicorn.error")


class FoodAnalyzeRequest(CamelModel):
    food_name: str = Field(min_length=1, max_length=255)
    quantity: float = Field(default=1, gt=0, le=100)
    unit: str = Field(default="serving", min_length=1, max_length=32)


class CalorieEntryCreateRequest(CamelModel):
    user_id: int
    food_name: str = Field(min_length=1, max_length=255)
    calories: int = Field(ge=0, le=20000)
    protein: Optional[float] = Field(default=None, ge=0, le=1000)
    carbs: Optional[float] = Field(default=None, ge=0, le=2000)
    fat: Optional[float] = Field(default=None, ge=0, le=1000)
    quantity: float = Field(default=1, gt=0, le=100)
    unit: str = Field(default="serving", min_length=1, max_length=32)


class CalorieEntryItem(CamelModel):
    id: int
    user_id: int
    food_name: str
    calories: int
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    quantity: float
    unit: str
    entry_date: datetime


class DailyTotalsResponse(CamelModel):
    user_id: int
    day: date
    total_calories: int
    total_protein: float
    total_carbs: float
    total_fat: float
    entries: int


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def _entries_for(db: Session, user_id: int, day: Optional[date]) -> list[CalorieEntry]:
    query = db.query(CalorieEntry).filter(CalorieEntry.user_id == user_id)
    if day is not None:
        start, end = _day_bounds(day)
        query = query.filter(CalorieEntry.entry_date >= start, CalorieEntry.entry_date < end)
    return query.order_by(CalorieEntry.entry_date.desc(), CalorieEntry.id.desc()).all()


@router.post("/analyze", response_model=FoodAnalysis)
@limiter.limit(AI_RATE_LIMIT)
def analyze_food(
    request: Request,
    payload: FoodAnalyzeRequest,
    llm: LLMClient = Depends(get_llm_client),
) -> FoodAnalysis:
    try:
        return analyze_food_calories(llm, payload.food_name.strip(), payload.quantity, payload.unit.strip())
    except (LLMRequestError, ValueError) as exc:
        logger.exception("food_analysis_error food=%s detail=%s", payload.food_name, str(exc))
        raise HTTPException(status_code=502, detail="Failed to analyze food calories. Please try again.") from exc


@router.post("", response_model=CalorieEntryItem, status_code=status.HTTP_201_CREATED)
@limiter.limit(CREATE_RATE_LIMIT)
def create_entry(
    request: Request,
    payload: CalorieEntryCreateRequest,
    db: Session = Depends(get_db),
) -> CalorieEntryItem:
    get_user_or_404(db, payload.user_id)
    row = CalorieEntry(
        user_id=payload.user_id,
        food_name=payload.food_name.strip(),
        calories=payload.calories,
        protein=payload.protein,
        carbs=payload.carbs,
        fat=payload.fat,
        quantity=payload.quantity,
        unit=payload.unit.strip(),
        entry_date=utc_now(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return CalorieEntryItem.model_validate(row)


@router.get("/user/{user_id}", response_model=list[CalorieEntryItem])
def list_entries(
    user_id: int,
    on_date: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
) -> list[CalorieEntryItem]:
    get_user_or_404(db, user_id)
    return [CalorieEntryItem.model_validate(row) for row in _entries_for(db, user_id, on_date)]


@router.get("/today/{user_id}", response_model=DailyTotalsResponse)
def get_today_totals(user_id: int, db: Session = Depends(get_db)) -> DailyTotalsResponse:
    get_user_or_404(db, user_id)
    today = utc_today()
    rows = _entries_for(db, user_id, today)
    return DailyTotalsResponse(
        user_id=user_id,
        day=today,
        total_calories=sum(row.calories for row in rows),
        total_protein=round(sum(row.protein or 0 for row in rows), 1),
        total_carbs=round(sum(row.carbs or 0 for row in rows), 1),
        total_fat=round(sum(row.fat or 0 for row in rows), 1),
        entries=len(rows),
    )
