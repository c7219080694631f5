from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import Field
from sqlalchemy.orm import Session

from fitpulse.api.users import get_user_or_404
from fitpulse.core.rate_limit import CREATE_RATE_LIMIT, limiter
from fitpulse.core.schema import CamelModel
from fitpulse.db.models import ProgressEntry
from fitpulse.db.session import get_db
from fitpulse.services.storage import utc_now

router = APIRouter(prefix="/api/progress", tags=["progress"])


class ProgressCreateRequest(CamelModel):
    user_id: int
    weight: Optional[float] = Field(default=None, gt=0, le=500)
    workouts_completed: int = Field(default=0, ge=0, le=100000)
    calories_consumed: int = Field(default=0, ge=0, le=100000)


class ProgressItem(CamelModel):
    id: int
    user_id: int
    weight: Optional[float] = None
    workouts_completed: int
    calories_consumed: int
    entry_date: datetime


def latest_progress(db: Session, user_id: int) -> Optional[ProgressEntry]:
    return (
        db.query(ProgressEntry)
        .filter(ProgressEntry.user_id == user_id)
        .order_by(ProgressEntry.entry_date.desc(), ProgressEntry.id.desc())
        .first()
    )


@router.post("", response_model=ProgressItem, status_code=status.HTTP_201_CREATED)
@limiter.limit(CREATE_RATE_LIMIT)
def create_progress_entry(
    request: Request, payload: ProgressCreateRequest, db: Session = Depends(get_db)
) -> ProgressItem:
    get_user_or_404(db, payload.user_id)
    row = ProgressEntry(
        user_id=payload.user_id,
        weight=payload.weight,
        workouts_completed=payload.workouts_completed,
        calories_consumed=payload.calories_consumed,
        entry_date=utc_now(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return ProgressItem.model_validate(row)


@router.get("/user/{user_id}", response_model=list[ProgressItem])
def list_progress(user_id: int, db: Session = Depends(get_db)) -> list[ProgressItem]:
    get_user_or_404(db, user_id)
    rows = (
        db.query(ProgressEntry)
        .filter(ProgressEntry.user_id == user_id)
        .order_by(ProgressEntry.entry_date.desc(), ProgressEntry.id.desc())
        .all()
    )
    return [ProgressItem.model_validate(row) for row in rows]


@router.get("/latest/{user_id}", response_model=ProgressItem)
def get_latest_progress(user_id: int, db: Session = Depends(get_db)) -> ProgressItem:
    get_user_or_404(db, user_id)
    row = latest_progress(db, user_id)
    if not row:
        raise HTTPException(status_code=404, detail="No progress data found")
    return ProgressItem.model_validate(row)
