from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import Field
from sqlalchemy.orm import Session

from fitpulse.api.personal_records import records_for_user
from fitpulse.api.progress import latest_progress
from fitpulse.api.users import get_user_or_404
from fitpulse.core.achievements import (
    ACHIEVEMENT_DEFINITIONS,
    DEFINITIONS_BY_ID,
    AchievementDefinition,
    AchievementStats,
    achievement_progress,
    best_strength_ratio,
    newly_completed,
)
from fitpulse.core.rate_limit import CREATE_RATE_LIMIT, limiter
from fitpulse.core.schema import CamelModel
from fitpulse.db.models import Achievement
from fitpulse.db.session import get_db
from fitpulse.services.storage import SqlStore, get_store, utc_now

router = APIRouter(prefix="/api/achievements", tags=["achievements"])


class AchievementCreateRequest(CamelModel):
    user_id: int
    achievement_type: str = Field(min_length=1, max_length=64)


class AchievementItem(CamelModel):
    id: int
    user_id: int
    achievement_type: str
    name: str
    description: str
    category: str
    icon: Optional[str] = None
    earned_at: datetime


class AchievementProgressItem(CamelModel):
    achievement_type: str
    name: str
    description: str
    category: str
    icon: str
    requirement: float
    progress: float
    earned: bool


def _earned_rows(db: Session, user_id: int) -> list[Achievement]:
    return (
        db.query(Achievement)
        .filter(Achievement.user_id == user_id)
        .order_by(Achievement.earned_at.asc(), Achievement.id.asc())
        .all()
    )


def _collect_stats(db: Session, store: SqlStore, user_id: int) -> AchievementStats:
    checkins = store.list_checkins(user_id)
    progress = latest_progress(db, user_id)
    weight_records = [
        (row.exercise_name, row.value) for row in records_for_user(db, user_id) if row.record_type == "weight"
    ]
    return AchievementStats(
        workouts_completed=progress.workouts_completed if progress else 0,
        checkin_dates=tuple(row.checkin_day for row in checkins),
        readiness_scores=tuple(row.readiness_score for row in checkins),
        strength_ratio=best_strength_ratio(weight_records),
    )


def _award(db: Session, user_id: int, definition: AchievementDefinition) -> Achievement:
    row = Achievement(
        user_id=user_id,
        achievement_type=definition.id,
        name=definition.name,
        description=definition.description,
        category=definition.category,
        icon=definition.icon,
        earned_at=utc_now(),
    )
    db.add(row)
    return row


@router.get("/user/{user_id}", response_model=list[AchievementItem])
def list_achievements(user_id: int, db: Session = Depends(get_db)) -> list[AchievementItem]:
    get_user_or_404(db, user_id)
    return [AchievementItem.model_validate(row) for row in _earned_rows(db, user_id)]


@router.get("/progress/{user_id}", response_model=list[AchievementProgressItem])
def get_achievement_progress(
    user_id: int,
    db: Session = Depends(get_db),
    store: SqlStore = Depends(get_store),
) -> list[AchievementProgressItem]:
    get_user_or_404(db, user_id)
    earned_ids = {row.achievement_type for row in _earned_rows(db, user_id)}
    stats = _collect_stats(db, store, user_id)
    return [
        AchievementProgressItem(
            achievement_type=item.id,
            name=item.name,
            description=item.description,
            category=item.category,
            icon=item.icon,
            requirement=item.requirement,
            progress=achievement_progress(item, stats, earned=item.id in earned_ids),
            earned=item.id in earned_ids,
        )
        for item in ACHIEVEMENT_DEFINITIONS
    ]


@router.post("", response_model=AchievementItem, status_code=status.HTTP_201_CREATED)
@limiter.limit(CREATE_RATE_LIMIT)
def award_achievement(
    request: Request, payload: AchievementCreateRequest, db: Session = Depends(get_db)
) -> AchievementItem:
    get_user_or_404(db, payload.user_id)
    definition = DEFINITIONS_BY_ID.get(payload.achievement_type)
    if definition is None:
        raise HTTPException(status_code=422, detail="Unknown achievement type")
    existing = (
        db.query(Achievement)
        .filter(Achievement.user_id == payload.user_id, Achievement.achievement_type == definition.id)
        .first()
    )
    if existing:
        raise HTTPException(status_code=409, detail="Achievement already earned")
    row = _award(db, payload.user_id, definition)
    db.commit()
    db.refresh(row)
    return AchievementItem.model_validate(row)


@router.post("/evaluate/{user_id}", response_model=list[AchievementItem])
def evaluate_achievements(
    user_id: int,
    db: Session = Depends(get_db),
    store: SqlStore = Depends(get_store),
) -> list[AchievementItem]:
    """Award every achievement whose requirement is now met; returns only the new ones."""
    get_user_or_404(db, user_id)
    earned_ids = {row.achievement_type for row in _earned_rows(db, user_id)}
    stats = _collect_stats(db, store, user_id)
    rows = [_award(db, user_id, item) for item in newly_completed(stats, earned_ids)]
    db.commit()
    for row in rows:
        db.refresh(row)
    return [AchievementItem.model_validate(row) for row in rows]
