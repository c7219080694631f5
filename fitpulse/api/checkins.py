from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import Field
from sqlalchemy.orm import Session

from fitpulse.api.users import get_user_or_404
from fitpulse.core.rate_limit import CREATE_RATE_LIMIT, limiter
from fitpulse.core.readiness import RATING_MAX, RATING_MIN, compute_readiness_score, readiness_label, readiness_message
from fitpulse.core.schema import CamelModel
from fitpulse.core.streaks import compute_streak, utc_today
from fitpulse.db.models import DailyCheckin
from fitpulse.db.session import get_db
from fitpulse.services.storage import DuplicateCheckinError, SqlStore, get_store

router = APIRouter(prefix="/api/checkins", tags=["checkins"])


class CheckinCreateRequest(CamelModel):
    user_id: int
    sleep_quality: int = Field(ge=RATING_MIN, le=RATING_MAX)
    energy_level: int = Field(ge=RATING_MIN, le=RATING_MAX)
    soreness: int = Field(ge=RATING_MIN, le=RATING_MAX)
    mood: int = Field(ge=RATING_MIN, le=RATING_MAX)
    stress: int = Field(ge=RATING_MIN, le=RATING_MAX)
    notes: Optional[str] = Field(default=None, max_length=1200)


class CheckinItem(CamelModel):
    id: int
    user_id: int
    sleep_quality: int
    energy_level: int
    soreness: int
    mood: int
    stress: int
    readiness_score: int
    readiness_label: str
    readiness_message: str
    notes: Optional[str] = None
    checkin_date: datetime


class StreakResponse(CamelModel):
    user_id: int
    streak: int


def _to_item(row: DailyCheckin) -> CheckinItem:
    return CheckinItem(
        id=row.id,
        user_id=row.user_id,
        sleep_quality=row.sleep_quality,
        energy_level=row.energy_level,
        soreness=row.soreness,
        mood=row.mood,
        stress=row.stress,
        readiness_score=row.readiness_score,
        readiness_label=readiness_label(row.readiness_score),
        readiness_message=readiness_message(row.readiness_score),
        notes=row.notes,
        checkin_date=row.checkin_date,
    )


@router.post("", response_model=CheckinItem, status_code=status.HTTP_201_CREATED)
@limiter.limit(CREATE_RATE_LIMIT)
def create_checkin(
    request: Request,
    payload: CheckinCreateRequest,
    db: Session = Depends(get_db),
    store: SqlStore = Depends(get_store),
) -> CheckinItem:
    get_user_or_404(db, payload.user_id)
    score = compute_readiness_score(
        payload.sleep_quality,
        payload.energy_level,
        payload.soreness,
        payload.mood,
        payload.stress,
    )
    try:
        row = store.add_checkin(
            payload.user_id,
            {
                "sleep_quality": payload.sleep_quality,
                "energy_level": payload.energy_level,
                "soreness": payload.soreness,
                "mood": payload.mood,
                "stress": payload.stress,
            },
            readiness_score=score,
            notes=(payload.notes or "").strip() or None,
        )
    except DuplicateCheckinError as exc:
        raise HTTPException(status_code=409, detail="Already checked in today") from exc
    return _to_item(row)


@router.get("/today/{user_id}", response_model=CheckinItem)
def get_today_checkin(
    user_id: int,
    db: Session = Depends(get_db),
    store: SqlStore = Depends(get_store),
) -> CheckinItem:
    get_user_or_404(db, user_id)
    row = store.get_checkin_for_day(user_id, utc_today())
    if not row:
        raise HTTPException(status_code=404, detail="No check-in today")
    return _to_item(row)


@router.get("/user/{user_id}", response_model=list[CheckinItem])
def list_checkins(
    user_id: int,
    limit: Optional[int] = Query(default=None, ge=1, le=365),
    db: Session = Depends(get_db),
    store: SqlStore = Depends(get_store),
) -> list[CheckinItem]:
    get_user_or_404(db, user_id)
    return [_to_item(row) for row in store.list_checkins(user_id, limit=limit)]


@router.get("/streak/{user_id}", response_model=StreakResponse)
def get_streak(
    user_id: int,
    db: Session = Depends(get_db),
    store: SqlStore = Depends(get_store),
) -> StreakResponse:
    get_user_or_404(db, user_id)
    rows = store.list_checkins(user_id)
    return StreakResponse(user_id=user_id, streak=compute_streak([row.checkin_day for row in rows]))
