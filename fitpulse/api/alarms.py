import json
from datetime import datetime
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import Field
from sqlalchemy.orm import Session

from fitpulse.api.users import get_user_or_404
from fitpulse.core.rate_limit import CREATE_RATE_LIMIT, limiter
from fitpulse.core.schema import CamelModel
from fitpulse.db.models import WorkoutAlarm
from fitpulse.db.session import get_db
from fitpulse.services.storage import utc_now

router = APIRouter(prefix="/api/alarms", tags=["alarms"])

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class Weekday(str, Enum):
    monday = "Monday"
    tuesday = "Tuesday"
    wednesday = "Wednesday"
    thursday = "Thursday"
    friday = "Friday"
    saturday = "Saturday"
    sunday = "Sunday"


WEEKDAY_NAMES = {item.value for item in Weekday}


class AlarmCreateRequest(CamelModel):
    user_id: int
    time: str = Field(pattern=TIME_PATTERN)
    days: list[Weekday] = Field(default_factory=list)
    message: Optional[str] = Field(default=None, max_length=255)
    is_active: bool = True


class AlarmUpdateRequest(CamelModel):
    time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    days: Optional[list[Weekday]] = None
    message: Optional[str] = Field(default=None, max_length=255)
    is_active: Optional[bool] = None


class AlarmItem(CamelModel):
    id: int
    user_id: int
    time: str
    days: list[Weekday]
    message: Optional[str] = None
    is_active: bool
    created_at: datetime


class AlarmDeleteResponse(CamelModel):
    message: str


def _dump_days(days: list[Weekday]) -> str:
    # Keep week order and drop repeats.
    ordered = [item.value for item in Weekday if item in set(days)]
    return json.dumps(ordered)


def _to_item(row: WorkoutAlarm) -> AlarmItem:
    try:
        days = json.loads(row.days_json or "[]")
    except json.JSONDecodeError:
        days = []
    return AlarmItem(
        id=row.id,
        user_id=row.user_id,
        time=row.time,
        days=[Weekday(item) for item in days if item in WEEKDAY_NAMES],
        message=row.message,
        is_active=row.is_active,
        created_at=row.created_at,
    )


def _get_alarm_or_404(db: Session, alarm_id: int) -> WorkoutAlarm:
    row = db.query(WorkoutAlarm).filter(WorkoutAlarm.id == alarm_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Alarm not found")
    return row


@router.post("", response_model=AlarmItem, status_code=status.HTTP_201_CREATED)
@limiter.limit(CREATE_RATE_LIMIT)
def create_alarm(request: Request, payload: AlarmCreateRequest, db: Session = Depends(get_db)) -> AlarmItem:
    get_user_or_404(db, payload.user_id)
    row = WorkoutAlarm(
        user_id=payload.user_id,
        time=payload.time,
        days_json=_dump_days(payload.days),
        message=(payload.message or "").strip() or None,
        is_active=payload.is_active,
        created_at=utc_now(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return _to_item(row)


@router.get("/user/{user_id}", response_model=list[AlarmItem])
def list_alarms(user_id: int, db: Session = Depends(get_db)) -> list[AlarmItem]:
    get_user_or_404(db, user_id)
    rows = (
        db.query(WorkoutAlarm)
        .filter(WorkoutAlarm.user_id == user_id)
        .order_by(WorkoutAlarm.time.asc(), WorkoutAlarm.id.asc())
        .all()
    )
    return [_to_item(row) for row in rows]


@router.patch("/{alarm_id}", response_model=AlarmItem)
def update_alarm(alarm_id: int, payload: AlarmUpdateRequest, db: Session = Depends(get_db)) -> AlarmItem:
    row = _get_alarm_or_404(db, alarm_id)
    if payload.time is not None:
        row.time = payload.time
    if payload.days is not None:
        row.days_json = _dump_days(payload.days)
    if payload.message is not None:
        row.message = payload.message.strip() or None
    if payload.is_active is not None:
        row.is_active = payload.is_active
    db.commit()
    db.refresh(row)
    return _to_item(row)


@router.delete("/{alarm_id}", response_model=AlarmDeleteResponse)
def delete_alarm(alarm_id: int, db: Session = Depends(get_db)) -> AlarmDeleteResponse:
    row = _get_alarm_or_404(db, alarm_id)
    db.delete(row)
    db.commit()
    return AlarmDeleteResponse(message="Alarm deleted successfully")
