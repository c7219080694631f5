from datetime import datetime
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import Field
from sqlalchemy.orm import Session

from fitpulse.api.users import get_user_or_404
from fitpulse.core.rate_limit import CREATE_RATE_LIMIT, limiter
from fitpulse.core.schema import CamelModel
from fitpulse.db.models import PersonalRecord
from fitpulse.db.session import get_db
from fitpulse.services.storage import utc_now

router = APIRouter(prefix="/api/personal-records", tags=["personal-records"])


class RecordType(str, Enum):
    weight = "weight"
    reps = "reps"
    time = "time"
    distance = "distance"


DEFAULT_UNITS: dict[RecordType, str] = {
    RecordType.weight: "lbs",
    RecordType.reps: "reps",
    RecordType.time: "min",
    RecordType.distance: "miles",
}


class PersonalRecordCreateRequest(CamelModel):
    user_id: int
    exercise_name: str = Field(min_length=1, max_length=128)
    record_type: RecordType
    value: float = Field(gt=0, le=100000)
    unit: Optional[str] = Field(default=None, max_length=16)
    notes: Optional[str] = Field(default=None, max_length=1000)


class PersonalRecordItem(CamelModel):
    id: int
    user_id: int
    exercise_name: str
    record_type: RecordType
    value: float
    unit: str
    notes: Optional[str] = None
    created_at: datetime


def records_for_user(db: Session, user_id: int) -> list[PersonalRecord]:
    return (
        db.query(PersonalRecord)
        .filter(PersonalRecord.user_id == user_id)
        .order_by(PersonalRecord.created_at.asc(), PersonalRecord.id.asc())
        .all()
    )


@router.post("", response_model=PersonalRecordItem, status_code=status.HTTP_201_CREATED)
@limiter.limit(CREATE_RATE_LIMIT)
def create_record(
    request: Request, payload: PersonalRecordCreateRequest, db: Session = Depends(get_db)
) -> PersonalRecordItem:
    get_user_or_404(db, payload.user_id)
    row = PersonalRecord(
        user_id=payload.user_id,
        exercise_name=payload.exercise_name.strip(),
        record_type=payload.record_type.value,
        value=payload.value,
        unit=(payload.unit or "").strip() or DEFAULT_UNITS[payload.record_type],
        notes=(payload.notes or "").strip() or None,
        created_at=utc_now(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return PersonalRecordItem.model_validate(row)


@router.get("/user/{user_id}", response_model=list[PersonalRecordItem])
def list_records(user_id: int, db: Session = Depends(get_db)) -> list[PersonalRecordItem]:
    get_user_or_404(db, user_id)
    rows = records_for_user(db, user_id)
    return [PersonalRecordItem.model_validate(row) for row in reversed(rows)]


@router.get("/latest/{user_id}", response_model=list[PersonalRecordItem])
def latest_records(user_id: int, db: Session = Depends(get_db)) -> list[PersonalRecordItem]:
    """Most recent record for every exercise and record type."""
    get_user_or_404(db, user_id)
    latest: dict[tuple[str, str], PersonalRecord] = {}
    for row in records_for_user(db, user_id):
        latest[(row.exercise_name.lower(), row.record_type)] = row
    return [PersonalRecordItem.model_validate(row) for row in latest.values()]
