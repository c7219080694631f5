import json
from datetime import date, datetime, timezone
from typing import Optional, Protocol

from fastapi import Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fitpulse.core.plans import WorkoutPlanDoc
from fitpulse.core.streaks import utc_day
from fitpulse.db.models import DailyCheckin, WorkoutPlan
from fitpulse.db.session import get_db


class DuplicateCheckinError(RuntimeError):
    def __init__(self, user_id: int, day: date):
        super().__init__(f"User {user_id} already checked in on {day.isoformat()}")
        self.user_id = user_id
        self.day = day


def utc_now() -> datetime:
    # SQLite DateTime columns hold naive values; everything stored is UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CheckinStore(Protocol):
    def add_checkin(
        self,
        user_id: int,
        ratings: dict[str, int],
        readiness_score: int,
        notes: Optional[str] = None,
        checkin_date: Optional[datetime] = None,
    ) -> DailyCheckin:
        ...

    def get_checkin_for_day(self, user_id: int, day: date) -> Optional[DailyCheckin]:
        ...

    def list_checkins(self, user_id: int, limit: Optional[int] = None) -> list[DailyCheckin]:
        ...


class PlanStore(Protocol):
    def get_workout_plan(self, user_id: int) -> Optional[WorkoutPlan]:
        ...

    def save_workout_plan(
        self, user_id: int, plan: WorkoutPlanDoc, adjusted_for_readiness: Optional[int] = None
    ) -> WorkoutPlan:
        ...


def load_plan_doc(row: WorkoutPlan) -> WorkoutPlanDoc:
    try:
        loaded = json.loads(row.plan_json or "{}")
    except json.JSONDecodeError:
        loaded = {}
    if not isinstance(loaded, dict):
        loaded = {}
    return WorkoutPlanDoc.model_validate(loaded)


def dump_plan_doc(plan: WorkoutPlanDoc) -> str:
    return json.dumps(plan.model_dump(mode="json", by_alias=True), separators=(",", ":"))


class SqlStore:
    """Check-in and workout plan persistence over a request-scoped session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def add_checkin(
        self,
        user_id: int,
        ratings: dict[str, int],
        readiness_score: int,
        notes: Optional[str] = None,
        checkin_date: Optional[datetime] = None,
    ) -> DailyCheckin:
        taken_at = checkin_date or utc_now()
        if taken_at.tzinfo is not None:
            taken_at = taken_at.astimezone(timezone.utc).replace(tzinfo=None)
        day = utc_day(taken_at)
        if self.get_checkin_for_day(user_id, day) is not None:
            raise DuplicateCheckinError(user_id, day)
        row = DailyCheckin(
            user_id=user_id,
            sleep_quality=ratings["sleep_quality"],
            energy_level=ratings["energy_level"],
            soreness=ratings["soreness"],
            mood=ratings["mood"],
            stress=ratings["stress"],
            readiness_score=readiness_score,
            notes=notes,
            checkin_date=taken_at,
            checkin_day=day,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Concurrent submission won the unique (user_id, checkin_day) race.
            self.db.rollback()
            raise DuplicateCheckinError(user_id, day) from exc
        self.db.refresh(row)
        return row

    def get_checkin_for_day(self, user_id: int, day: date) -> Optional[DailyCheckin]:
        return (
            self.db.query(DailyCheckin)
            .filter(DailyCheckin.user_id == user_id, DailyCheckin.checkin_day == day)
            .first()
        )

    def list_checkins(self, user_id: int, limit: Optional[int] = None) -> list[DailyCheckin]:
        query = (
            self.db.query(DailyCheckin)
            .filter(DailyCheckin.user_id == user_id)
            .order_by(DailyCheckin.checkin_date.desc(), DailyCheckin.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_workout_plan(self, user_id: int) -> Optional[WorkoutPlan]:
        return self.db.query(WorkoutPlan).filter(WorkoutPlan.user_id == user_id).first()

    def save_workout_plan(
        self, user_id: int, plan: WorkoutPlanDoc, adjusted_for_readiness: Optional[int] = None
    ) -> WorkoutPlan:
        row = self.get_workout_plan(user_id)
        if not row:
            row = WorkoutPlan(user_id=user_id, created_at=utc_now())
            self.db.add(row)
        row.plan_json = dump_plan_doc(plan)
        row.adjusted_for_readiness = adjusted_for_readiness
        row.updated_at = utc_now()
        self.db.commit()
        self.db.refresh(row)
        return row


def get_store(db: Session = Depends(get_db)) -> SqlStore:
    return SqlStore(db)
