import json
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import Field
from sqlalchemy.orm import Session

from fitpulse.core.rate_limit import CREATE_RATE_LIMIT, limiter
from fitpulse.core.schema import CamelModel
from fitpulse.core.security import get_password_hash
from fitpulse.db.models import User
from fitpulse.db.session import get_db

router = APIRouter(prefix="/api/users", tags=["users"])


class UserCreateRequest(CamelModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=8, max_length=128)
    age: Optional[int] = Field(default=None, ge=13, le=120)
    weight: Optional[float] = Field(default=None, gt=0, le=500)
    height: Optional[float] = Field(default=None, gt=0, le=300)
    fitness_level: Optional[str] = Field(default=None, max_length=32)
    goals: list[str] = Field(default_factory=list)
    workout_days: Optional[int] = Field(default=None, ge=1, le=7)
    calorie_target: Optional[int] = Field(default=None, ge=800, le=10000)


class UserUpdateRequest(CamelModel):
    age: Optional[int] = Field(default=None, ge=13, le=120)
    weight: Optional[float] = Field(default=None, gt=0, le=500)
    height: Optional[float] = Field(default=None, gt=0, le=300)
    fitness_level: Optional[str] = Field(default=None, max_length=32)
    goals: Optional[list[str]] = None
    workout_days: Optional[int] = Field(default=None, ge=1, le=7)
    calorie_target: Optional[int] = Field(default=None, ge=800, le=10000)


class UserItem(CamelModel):
    id: int
    username: str
    age: Optional[int] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    fitness_level: Optional[str] = None
    goals: list[str] = Field(default_factory=list)
    workout_days: Optional[int] = None
    calorie_target: Optional[int] = None
    created_at: datetime


def user_goals(row: User) -> list[str]:
    if not row.goals_json:
        return []
    try:
        loaded = json.loads(row.goals_json)
    except json.JSONDecodeError:
        return []
    return [str(item) for item in loaded] if isinstance(loaded, list) else []


def _to_item(row: User) -> UserItem:
    return UserItem(
        id=row.id,
        username=row.username,
        age=row.age,
        weight=row.weight,
        height=row.height,
        fitness_level=row.fitness_level,
        goals=user_goals(row),
        workout_days=row.workout_days,
        calorie_target=row.calorie_target,
        created_at=row.created_at,
    )


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("", response_model=UserItem, status_code=status.HTTP_201_CREATED)
@limiter.limit(CREATE_RATE_LIMIT)
def create_user(request: Request, payload: UserCreateRequest, db: Session = Depends(get_db)) -> UserItem:
    username = payload.username.strip().lower()
    existing = db.query(User).filter(User.username == username).first()
    if existing:
        raise HTTPException(status_code=409, detail="Username already taken")

    user = User(
        username=username,
        password_hash=get_password_hash(payload.password),
        age=payload.age,
        weight=payload.weight,
        height=payload.height,
        fitness_level=payload.fitness_level,
        goals_json=json.dumps([goal.strip() for goal in payload.goals if goal.strip()]),
        workout_days=payload.workout_days,
        calorie_target=payload.calorie_target,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _to_item(user)


@router.get("/{user_id}", response_model=UserItem)
def get_user(user_id: int, db: Session = Depends(get_db)) -> UserItem:
    return _to_item(get_user_or_404(db, user_id))


@router.patch("/{user_id}", response_model=UserItem)
def update_user(user_id: int, payload: UserUpdateRequest, db: Session = Depends(get_db)) -> UserItem:
    user = get_user_or_404(db, user_id)
    updates = payload.model_dump(exclude_unset=True)
    goals = updates.pop("goals", None)
    if goals is not None:
        user.goals_json = json.dumps([goal.strip() for goal in goals if goal.strip()])
    for field, value in updates.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return _to_item(user)
