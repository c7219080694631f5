import json
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Optional
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from fitpulse.core.rate_limit import limiter
from fitpulse.core.readiness import compute_readiness_score
from fitpulse.core.security import get_password_hash
from fitpulse.db.models import DailyCheckin, User
from fitpulse.db.session import SessionLocal, configure_database, create_tables
from fitpulse.services.llm import LLMNotConfiguredError, LLMRequestError, get_llm_client, parse_llm_json


class FakeScenario(str, Enum):
    OK = "OK"
    MALFORMED_JSON = "MALFORMED_JSON"
    MISSING_FIELDS = "MISSING_FIELDS"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    NOT_CONFIGURED = "NOT_CONFIGURED"


class FakeLLMClient:
    def __init__(self, scenario: FakeScenario, fixture_dir: Path) -> None:
        self.scenario = scenario
        self.fixture_dir = fixture_dir
        self.calls: list[dict[str, str]] = []

    def _load_json(self, name: str) -> dict:
        raw = (self.fixture_dir / f"{name}.json").read_text(encoding="utf-8")
        return json.loads(raw)

    def generate_json(self, prompt: str, system_instruction: str = "", task_type: str = "reasoning") -> dict:
        self.calls.append({"prompt": prompt, "system_instruction": system_instruction, "task_type": task_type})
        if self.scenario == FakeScenario.NOT_CONFIGURED:
            raise LLMNotConfiguredError("AI provider is not configured")
        if self.scenario == FakeScenario.UPSTREAM_ERROR:
            raise LLMRequestError(provider="openai", model="gpt-4o-mini", message="simulated outage", status_code=500)
        if self.scenario == FakeScenario.MALFORMED_JSON:
            raw = (self.fixture_dir / "MALFORMED_JSON.txt").read_text(encoding="utf-8")
            return parse_llm_json(raw)
        if self.scenario == FakeScenario.MISSING_FIELDS:
            return self._load_json("MISSING_FIELDS")

        if task_type == "chat":
            return self._load_json("OK_CHAT_REPLY")
        if task_type == "food_analysis":
            return self._load_json("OK_FOOD_ANALYSIS")
        if "nutritionist" in system_instruction.lower():
            return self._load_json("OK_MEAL_PLAN")
        return self._load_json("OK_WORKOUT_PLAN")


@pytest.fixture(scope="session")
def fixture_dir() -> Path:
    return Path(__file__).resolve().parent / "fixtures" / "llm"


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    db_path = tmp_path_factory.mktemp("db") / "fitpulse_test.db"
    configure_database(str(db_path))
    create_tables()
    return db_path


@pytest.fixture(scope="session")
def app(test_db_path: Path):
    from fitpulse.main import app as fastapi_app

    return fastapi_app


@pytest.fixture(autouse=True)
def _no_rate_limit():
    limiter.enabled = False
    yield
    limiter.enabled = False
    limiter.reset()


@pytest.fixture
def client(app):
    app.dependency_overrides = {}
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides = {}


@pytest.fixture
def db_session(test_db_path: Path):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def create_user(db_session: Session) -> Callable[..., User]:
    def _create_user(
        weight: Optional[float] = 80.0,
        calorie_target: Optional[int] = 2400,
        with_profile: bool = True,
    ) -> User:
        user = User(
            username=f"user_{uuid4().hex[:10]}",
            password_hash=get_password_hash("StrongPass123"),
        )
        if with_profile:
            user.age = 32
            user.weight = weight
            user.height = 178.0
            user.fitness_level = "intermediate"
            user.goals_json = json.dumps(["build strength", "improve endurance"])
            user.workout_days = 3
            user.calorie_target = calorie_target
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def seed_checkins(db_session: Session):
    """Insert one check-in per day for the given day offsets (0 is today, UTC)."""

    def _seed(user_id: int, days_ago: list[int], ratings: tuple[int, int, int, int, int] = (8, 8, 3, 8, 3)):
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        sleep, energy, soreness, mood, stress = ratings
        score = compute_readiness_score(sleep, energy, soreness, mood, stress)
        rows = []
        for offset in days_ago:
            taken_at = now - timedelta(days=offset)
            rows.append(
                DailyCheckin(
                    user_id=user_id,
                    sleep_quality=sleep,
                    energy_level=energy,
                    soreness=soreness,
                    mood=mood,
                    stress=stress,
                    readiness_score=score,
                    checkin_date=taken_at,
                    checkin_day=taken_at.date(),
                )
            )
        db_session.add_all(rows)
        db_session.commit()
        return rows

    return _seed


@pytest.fixture
def fake_llm_factory(fixture_dir: Path) -> Callable[[FakeScenario], FakeLLMClient]:
    def _factory(scenario: FakeScenario) -> FakeLLMClient:
        return FakeLLMClient(scenario=scenario, fixture_dir=fixture_dir)

    return _factory


@pytest.fixture
def override_llm(app, fake_llm_factory):
    def _override(scenario: FakeScenario) -> FakeLLMClient:
        fake = fake_llm_factory(scenario)
        app.dependency_overrides[get_llm_client] = lambda: fake
        return fake

    return _override
