from datetime import datetime, timedelta, timezone

import pytest

from fitpulse.core.plans import WorkoutPlanDoc
from fitpulse.services.storage import DuplicateCheckinError, SqlStore, load_plan_doc

RATINGS = {"sleep_quality": 7, "energy_level": 7, "soreness": 3, "mood": 7, "stress": 3}


def test_second_checkin_same_utc_day_is_rejected(db_session, create_user) -> None:
    user = create_user()
    store = SqlStore(db_session)
    morning = datetime(2024, 5, 2, 6, 0, tzinfo=timezone.utc)
    store.add_checkin(user.id, RATINGS, readiness_score=70, checkin_date=morning)

    # 20:00 at UTC-3 on the 1st is 23:00 UTC on the 1st, a different day.
    store.add_checkin(
        user.id,
        RATINGS,
        readiness_score=70,
        checkin_date=datetime(2024, 5, 1, 20, 0, tzinfo=timezone(timedelta(hours=-3))),
    )
    with pytest.raises(DuplicateCheckinError):
        store.add_checkin(user.id, RATINGS, readiness_score=70, checkin_date=morning + timedelta(hours=10))

    days = [row.checkin_day.isoformat() for row in store.list_checkins(user.id)]
    assert days == ["2024-05-02", "2024-05-01"]


def test_save_workout_plan_upserts(db_session, create_user) -> None:
    user = create_user()
    store = SqlStore(db_session)
    first = store.save_workout_plan(user.id, WorkoutPlanDoc.model_validate({"overview": "v1"}))
    second = store.save_workout_plan(
        user.id, WorkoutPlanDoc.model_validate({"overview": "v2"}), adjusted_for_readiness=50
    )
    assert first.id == second.id
    assert second.adjusted_for_readiness == 50
    assert load_plan_doc(store.get_workout_plan(user.id)).overview == "v2"
