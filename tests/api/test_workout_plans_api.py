import json

from conftest import FakeScenario


def _current_plan() -> dict:
    return {
        "overview": "Client supplied plan",
        "weeklySchedule": [
            {
                "day": "Tuesday",
                "workoutType": "Upper Body",
                "duration": 40,
                "intensity": "Normal",
                "exercises": [{"name": "Bench Press", "sets": 4, "reps": 8}],
            }
        ],
        "tips": [],
    }


def test_generate_plan_uses_profile(client, create_user, override_llm) -> None:
    user = create_user()
    fake = override_llm(FakeScenario.OK)
    response = client.post("/api/workout-plans/generate", json={"userId": user.id, "equipment": ["dumbbells"]})
    assert response.status_code == 200
    body = response.json()
    assert body["userId"] == user.id
    assert body["adjustedForReadiness"] is None
    schedule = body["plan"]["weeklySchedule"]
    assert [day["day"] for day in schedule] == ["Monday", "Wednesday", "Friday"]
    assert schedule[1]["intensity"] == "Normal"

    prompt = json.loads(fake.calls[0]["prompt"])
    assert "32-year-old" in prompt["task"]
    assert prompt["equipment"] == "dumbbells"

    stored = client.get(f"/api/workout-plans/user/{user.id}")
    assert stored.status_code == 200
    assert stored.json()["id"] == body["id"]


def test_generate_plan_missing_inputs_422(client, create_user, override_llm) -> None:
    user = create_user(with_profile=False)
    override_llm(FakeScenario.OK)
    response = client.post("/api/workout-plans/generate", json={"userId": user.id, "age": 40})
    assert response.status_code == 422
    assert "fitness_level" in response.json()["detail"]


def test_generate_plan_llm_failures(client, create_user, override_llm) -> None:
    user = create_user()
    override_llm(FakeScenario.NOT_CONFIGURED)
    assert client.post("/api/workout-plans/generate", json={"userId": user.id}).status_code == 503
    override_llm(FakeScenario.UPSTREAM_ERROR)
    assert client.post("/api/workout-plans/generate", json={"userId": user.id}).status_code == 502
    override_llm(FakeScenario.MALFORMED_JSON)
    assert client.post("/api/workout-plans/generate", json={"userId": user.id}).status_code == 502
    override_llm(FakeScenario.MISSING_FIELDS)
    assert client.post("/api/workout-plans/generate", json={"userId": user.id}).status_code == 502
    assert client.get(f"/api/workout-plans/user/{user.id}").status_code == 404


def test_adjust_with_explicit_score_and_plan(client, create_user) -> None:
    user = create_user()
    response = client.post(
        "/api/workout-plans/adjust",
        json={"userId": user.id, "readinessScore": 50, "currentPlan": _current_plan()},
    )
    assert response.status_code == 200
    body = response.json()
    day = body["plan"]["weeklySchedule"][0]
    assert day["intensity"] == "Low"
    assert day["duration"] == 28
    assert day["exercises"][0]["sets"] == 3
    assert day["exercises"][0]["reps"] == 6
    assert body["adjustedForReadiness"] == 50


def test_adjust_uses_todays_checkin_and_stored_plan(client, create_user, override_llm, seed_checkins) -> None:
    user = create_user()
    override_llm(FakeScenario.OK)
    assert client.post("/api/workout-plans/generate", json={"userId": user.id}).status_code == 200
    # Ratings (10, 10, 1, 10, 1) give readiness 100.
    seed_checkins(user.id, [0], ratings=(10, 10, 1, 10, 1))

    response = client.post("/api/workout-plans/adjust", json={"userId": user.id})
    assert response.status_code == 200
    schedule = response.json()["plan"]["weeklySchedule"]
    assert [day["duration"] for day in schedule] == [60, 36, 90]
    assert {day["intensity"] for day in schedule} == {"High"}
    # Text reps are carried over.
    assert schedule[1]["exercises"][0]["reps"] == "30 seconds"
    assert response.json()["adjustedForReadiness"] == 100


def test_adjust_mid_range_keeps_plan(client, create_user) -> None:
    user = create_user()
    response = client.post(
        "/api/workout-plans/adjust",
        json={"userId": user.id, "readinessScore": 75, "currentPlan": _current_plan()},
    )
    assert response.status_code == 200
    assert response.json()["plan"]["weeklySchedule"][0]["duration"] == 40
    assert response.json()["plan"]["weeklySchedule"][0]["intensity"] == "Normal"


def test_adjust_without_score_or_checkin_404(client, create_user) -> None:
    user = create_user()
    response = client.post("/api/workout-plans/adjust", json={"userId": user.id, "currentPlan": _current_plan()})
    assert response.status_code == 404


def test_adjust_without_plan_404(client, create_user) -> None:
    user = create_user()
    response = client.post("/api/workout-plans/adjust", json={"userId": user.id, "readinessScore": 40})
    assert response.status_code == 404
    assert response.json()["detail"] == "No workout plan found"


def test_adjust_score_out_of_range_422(client, create_user) -> None:
    user = create_user()
    response = client.post(
        "/api/workout-plans/adjust",
        json={"userId": user.id, "readinessScore": 101, "currentPlan": _current_plan()},
    )
    assert response.status_code == 422


def test_adjust_rejects_non_finite_numbers(client, create_user) -> None:
    user = create_user()
    for token in ("Infinity", "NaN", "-Infinity"):
        body = (
            f'{{"userId": {user.id}, "readinessScore": 40, "currentPlan": {{"weeklySchedule": '
            f'[{{"day": "Monday", "duration": {token}, "exercises": []}}]}}}}'
        )
        response = client.post(
            "/api/workout-plans/adjust", content=body, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 422
    assert client.get(f"/api/workout-plans/user/{user.id}").status_code == 404
