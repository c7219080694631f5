def _progress_by_type(client, user_id: int) -> dict:
    response = client.get(f"/api/achievements/progress/{user_id}")
    assert response.status_code == 200
    return {item["achievementType"]: item for item in response.json()}


def test_progress_for_new_user(client, create_user) -> None:
    user = create_user()
    progress = _progress_by_type(client, user.id)
    assert len(progress) == 7
    assert all(item["progress"] == 0 for key, item in progress.items() if key != "strength_gains")
    # No weight records yet: ratio 1.0 of the 1.5 target.
    assert progress["strength_gains"]["progress"] == 66.7
    assert not any(item["earned"] for item in progress.values())


def test_evaluate_awards_met_achievements(client, create_user, seed_checkins) -> None:
    user = create_user()
    seed_checkins(user.id, list(range(7)), ratings=(9, 9, 2, 9, 2))
    client.post("/api/progress", json={"userId": user.id, "workoutsCompleted": 12})
    for value in (100, 120, 155):
        client.post(
            "/api/personal-records",
            json={"userId": user.id, "exerciseName": "Deadlift", "recordType": "weight", "value": value},
        )

    awarded = client.post(f"/api/achievements/evaluate/{user.id}")
    assert awarded.status_code == 200
    assert {item["achievementType"] for item in awarded.json()} == {
        "first_workout",
        "week_streak",
        "perfect_week",
        "strength_gains",
    }

    earned = client.get(f"/api/achievements/user/{user.id}").json()
    assert len(earned) == 4
    assert earned[0]["name"]

    # Nothing new the second time.
    assert client.post(f"/api/achievements/evaluate/{user.id}").json() == []

    progress = _progress_by_type(client, user.id)
    assert progress["week_streak"]["earned"] is True
    assert progress["week_streak"]["progress"] == 100
    assert progress["consistency_king"]["progress"] == 24.0


def test_manual_award(client, create_user) -> None:
    user = create_user()
    response = client.post("/api/achievements", json={"userId": user.id, "achievementType": "century_club"})
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Century Club"
    assert body["category"] == "milestone"

    again = client.post("/api/achievements", json={"userId": user.id, "achievementType": "century_club"})
    assert again.status_code == 409

    unknown = client.post("/api/achievements", json={"userId": user.id, "achievementType": "early_bird"})
    assert unknown.status_code == 422


def test_unknown_user_404(client) -> None:
    assert client.get("/api/achievements/user/999999").status_code == 404
    assert client.post("/api/achievements/evaluate/999999").status_code == 404
