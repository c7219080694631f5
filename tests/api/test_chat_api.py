import json

from conftest import FakeScenario


def test_chat_reply_is_stored(client, create_user, override_llm, seed_checkins) -> None:
    user = create_user()
    seed_checkins(user.id, [0], ratings=(4, 4, 8, 5, 8))
    fake = override_llm(FakeScenario.OK)

    response = client.post("/api/chat", json={"userId": user.id, "message": "Should I train hard today?"})
    assert response.status_code == 200
    body = response.json()
    assert body["reply"].startswith("Keep today's session light")
    assert body["safetyFlags"] == []

    call = fake.calls[0]
    assert call["task_type"] == "chat"
    context = json.loads(call["prompt"].split("User context:\n", 1)[1].split("\n\nUser message:", 1)[0])
    assert context["today_readiness"]["score"] == 38
    assert context["checkin_streak"] == 1

    history = client.get(f"/api/chat/user/{user.id}").json()
    assert [item["role"] for item in history] == ["user", "assistant"]
    assert history[0]["content"] == "Should I train hard today?"


def test_urgent_symptoms_skip_the_llm(client, create_user, override_llm) -> None:
    user = create_user()
    fake = override_llm(FakeScenario.OK)
    response = client.post("/api/chat", json={"userId": user.id, "message": "I get chest pain when I sprint"})
    assert response.status_code == 200
    body = response.json()
    assert body["safetyFlags"] == ["urgent_symptom_language"]
    assert "medical attention" in body["reply"]
    assert fake.calls == []


def test_injury_topic_adds_caution(client, create_user, override_llm) -> None:
    user = create_user()
    override_llm(FakeScenario.OK)
    response = client.post("/api/chat", json={"userId": user.id, "message": "My knee has some swelling, can I run?"})
    assert response.status_code == 200
    body = response.json()
    assert "clinician" in body["reply"]
    assert body["safetyFlags"] == ["injury_topic"]


def test_chat_history_limit_keeps_latest(client, create_user, override_llm) -> None:
    user = create_user()
    override_llm(FakeScenario.OK)
    for text in ("first question", "second question"):
        assert client.post("/api/chat", json={"userId": user.id, "message": text}).status_code == 200
    latest = client.get(f"/api/chat/user/{user.id}", params={"limit": 2}).json()
    assert [item["content"] for item in latest][0] == "second question"


def test_chat_llm_errors(client, create_user, override_llm) -> None:
    user = create_user()
    override_llm(FakeScenario.NOT_CONFIGURED)
    assert client.post("/api/chat", json={"userId": user.id, "message": "hi"}).status_code == 503
    override_llm(FakeScenario.UPSTREAM_ERROR)
    assert client.post("/api/chat", json={"userId": user.id, "message": "hi"}).status_code == 502
    override_llm(FakeScenario.MISSING_FIELDS)
    assert client.post("/api/chat", json={"userId": user.id, "message": "hi"}).status_code == 502
    assert client.get(f"/api/chat/user/{user.id}").json() == []


def test_blank_message_rejected(client, create_user) -> None:
    user = create_user()
    assert client.post("/api/chat", json={"userId": user.id, "message": "   "}).status_code == 422
    assert client.post("/api/chat", json={"userId": user.id, "message": ""}).status_code == 422


def test_context_streak_matches_streak_endpoint(client, create_user, override_llm, seed_checkins) -> None:
    user = create_user()
    seed_checkins(user.id, list(range(40)))
    fake = override_llm(FakeScenario.OK)

    assert client.post("/api/chat", json={"userId": user.id, "message": "How consistent have I been?"}).status_code == 200
    context = json.loads(fake.calls[0]["prompt"].split("User context:\n", 1)[1].split("\n\nUser message:", 1)[0])
    assert context["checkin_streak"] == 40
    assert client.get(f"/api/checkins/streak/{user.id}").json()["streak"] == 40
