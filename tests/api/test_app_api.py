from conftest import FakeScenario
from fitpulse.core.rate_limit import limiter


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/api").json()["status"] == "ok"


def test_create_endpoints_are_rate_limited(client, create_user) -> None:
    user = create_user()
    limiter.reset()
    limiter.enabled = True
    statuses = [
        client.post("/api/progress", json={"userId": user.id, "workoutsCompleted": 1}).status_code for _ in range(31)
    ]
    assert statuses[:30] == [201] * 30
    assert statuses[30] == 429
    assert "Too many requests" in client.post("/api/progress", json={"userId": user.id}).json()["detail"]


def test_ai_endpoints_are_rate_limited(client, override_llm) -> None:
    override_llm(FakeScenario.OK)
    limiter.reset()
    limiter.enabled = True
    statuses = [client.post("/api/calories/analyze", json={"foodName": "rice"}).status_code for _ in range(21)]
    assert statuses[:20] == [200] * 20
    assert statuses[20] == 429
