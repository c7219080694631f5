def test_alarm_lifecycle(client, create_user) -> None:
    user = create_user()
    created = client.post(
        "/api/alarms",
        json={"userId": user.id, "time": "18:30", "days": ["Friday", "Monday", "Monday"], "message": "Leg day"},
    )
    assert created.status_code == 201
    alarm = created.json()
    assert alarm["days"] == ["Monday", "Friday"]
    assert alarm["isActive"] is True

    early = client.post("/api/alarms", json={"userId": user.id, "time": "06:15", "days": ["Saturday"]})
    assert early.status_code == 201

    listed = client.get(f"/api/alarms/user/{user.id}").json()
    assert [item["time"] for item in listed] == ["06:15", "18:30"]

    updated = client.patch(f"/api/alarms/{alarm['id']}", json={"isActive": False, "time": "19:00"})
    assert updated.status_code == 200
    assert updated.json()["isActive"] is False
    assert updated.json()["time"] == "19:00"
    assert updated.json()["message"] == "Leg day"

    deleted = client.delete(f"/api/alarms/{alarm['id']}")
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Alarm deleted successfully"}
    assert client.delete(f"/api/alarms/{alarm['id']}").status_code == 404
    assert len(client.get(f"/api/alarms/user/{user.id}").json()) == 1


def test_alarm_validation(client, create_user) -> None:
    user = create_user()
    assert client.post("/api/alarms", json={"userId": user.id, "time": "25:00"}).status_code == 422
    assert client.post("/api/alarms", json={"userId": user.id, "time": "7:00"}).status_code == 422
    assert client.post("/api/alarms", json={"userId": user.id, "time": "07:00", "days": ["Funday"]}).status_code == 422
    assert client.patch("/api/alarms/999999", json={"isActive": False}).status_code == 404
