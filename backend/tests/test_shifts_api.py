from datetime import date, timedelta


def _shift_payload(**overrides):
    payload = {
        "title": "Cardiology Skills",
        "date": (date.today() + timedelta(days=5)).isoformat(),
        "start_time": "08:00",
        "end_time": "12:00",
        "location": "Sim Lab A",
        "min_instructors": 1,
        "max_instructors": 1,
    }
    payload.update(overrides)
    return payload


def _create_shift(client, headers, **overrides):
    response = client.post("/api/shifts", json=_shift_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["shifts"][0]


def test_open_shift_flow_end_to_end(client, make_user, auth_headers):
    admin = make_user("admin")
    first = make_user("instructor")
    second = make_user("instructor")
    admin_headers = auth_headers(admin)

    shift = _create_shift(client, admin_headers)
    assert shift["confirmed_count"] == 0
    assert shift["remaining_slots"] == 1

    first_signup = client.post(f"/api/shifts/{shift['id']}/signup", json={}, headers=auth_headers(first))
    assert first_signup.status_code == 201
    assert first_signup.json()["status"] == "pending"

    second_signup = client.post(f"/api/shifts/{shift['id']}/signup", headers=auth_headers(second))
    assert second_signup.status_code == 201

    duplicate = client.post(f"/api/shifts/{shift['id']}/signup", json={}, headers=auth_headers(first))
    assert duplicate.status_code == 409
    assert duplicate.json()["details"]["reason"] == "duplicate_signup"

    pending = client.get("/api/signups/pending", headers=admin_headers)
    assert pending.status_code == 200
    assert {item["id"] for item in pending.json()} == {first_signup.json()["id"], second_signup.json()["id"]}
    assert pending.json()[0]["shift"]["id"] == shift["id"]

    confirm = client.post(
        f"/api/shifts/{shift['id']}/signup/{first_signup.json()['id']}",
        json={"action": "confirm"},
        headers=admin_headers,
    )
    assert confirm.status_code == 200
    assert confirm.json()["status"] == "confirmed"

    over_capacity = client.post(
        f"/api/shifts/{shift['id']}/signup/{second_signup.json()['id']}",
        json={"action": "confirm"},
        headers=admin_headers,
    )
    assert over_capacity.status_code == 409
    assert over_capacity.json()["details"]["reason"] == "capacity_exceeded"

    detail = client.get(f"/api/shifts/{shift['id']}", headers=auth_headers(first))
    assert detail.status_code == 200
    body = detail.json()
    assert body["is_filled"] is True
    assert body["confirmed_count"] == 1
    assert body["user_signup"]["status"] == "confirmed"
    assert len(body["signups"]) == 2

    withdraw = client.delete(f"/api/shifts/{shift['id']}/signup", headers=auth_headers(first))
    assert withdraw.status_code == 200
    assert withdraw.json()["status"] == "withdrawn"

    listing = client.get("/api/shifts", headers=auth_headers(second))
    assert listing.status_code == 200
    assert listing.json()[0]["is_filled"] is False
    assert listing.json()[0]["user_signup"]["status"] == "pending"


def test_signup_window_and_role_checks(client, make_user, auth_headers):
    admin = make_user("admin")
    instructor = make_user("instructor")
    shift = _create_shift(client, auth_headers(admin), max_instructors=2)

    partial = client.post(
        f"/api/shifts/{shift['id']}/signup",
        json={"start_time": "10:00", "notes": "Clinical until 10"},
        headers=auth_headers(instructor),
    )
    assert partial.status_code == 201
    assert partial.json()["is_partial"] is True
    assert partial.json()["signup_start_time"] == "10:00:00"

    outside = client.post(
        f"/api/shifts/{shift['id']}/signup",
        json={"end_time": "13:00"},
        headers=auth_headers(make_user("instructor")),
    )
    assert outside.status_code == 422
    assert outside.json()["details"]["field"] == "end_time"

    guest = client.post(f"/api/shifts/{shift['id']}/signup", json={}, headers=auth_headers(make_user("guest")))
    assert guest.status_code == 403
    assert guest.json()["details"]["reason"] == "insufficient_role"

    forbidden_create = client.post("/api/shifts", json=_shift_payload(), headers=auth_headers(instructor))
    assert forbidden_create.status_code == 403

    unknown = client.post("/api/shifts/missing/signup", json={}, headers=auth_headers(instructor))
    assert unknown.status_code == 404

    unauthenticated = client.get("/api/shifts")
    assert unauthenticated.status_code in {401, 403}


def test_create_shift_validation(client, make_user, auth_headers):
    headers = auth_headers(make_user("admin"))

    reversed_window = client.post("/api/shifts", json=_shift_payload(start_time="12:00", end_time="08:00"), headers=headers)
    assert reversed_window.status_code == 422

    bad_capacity = client.post("/api/shifts", json=_shift_payload(min_instructors=3, max_instructors=2), headers=headers)
    assert bad_capacity.status_code == 422

    blank_title = client.post("/api/shifts", json=_shift_payload(title="   "), headers=headers)
    assert blank_title.status_code == 422

    start = date.today() + timedelta(days=1)
    series = client.post(
        "/api/shifts",
        json=_shift_payload(
            date=start.isoformat(),
            repeat="biweekly",
            repeat_until=(start + timedelta(days=28)).isoformat(),
        ),
        headers=headers,
    )
    assert series.status_code == 201
    assert series.json()["count"] == 3


def test_update_and_cancel_shift(client, make_user, auth_headers):
    director = make_user("instructor", is_director=True)
    instructor = make_user("instructor")
    headers = auth_headers(director)
    shift = _create_shift(client, headers, max_instructors=2)

    signup = client.post(f"/api/shifts/{shift['id']}/signup", json={}, headers=auth_headers(instructor)).json()
    client.post(f"/api/shifts/{shift['id']}/signup/{signup['id']}", json={"action": "confirm"}, headers=headers)

    blank = client.put(f"/api/shifts/{shift['id']}", json={"title": "   "}, headers=headers)
    assert blank.status_code == 422

    update = client.put(f"/api/shifts/{shift['id']}", json={"title": "  Renamed Lab ", "max_instructors": 3}, headers=headers)
    assert update.status_code == 200
    assert update.json()["title"] == "Renamed Lab"
    assert update.json()["remaining_slots"] == 2

    cancel = client.delete(f"/api/shifts/{shift['id']}", headers=headers)
    assert cancel.status_code == 200
    assert cancel.json()["shift"]["is_cancelled"] is True
    assert cancel.json()["affected_instructor_ids"] == [instructor.id]

    notifications = client.get("/api/notifications", params={"category": "shift_cancelled"}, headers=auth_headers(instructor))
    assert notifications.status_code == 200
    assert len(notifications.json()) == 1
    assert notifications.json()[0]["reference_id"] == shift["id"]

    edit_cancelled = client.put(f"/api/shifts/{shift['id']}", json={"title": "Again"}, headers=headers)
    assert edit_cancelled.status_code == 409
    assert edit_cancelled.json()["details"]["reason"] == "shift_cancelled"


def test_decline_with_reason_notifies_instructor(client, make_user, auth_headers):
    admin = make_user("admin")
    instructor = make_user("instructor")
    shift = _create_shift(client, auth_headers(admin))
    signup = client.post(f"/api/shifts/{shift['id']}/signup", json={}, headers=auth_headers(instructor)).json()

    invalid_action = client.post(
        f"/api/shifts/{shift['id']}/signup/{signup['id']}",
        json={"action": "approve"},
        headers=auth_headers(admin),
    )
    assert invalid_action.status_code == 422

    declined = client.post(
        f"/api/shifts/{shift['id']}/signup/{signup['id']}",
        json={"action": "decline", "reason": "Shift already staffed by faculty"},
        headers=auth_headers(admin),
    )
    assert declined.status_code == 200
    assert declined.json()["declined_reason"] == "Shift already staffed by faculty"

    inbox = client.get("/api/notifications", headers=auth_headers(instructor)).json()
    assert [item["category"] for item in inbox] == ["shift_declined"]
    assert "Shift already staffed by faculty" in inbox[0]["message"]
