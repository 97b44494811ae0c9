def _create_request(client, headers, lab_day_id, reason="Illness", **extra):
    payload = {"lab_day_id": lab_day_id, "reason": reason}
    payload.update(extra)
    return client.post("/api/substitute-requests", json=payload, headers=headers)


def test_substitute_request_review_flow(client, make_user, make_lab_day, auth_headers):
    requester = make_user("instructor")
    lead = make_user("lead_instructor")
    substitute = make_user("instructor")
    lab_day = make_lab_day(roles=[requester])

    created = _create_request(client, auth_headers(requester), lab_day.id, reason_details="Fever")
    assert created.status_code == 201, created.text
    request = created.json()
    assert request["status"] == "pending"
    assert request["lab_day"]["id"] == lab_day.id

    duplicate = _create_request(client, auth_headers(requester), lab_day.id)
    assert duplicate.status_code == 409
    assert duplicate.json()["details"]["reason"] == "pending_request_exists"

    lead_inbox = client.get("/api/notifications", headers=auth_headers(lead)).json()
    assert [item["category"] for item in lead_inbox] == ["substitute_request"]

    forbidden = client.put(
        f"/api/substitute-requests/{request['id']}",
        json={"action": "approve"},
        headers=auth_headers(requester),
    )
    assert forbidden.status_code == 403

    approved = client.put(
        f"/api/substitute-requests/{request['id']}",
        json={"action": "approve", "covered_by": substitute.id, "review_notes": "Thanks for covering"},
        headers=auth_headers(lead),
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["covered_by_id"] == substitute.id

    substitute_inbox = client.get("/api/notifications", headers=auth_headers(substitute)).json()
    assert [item["category"] for item in substitute_inbox] == ["lab_assignment"]

    again = client.put(
        f"/api/substitute-requests/{request['id']}",
        json={"action": "deny"},
        headers=auth_headers(lead),
    )
    assert again.status_code == 409
    assert again.json()["details"]["reason"] == "not_pending"


def test_deny_cancel_and_request_again(client, make_user, make_lab_day, auth_headers):
    requester = make_user("instructor")
    lead = make_user("lead_instructor")
    lab_day = make_lab_day(stations=[requester])
    headers = auth_headers(requester)

    first = _create_request(client, headers, lab_day.id).json()
    denied = client.put(
        f"/api/substitute-requests/{first['id']}",
        json={"action": "deny", "review_notes": "need 48h notice"},
        headers=auth_headers(lead),
    )
    assert denied.status_code == 200
    assert denied.json()["review_notes"] == "need 48h notice"

    inbox = client.get("/api/notifications", headers=headers).json()
    assert len(inbox) == 1
    assert "need 48h notice" in inbox[0]["message"]

    second = _create_request(client, headers, lab_day.id, reason="Personal").json()
    cancelled = client.put(f"/api/substitute-requests/{second['id']}", json={"action": "cancel"}, headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    third = _create_request(client, headers, lab_day.id, reason="Emergency")
    assert third.status_code == 201

    mine = client.get("/api/substitute-requests", headers=headers).json()
    assert {item["status"] for item in mine} == {"denied", "cancelled", "pending"}

    pending_only = client.get("/api/substitute-requests", params={"pending_only": "true"}, headers=auth_headers(lead))
    assert [item["id"] for item in pending_only.json()] == [third.json()["id"]]


def test_request_rules_for_assignment_and_deletion(client, make_user, make_lab_day, auth_headers):
    requester = make_user("instructor")
    outsider = make_user("instructor")
    admin = make_user("admin")
    lab_day = make_lab_day(roles=[requester])

    not_assigned = _create_request(client, auth_headers(outsider), lab_day.id)
    assert not_assigned.status_code == 403
    assert not_assigned.json()["details"]["reason"] == "not_assigned"

    missing_day = _create_request(client, auth_headers(requester), "missing-day")
    assert missing_day.status_code == 404

    bad_reason = _create_request(client, auth_headers(requester), lab_day.id, reason="Vacation")
    assert bad_reason.status_code == 422

    request = _create_request(client, auth_headers(requester), lab_day.id).json()
    not_owner = client.delete(f"/api/substitute-requests/{request['id']}", headers=auth_headers(outsider))
    assert not_owner.status_code == 403

    deleted = client.delete(f"/api/substitute-requests/{request['id']}", headers=auth_headers(admin))
    assert deleted.status_code == 204

    gone = client.delete(f"/api/substitute-requests/{request['id']}", headers=auth_headers(requester))
    assert gone.status_code == 404


def test_approval_without_substitute_broadcasts_coverage_need(client, make_user, make_lab_day, auth_headers):
    requester = make_user("instructor")
    colleague = make_user("volunteer_instructor")
    admin = make_user("admin")
    lab_day = make_lab_day(roles=[requester])
    request = _create_request(client, auth_headers(requester), lab_day.id).json()

    approved = client.put(
        f"/api/substitute-requests/{request['id']}",
        json={"action": "approve"},
        headers=auth_headers(admin),
    )
    assert approved.status_code == 200
    assert approved.json()["covered_by_id"] is None

    colleague_inbox = client.get("/api/notifications", headers=auth_headers(colleague)).json()
    assert [item["category"] for item in colleague_inbox] == ["shift_available"]

    requester_inbox = client.get("/api/notifications", headers=auth_headers(requester)).json()
    assert [item["title"] for item in requester_inbox] == ["Substitute request approved"]
