import pytest
from starlette.websockets import WebSocketDisconnect

from app.core.security import create_access_token
from app.models.notification import Notification, NotificationCategory


def _seed(db, user, count=2):
    for index in range(count):
        db.add(
            Notification(
                user_id=user.id,
                title=f"Notice {index}",
                message="Coverage update",
                category=NotificationCategory.general,
                is_read=False,
            )
        )
    db.commit()


def test_notification_read_flow(client, db, make_user, auth_headers):
    user = make_user("instructor")
    other = make_user("instructor")
    _seed(db, user)
    _seed(db, other, count=1)
    headers = auth_headers(user)

    inbox = client.get("/api/notifications", headers=headers)
    assert inbox.status_code == 200
    assert len(inbox.json()) == 2

    first_id = inbox.json()[0]["id"]
    read = client.post(f"/api/notifications/{first_id}/read", headers=headers)
    assert read.status_code == 200
    assert read.json()["is_read"] is True

    unread = client.get("/api/notifications", params={"is_read": "false"}, headers=headers)
    assert len(unread.json()) == 1

    other_id = client.get("/api/notifications", headers=auth_headers(other)).json()[0]["id"]
    foreign = client.post(f"/api/notifications/{other_id}/read", headers=headers)
    assert foreign.status_code == 404

    read_all = client.post("/api/notifications/read-all", headers=headers)
    assert read_all.status_code == 200
    assert read_all.json() == {"updated": 1}


def test_notification_socket_rejects_missing_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/notifications/ws") as websocket:
            websocket.receive_json()


def test_notification_socket_greets_authenticated_user(client, make_user):
    user = make_user("instructor")
    with client.websocket_connect(f"/api/notifications/ws?token={create_access_token(user.id)}") as websocket:
        assert websocket.receive_json() == {"event": "connected", "user_id": user.id}
        websocket.send_text("ping")
        assert websocket.receive_json() == {"event": "pong"}
