import pytest
from sqlalchemy import func, select

from app.models.notification import Notification, NotificationCategory
from app.services.notifications import DatabaseNotificationSink, NotificationIntent, notification_to_event_payload


def _intent(recipient_id: str) -> NotificationIntent:
    return NotificationIntent(
        recipient_id=recipient_id,
        title="Shift confirmed",
        message="You're confirmed for Trauma Lab on Mon, Nov 2.",
        category=NotificationCategory.shift_confirmed,
        link_url="/scheduling/shifts?shift=abc",
        reference_type="shift_signup",
        reference_id="signup-1",
    )


def test_database_sink_persists_intent(db, make_user):
    user = make_user("instructor")
    # Outside a worker thread the realtime push is skipped without failing the write.
    DatabaseNotificationSink(db, realtime=True).emit(_intent(user.id))

    rows = list(db.execute(select(Notification)).scalars())
    assert len(rows) == 1
    assert rows[0].user_id == user.id
    assert rows[0].is_read is False

    payload = notification_to_event_payload(rows[0])
    assert payload["event"] == "notification.created"
    assert payload["notification"]["category"] == "shift_confirmed"
    assert payload["notification"]["reference_id"] == "signup-1"


def test_database_sink_rolls_back_failed_insert(db, monkeypatch):
    def _fail():
        raise RuntimeError("disk full")

    monkeypatch.setattr(db, "flush", _fail)
    with pytest.raises(RuntimeError):
        DatabaseNotificationSink(db, realtime=False).emit(_intent("user-1"))
    monkeypatch.undo()

    assert db.execute(select(func.count(Notification.id))).scalar_one() == 0
