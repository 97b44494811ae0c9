from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Protocol

from anyio import from_thread
from sqlalchemy.orm import Session

from app.models.notification import Notification, NotificationCategory
from app.services.notification_hub import notification_hub

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationIntent:
    """A message the coverage workflow wants delivered to one user."""

    recipient_id: str
    title: str
    message: str
    category: NotificationCategory = NotificationCategory.general
    link_url: str | None = None
    reference_type: str | None = None
    reference_id: str | None = None


class NotificationSink(Protocol):
    def emit(self, intent: NotificationIntent) -> None: ...


def _safe_iso(value: datetime | None) -> str:
    if value is None:
        return datetime.now(timezone.utc).isoformat()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc).isoformat()
    return value.isoformat()


def notification_to_event_payload(notification: Notification, *, event: str = "notification.created") -> dict:
    return {
        "event": event,
        "notification": {
            "id": notification.id,
            "user_id": notification.user_id,
            "title": notification.title,
            "message": notification.message,
            "category": notification.category.value,
            "link_url": notification.link_url,
            "reference_type": notification.reference_type,
            "reference_id": notification.reference_id,
            "is_read": notification.is_read,
            "created_at": _safe_iso(notification.created_at),
        },
    }


def publish_realtime_notification(notification: Notification, *, event: str = "notification.created") -> None:
    payload = notification_to_event_payload(notification, event=event)
    try:
        from_thread.run(notification_hub.publish, notification.user_id, payload)
    except Exception:  # pragma: no cover - runtime environment dependent
        logger.debug("Unable to push realtime notification for user %s", notification.user_id, exc_info=True)


def create_notification(db: Session, intent: NotificationIntent) -> Notification:
    record = Notification(
        user_id=intent.recipient_id,
        title=intent.title,
        message=intent.message,
        category=intent.category,
        link_url=intent.link_url,
        reference_type=intent.reference_type,
        reference_id=intent.reference_id,
        is_read=False,
    )
    db.add(record)
    db.flush()
    return record


class DatabaseNotificationSink:
    """Stores each intent as an in-app notification in its own transaction.

    Callers emit only after their own state change has committed, so a failed
    insert here can never undo a transition.
    """

    def __init__(self, db: Session, *, realtime: bool = True) -> None:
        self.db = db
        self.realtime = realtime

    def emit(self, intent: NotificationIntent) -> None:
        try:
            record = create_notification(self.db, intent)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        if self.realtime:
            publish_realtime_notification(record, event="notification.created")
