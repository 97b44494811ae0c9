from datetime import datetime

from pydantic import BaseModel

from app.models.notification import NotificationCategory


class NotificationOut(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    category: NotificationCategory
    link_url: str | None = None
    reference_type: str | None = None
    reference_id: str | None = None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationReadAllOut(BaseModel):
    updated: int
