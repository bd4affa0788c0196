# app/models/notification.py
from datetime import datetime

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from pymongo import IndexModel, ASCENDING, DESCENDING

from app.core.utils import utc_now


class Notification(Document):
    user_id: PydanticObjectId
    message: str
    is_read: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "notifications"
        indexes = [
            IndexModel([("user_id", ASCENDING), ("created_at", DESCENDING)], name="notification_user_created_index"),
            IndexModel([("user_id", ASCENDING), ("is_read", ASCENDING)], name="notification_user_unread_index"),
        ]

    class Response(BaseModel):
        id: str
        message: str
        is_read: bool
        created_at: datetime

    class UnreadCount(BaseModel):
        count: int


def validate_notification_response(notification_doc: Notification) -> Notification.Response:
    return Notification.Response(
        id=str(notification_doc.id),
        message=notification_doc.message,
        is_read=notification_doc.is_read,
        created_at=notification_doc.created_at,
    )
