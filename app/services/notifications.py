# app/services/notifications.py
from typing import List

from loguru import logger
from pymongo import DESCENDING

from app.core.utils import Clock, parse_object_id, utc_now
from app.models.notification import Notification


class NotificationSink:
    """Append-only per-user message log. Consumers poll; there is no push."""

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock

    async def notify(self, user_id, message: str) -> Notification:
        notification = Notification(
            user_id=parse_object_id(user_id, "user"),
            message=message,
            created_at=self.clock(),
        )
        await notification.insert()
        logger.info(f"Notification to user {user_id}: {message}")
        return notification

    async def list_for_user(self, user_id) -> List[Notification]:
        """Newest first."""
        oid = parse_object_id(user_id, "user")
        return await Notification.find(
            Notification.user_id == oid,
            sort=[("created_at", DESCENDING), ("_id", DESCENDING)],
        ).to_list()

    async def unread_count(self, user_id) -> int:
        oid = parse_object_id(user_id, "user")
        return await Notification.find(Notification.user_id == oid, Notification.is_read == False).count()  # noqa: E712

    async def mark_read(self, notification_id, user_id) -> None:
        # Scoped to the owner: a foreign or unknown id simply matches nothing
        await Notification.find_one({
            "_id": parse_object_id(notification_id, "notification"),
            "user_id": parse_object_id(user_id, "user"),
        }).update({"$set": {"is_read": True}})

    async def mark_all_read(self, user_id) -> None:
        oid = parse_object_id(user_id, "user")
        await Notification.find({"user_id": oid, "is_read": False}).update({"$set": {"is_read": True}})
