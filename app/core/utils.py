# app/core/utils.py
from datetime import datetime, timezone
from typing import Callable, Optional

from beanie import PydanticObjectId
from bson import ObjectId

from app.core.exceptions import InvalidIdentifier

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Mongo hands datetimes back naive; treat those as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_object_id(value, what: str = "resource") -> PydanticObjectId:
    """Convert a path/body id into an ObjectId, raising InvalidIdentifier if malformed."""
    if isinstance(value, ObjectId):
        return PydanticObjectId(value)
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise InvalidIdentifier(f"Invalid {what} ID format.")
    return PydanticObjectId(value)
