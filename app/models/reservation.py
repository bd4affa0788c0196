# app/models/reservation.py
from typing import Optional
from datetime import datetime

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, ConfigDict, Field
from pymongo import IndexModel, ASCENDING

from app.core.utils import utc_now
from app.models.book import Book
from app.models.enum import ReservationStatus


class Reservation(Document):
    user_id: PydanticObjectId
    book_id: PydanticObjectId
    status: ReservationStatus = ReservationStatus.PENDING
    # FIFO key for the per-book queue (ties broken by _id)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "reservations"
        indexes = [
            IndexModel([("book_id", ASCENDING), ("status", ASCENDING), ("created_at", ASCENDING)], name="reservation_queue_index"),
            IndexModel([("user_id", ASCENDING)], name="reservation_user_index"),
        ]

    # --- Pydantic Schemas ---
    class Create(BaseModel):
        book_id: str = Field(..., alias="bookId")
        model_config = ConfigDict(populate_by_name=True)

    class Response(BaseModel):
        id: str
        user_id: str
        book_id: str
        book: Optional[Book.Summary] = None
        status: ReservationStatus
        created_at: datetime
        model_config = ConfigDict(use_enum_values=True)


def validate_reservation_response(reservation_doc: Reservation, book: Optional[Book] = None) -> Reservation.Response:
    return Reservation.Response(
        id=str(reservation_doc.id),
        user_id=str(reservation_doc.user_id),
        book_id=str(reservation_doc.book_id),
        book=Book.Summary(id=str(book.id), title=book.title, author=book.author) if book else None,
        status=reservation_doc.status,
        created_at=reservation_doc.created_at,
    )
