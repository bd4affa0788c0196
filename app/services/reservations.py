# app/services/reservations.py
from typing import Iterable, List, Optional, Set

from beanie import PydanticObjectId
from beanie.operators import In
from loguru import logger
from pymongo import ASCENDING, DESCENDING

from app.core.exceptions import AlreadyExists, InvalidState, NotFound, Unauthorized
from app.core.utils import Clock, parse_object_id, utc_now
from app.models.enum import ACTIVE_RESERVATION_STATUSES, ReservationStatus
from app.models.reservation import Reservation

# Explicit creation time first, ObjectId as tie-breaker
FIFO_ORDER = [("created_at", ASCENDING), ("_id", ASCENDING)]
ACTIVE_VALUES = [s.value for s in ACTIVE_RESERVATION_STATUSES]


class ReservationQueue:
    """Per-book FIFO waitlist."""

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock

    async def list_active(self, book_id) -> List[Reservation]:
        """Pending and Notified entries for the book, earliest first."""
        oid = parse_object_id(book_id, "book")
        return await Reservation.find(
            Reservation.book_id == oid,
            In(Reservation.status, ACTIVE_VALUES),
            sort=FIFO_ORDER,
        ).to_list()

    async def has_active(self, book_id) -> bool:
        oid = parse_object_id(book_id, "book")
        found = await Reservation.find_one(
            Reservation.book_id == oid,
            In(Reservation.status, ACTIVE_VALUES),
        )
        return found is not None

    async def books_with_active(self, book_ids: Iterable[PydanticObjectId]) -> Set[PydanticObjectId]:
        ids = list(book_ids)
        if not ids:
            return set()
        active = await Reservation.find(
            In(Reservation.book_id, ids),
            In(Reservation.status, ACTIVE_VALUES),
        ).to_list()
        return {r.book_id for r in active}

    async def next_pending(self, book_id) -> Optional[Reservation]:
        oid = parse_object_id(book_id, "book")
        pending = await Reservation.find(
            Reservation.book_id == oid,
            Reservation.status == ReservationStatus.PENDING,
            sort=FIFO_ORDER,
            limit=1,
        ).to_list()
        return pending[0] if pending else None

    async def create(self, user_id, book_id) -> Reservation:
        """Queue a reservation; a second Pending one for the same user and book is refused."""
        user_oid = parse_object_id(user_id, "user")
        book_oid = parse_object_id(book_id, "book")
        existing = await Reservation.find_one(
            Reservation.user_id == user_oid,
            Reservation.book_id == book_oid,
            Reservation.status == ReservationStatus.PENDING,
        )
        if existing:
            raise AlreadyExists("You already have a pending reservation for this book")
        now = self.clock()
        reservation = Reservation(user_id=user_oid, book_id=book_oid, created_at=now, updated_at=now)
        await reservation.insert()
        logger.info(f"Reservation {reservation.id} created for user {user_oid} on book {book_oid}.")
        return reservation

    async def get(self, reservation_id) -> Reservation:
        reservation = await Reservation.get(parse_object_id(reservation_id, "reservation"))
        if reservation is None:
            raise NotFound("Reservation not found")
        return reservation

    async def list_for_user(self, user_id) -> List[Reservation]:
        oid = parse_object_id(user_id, "user")
        return await Reservation.find(
            Reservation.user_id == oid,
            sort=[("created_at", DESCENDING), ("_id", DESCENDING)],
        ).to_list()

    async def set_status(self, reservation_id, status: ReservationStatus) -> None:
        oid = parse_object_id(reservation_id, "reservation")
        await Reservation.find_one({"_id": oid}).update(
            {"$set": {"status": ReservationStatus(status).value, "updated_at": self.clock()}}
        )
        logger.info(f"Reservation {oid} -> {ReservationStatus(status).value}.")

    async def cancel(self, reservation_id, user_id=None) -> Reservation:
        """Cancel a Pending reservation. With ``user_id``, only its owner may cancel."""
        reservation = await self.get(reservation_id)
        if user_id is not None and reservation.user_id != parse_object_id(user_id, "user"):
            raise Unauthorized("Unauthorized: This reservation does not belong to you")
        if reservation.status != ReservationStatus.PENDING:
            raise InvalidState("Only pending reservations can be cancelled")
        await self.set_status(reservation.id, ReservationStatus.CANCELLED)
        reservation.status = ReservationStatus.CANCELLED
        return reservation
