# app/services/observers.py
"""Fan-out of the "book returned" event.

Handlers run after the return has been persisted. They run concurrently,
independently of each other, and a failing handler is logged without
affecting the return itself or the other handlers.
"""
import asyncio
from typing import Awaitable, Callable, List, Optional

from loguru import logger
from pydantic import BaseModel

from app.models.book import Book
from app.models.enum import ReservationStatus
from app.models.loan import Loan
from app.models.user import User


class BookReturned(BaseModel):
    book: Book
    loan: Loan
    user: Optional[User] = None


ReturnHandler = Callable[[BookReturned], Awaitable[None]]


class BookReturnSubject:
    def __init__(self, handlers: Optional[List[ReturnHandler]] = None):
        self._handlers: List[ReturnHandler] = list(handlers or [])

    @property
    def handlers(self) -> List[ReturnHandler]:
        return list(self._handlers)

    def attach(self, handler: ReturnHandler) -> None:
        self._handlers.append(handler)

    def detach(self, handler: ReturnHandler) -> None:
        self._handlers = [h for h in self._handlers if h is not handler]

    async def notify(self, event: BookReturned) -> None:
        await asyncio.gather(*(self._dispatch(handler, event) for handler in self._handlers))

    async def _dispatch(self, handler: ReturnHandler, event: BookReturned) -> None:
        try:
            await handler(event)
        except Exception:
            logger.exception(
                f"Return handler {type(handler).__name__} failed for loan {event.loan.id} (book {event.book.id})."
            )


class AuditLogObserver:
    async def __call__(self, event: BookReturned) -> None:
        who = event.user.name if event.user is not None else str(event.loan.user_id)
        logger.info(f"Librarian notified: {who} returned book \"{event.book.title}\" (loan {event.loan.id}).")


class CatalogRefreshObserver:
    def __init__(self, catalog):
        self.catalog = catalog

    async def __call__(self, event: BookReturned) -> None:
        await self.catalog.refresh(event.book.id)


class WaitlistObserver:
    """Hands the freed copy to the earliest Pending reservation, if any."""

    def __init__(self, reservations, notifications):
        self.reservations = reservations
        self.notifications = notifications

    async def __call__(self, event: BookReturned) -> None:
        next_reservation = await self.reservations.next_pending(event.book.id)
        if next_reservation is None:
            return
        await self.notifications.notify(
            next_reservation.user_id,
            f"Book \"{event.book.title}\" is now available for you.",
        )
        await self.reservations.set_status(next_reservation.id, ReservationStatus.NOTIFIED)
