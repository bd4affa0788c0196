# app/services/lending.py
"""Borrow / return / reservation lifecycle.

Borrow:  member limit -> availability -> reservation priority -> take a copy,
         open a loan, consume the borrower's own reservation.
Return:  close the loan with its fee breakdown -> give the copy back ->
         fan the "book returned" event out to the registered handlers.

Every rule violation is raised as a LibraryError subclass. Nothing here
runs inside a transaction: if the fan-out fails, the return stands.
"""
from typing import Dict, Iterable, List, Optional

from beanie import PydanticObjectId
from beanie.operators import In
from loguru import logger
from pymongo import DESCENDING

from app.core.exceptions import (
    AlreadyExists,
    AlreadyReturned,
    InvalidState,
    LimitExceeded,
    NotFound,
    ReservedByOther,
    Unauthorized,
    Unavailable,
)
from app.core.fees import FeeInputs, calculate_fees
from app.core.utils import Clock, parse_object_id, utc_now
from app.models.book import Book, book_summary, validate_book_response
from app.models.enum import LoanStatus, PaymentStatus, ReservationStatus, UserRole
from app.models.loan import LOAN_PERIOD, Loan, UserSummary
from app.models.reservation import Reservation, validate_reservation_response
from app.models.user import User
from app.services.catalog import CatalogStore
from app.services.membership import MembershipStore
from app.services.notifications import NotificationSink
from app.services.observers import (
    AuditLogObserver,
    BookReturned,
    BookReturnSubject,
    CatalogRefreshObserver,
    WaitlistObserver,
)
from app.services.reservations import ReservationQueue


class LendingWorkflow:
    def __init__(
        self,
        catalog: CatalogStore,
        members: MembershipStore,
        reservations: ReservationQueue,
        notifications: NotificationSink,
        clock: Clock = utc_now,
        on_return: Optional[BookReturnSubject] = None,
    ):
        self.catalog = catalog
        self.members = members
        self.reservations = reservations
        self.notifications = notifications
        self.clock = clock
        if on_return is None:
            on_return = BookReturnSubject([
                AuditLogObserver(),
                CatalogRefreshObserver(catalog),
                WaitlistObserver(reservations, notifications),
            ])
        self.on_return = on_return

    # ------------------------------------------------------------------
    # Borrow / return
    # ------------------------------------------------------------------
    async def borrow(self, user_id, book_id) -> Loan.BorrowSummary:
        user = await self.members.get_user(user_id)

        current_borrowed = await self.members.count_borrowed(user.id)
        if not user.can_borrow(current_borrowed):
            raise LimitExceeded(f"Borrow limit reached. Maximum {user.max_borrow_limit} books allowed.")

        book = await self.catalog.get_book(book_id)
        if not book.is_available():
            raise Unavailable("Book is not available")

        if await self._open_loan(user.id, book.id):
            raise AlreadyExists("You already have this book borrowed")

        active = await self.reservations.list_active(book.id)
        if active and active[0].user_id != user.id:
            raise ReservedByOther(
                "This book has been reserved by another user. Please reserve it to be notified when available."
            )

        # Conditional decrement: losing the race for the last copy fails cleanly
        taken = await self.catalog.take_copy(book.id)
        if taken is None:
            raise Unavailable("Book is not available")

        now = self.clock()
        loan = Loan(
            user_id=user.id,
            book_id=book.id,
            borrowed_date=now,
            due_date=now + LOAN_PERIOD,
            status=LoanStatus.BORROWED,
            created_at=now,
            updated_at=now,
        )
        await loan.insert()

        for own in (r for r in active if r.user_id == user.id):
            await self.reservations.set_status(own.id, ReservationStatus.CANCELLED)

        logger.info(
            f"User '{user.email}' borrowed '{book.title}' (loan {loan.id}, due {loan.due_date.isoformat()}). "
            f"Copies left: {taken.available_copies}/{taken.total_copies}."
        )
        return Loan.BorrowSummary(
            id=str(loan.id),
            book=book_summary(book),
            borrowed_date=loan.borrowed_date,
            due_date=loan.due_date,
        )

    async def return_book(self, user_id, book_id) -> Loan.ReturnResult:
        user_oid = parse_object_id(user_id, "user")
        book_oid = parse_object_id(book_id, "book")

        loan = await self._open_loan(user_oid, book_oid)
        if loan is None:
            if await Loan.find_one(Loan.user_id == user_oid, Loan.book_id == book_oid):
                raise AlreadyReturned("Book already returned")
            raise NotFound("Borrow transaction not found")

        now = self.clock()
        has_reservation = await self.reservations.has_active(book_oid)
        fees = calculate_fees(FeeInputs(
            base_fee=loan.base_fee,
            is_overdue=loan.is_overdue(now),
            has_reservation=has_reservation,
        ))

        loan.base_fee = fees.base_fee
        loan.late_fee = fees.late_fee
        loan.reservation_fee = fees.reservation_fee
        loan.returned_date = now
        loan.status = LoanStatus.RETURNED
        loan.updated_at = now
        await loan.save()

        book = await self.catalog.release_copy(book_oid)
        logger.info(f"Loan {loan.id} returned. Fees: {fees.model_dump()}")

        if book is None:
            logger.warning(f"Book {book_oid} no longer exists; skipping return notifications for loan {loan.id}.")
        else:
            user = await self.members.find_user(user_oid)
            await self.on_return.notify(BookReturned(book=book, loan=loan, user=user))

        return Loan.ReturnResult(id=str(loan.id), returned_date=now, fees=fees)

    async def _open_loan(self, user_oid: PydanticObjectId, book_oid: PydanticObjectId) -> Optional[Loan]:
        return await Loan.find_one(
            Loan.user_id == user_oid,
            Loan.book_id == book_oid,
            Loan.status == LoanStatus.BORROWED,
        )

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------
    async def reserve(self, user_id, book_id) -> Reservation.Response:
        user = await self.members.get_user(user_id)
        book = await self.catalog.get_book(book_id)
        reservation = await self.reservations.create(user.id, book.id)
        return validate_reservation_response(reservation, book)

    async def cancel_reservation(self, reservation_id, user_id) -> Reservation.Response:
        reservation = await self.reservations.cancel(reservation_id, user_id=user_id)
        logger.info(f"Reservation {reservation.id} cancelled by its owner.")
        return validate_reservation_response(reservation)

    async def user_reservations(self, user_id) -> List[Reservation.Response]:
        reservations = await self.reservations.list_for_user(user_id)
        books = await self._books_by_id(r.book_id for r in reservations)
        return [validate_reservation_response(r, books.get(r.book_id)) for r in reservations]

    # ------------------------------------------------------------------
    # Loan history and payments
    # ------------------------------------------------------------------
    async def user_loans(self, user_id) -> List[Loan.HistoryEntry]:
        oid = parse_object_id(user_id, "user")
        loans = await Loan.find(Loan.user_id == oid, sort=[("borrowed_date", DESCENDING)]).to_list()
        books = await self._books_by_id(l.book_id for l in loans)
        return [self._history_entry(l, books.get(l.book_id)) for l in loans]

    async def all_loans(self, skip: int = 0, limit: int = 100) -> List[Loan.HistoryEntry]:
        loans = await Loan.find_all(skip=skip, limit=limit, sort=[("borrowed_date", DESCENDING)]).to_list()
        books = await self._books_by_id(l.book_id for l in loans)
        users = await self._users_by_id(l.user_id for l in loans)
        return [self._history_entry(l, books.get(l.book_id), users.get(l.user_id)) for l in loans]

    async def record_payment(self, loan_id, status: PaymentStatus, payment_id: Optional[str] = None) -> Loan.HistoryEntry:
        """Store the payment provider's verdict on a loan's fees."""
        loan = await Loan.get(parse_object_id(loan_id, "loan"))
        if loan is None:
            raise NotFound("Transaction not found")
        if loan.payment_status == PaymentStatus.PAID:
            raise InvalidState("Fees already paid for this transaction")
        status = PaymentStatus(status)
        if status == PaymentStatus.PAID and loan.total_fee <= 0:
            raise InvalidState("No fees to pay")

        now = self.clock()
        loan.payment_status = status
        loan.payment_id = payment_id
        loan.paid_at = now if status == PaymentStatus.PAID else None
        loan.updated_at = now
        await loan.save()
        logger.info(f"Loan {loan.id} payment status set to {status.value}.")

        books = await self._books_by_id([loan.book_id])
        return self._history_entry(loan, books.get(loan.book_id))

    # ------------------------------------------------------------------
    # Catalogue, behind the librarian gate for mutations
    # ------------------------------------------------------------------
    async def list_books(self, query: Optional[str] = None) -> List[Book.Response]:
        books = await self.catalog.search(query)
        reserved = await self.reservations.books_with_active(b.id for b in books)
        return [validate_book_response(b, b.id in reserved) for b in books]

    async def book_details(self, book_id) -> Book.Response:
        book = await self.catalog.get_book(book_id)
        return validate_book_response(book, await self.reservations.has_active(book.id))

    async def add_book(self, actor: User, data: Book.Create) -> Book.Response:
        self._require_librarian(actor, "add books")
        book = await self.catalog.create(data)
        return validate_book_response(book, False)

    async def update_book(self, actor: User, book_id, data: Book.Update) -> Book.Response:
        self._require_librarian(actor, "edit books")
        book = await self.catalog.update(book_id, data)
        return validate_book_response(book, await self.reservations.has_active(book.id))

    async def remove_book(self, actor: User, book_id) -> None:
        self._require_librarian(actor, "remove books")
        await self.catalog.delete(book_id)

    @staticmethod
    def _require_librarian(actor: User, action: str) -> None:
        if actor.role != UserRole.LIBRARIAN:
            raise Unauthorized(f"Only librarians can {action}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _books_by_id(self, ids: Iterable[PydanticObjectId]) -> Dict[PydanticObjectId, Book]:
        unique = list(set(ids))
        if not unique:
            return {}
        books = await Book.find(In(Book.id, unique)).to_list()
        return {b.id: b for b in books}

    async def _users_by_id(self, ids: Iterable[PydanticObjectId]) -> Dict[PydanticObjectId, User]:
        unique = list(set(ids))
        if not unique:
            return {}
        users = await User.find(In(User.id, unique)).to_list()
        return {u.id: u for u in users}

    @staticmethod
    def _history_entry(loan: Loan, book: Optional[Book] = None, user: Optional[User] = None) -> Loan.HistoryEntry:
        return Loan.HistoryEntry(
            id=str(loan.id),
            user=UserSummary(id=str(user.id), name=user.name, email=user.email, role=user.role) if user else None,
            book=book_summary(book) if book else None,
            borrowed_date=loan.borrowed_date,
            due_date=loan.due_date,
            returned_date=loan.returned_date,
            status=loan.status,
            fees=loan.fee_breakdown(),
            payment_status=loan.payment_status,
            payment_id=loan.payment_id,
            paid_at=loan.paid_at,
        )
