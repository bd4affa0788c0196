import pytest
from beanie import PydanticObjectId

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
from app.core.utils import ensure_utc
from app.models.book import Book
from app.models.enum import LoanStatus, PaymentStatus, ReservationStatus, UserRole
from app.models.loan import LOAN_PERIOD, Loan
from app.services.lending import LendingWorkflow
from app.services.observers import BookReturnSubject


async def test_borrow_opens_loan_and_takes_copy(services, clock, make_user, make_book):
    user, book = await make_user(), await make_book(total=2)

    summary = await services.lending.borrow(user.id, book.id)

    assert summary.book.title == book.title
    assert summary.due_date == summary.borrowed_date + LOAN_PERIOD
    assert (await services.catalog.get_book(book.id)).available_copies == 1
    assert await services.members.count_borrowed(user.id) == 1


async def test_borrow_limit_enforced(services, make_user, make_book):
    student = await make_user(UserRole.STUDENT)
    for _ in range(3):
        await services.lending.borrow(student.id, (await make_book()).id)

    extra = await make_book()
    with pytest.raises(LimitExceeded):
        await services.lending.borrow(student.id, extra.id)
    assert (await services.catalog.get_book(extra.id)).available_copies == 1


async def test_borrow_unavailable_book(services, make_user, make_book):
    first, second, book = await make_user(), await make_user(), await make_book(total=1)
    await services.lending.borrow(first.id, book.id)
    with pytest.raises(Unavailable):
        await services.lending.borrow(second.id, book.id)


async def test_same_book_cannot_be_borrowed_twice(services, make_user, make_book):
    user, book = await make_user(), await make_book(total=2)
    await services.lending.borrow(user.id, book.id)
    with pytest.raises(AlreadyExists):
        await services.lending.borrow(user.id, book.id)


async def test_borrow_unknown_user_or_book(services, make_user, make_book):
    user, book = await make_user(), await make_book()
    with pytest.raises(NotFound):
        await services.lending.borrow("65f000000000000000000000", book.id)
    with pytest.raises(NotFound):
        await services.lending.borrow(user.id, "65f000000000000000000000")


async def test_reservation_gives_priority(services, make_user, make_book):
    holder, waiting, other = await make_user(), await make_user(), await make_user()
    book = await make_book(total=2)
    await services.lending.borrow(holder.id, book.id)
    await services.lending.reserve(waiting.id, book.id)

    # A copy is on the shelf but the head of the queue is someone else
    with pytest.raises(ReservedByOther):
        await services.lending.borrow(other.id, book.id)

    await services.lending.borrow(waiting.id, book.id)
    reservations = await services.reservations.list_for_user(waiting.id)
    assert reservations[0].status == ReservationStatus.CANCELLED
    assert not await services.reservations.has_active(book.id)


async def test_return_on_time_is_free(services, clock, make_user, make_book):
    user, book = await make_user(), await make_book()
    await services.lending.borrow(user.id, book.id)
    clock.advance(days=14)

    result = await services.lending.return_book(user.id, book.id)

    assert result.fees.total_fee == 0
    loan = await Loan.get(PydanticObjectId(result.id))
    assert loan.status == LoanStatus.RETURNED
    assert ensure_utc(loan.returned_date) == clock.now
    assert (await services.catalog.get_book(book.id)).available_copies == 1


async def test_return_twice_fails(services, make_user, make_book):
    user, book = await make_user(), await make_book()
    await services.lending.borrow(user.id, book.id)
    await services.lending.return_book(user.id, book.id)
    with pytest.raises(AlreadyReturned):
        await services.lending.return_book(user.id, book.id)


async def test_return_without_loan(services, make_user, make_book):
    user, book = await make_user(), await make_book()
    with pytest.raises(NotFound):
        await services.lending.return_book(user.id, book.id)


async def test_overdue_return_with_waitlist(services, clock, make_user, make_book):
    """Borrow, waitlist, late return: fees, stock, notification and queue advance together."""
    student = await make_user(UserRole.STUDENT, name="Student")
    student2 = await make_user(UserRole.STUDENT, name="Student2")
    book = await make_book(title="X", total=1)

    await services.lending.borrow(student.id, book.id)
    with pytest.raises(Unavailable):
        await services.lending.borrow(student2.id, book.id)
    reservation = await services.lending.reserve(student2.id, book.id)

    clock.advance(days=20)
    result = await services.lending.return_book(student.id, book.id)

    assert result.fees.model_dump() == {
        "base_fee": 0.0,
        "late_fee": 5.0,
        "reservation_fee": 2.0,
        "total_fee": 7.0,
    }
    assert (await services.catalog.get_book(book.id)).available_copies == 1

    notifications = await services.notifications.list_for_user(student2.id)
    assert [n.message for n in notifications] == ['Book "X" is now available for you.']
    stored = await services.reservations.get(reservation.id)
    assert stored.status == ReservationStatus.NOTIFIED

    # The notified reader still has priority, and can now take the copy
    await services.lending.borrow(student2.id, book.id)
    assert (await services.reservations.get(reservation.id)).status == ReservationStatus.CANCELLED


async def test_failing_observer_does_not_undo_return(services, make_user, make_book):
    calls = []

    async def broken(event):
        raise RuntimeError("audit sink down")

    async def recorder(event):
        calls.append(event.loan.id)

    lending = LendingWorkflow(
        services.catalog,
        services.members,
        services.reservations,
        services.notifications,
        clock=services.lending.clock,
        on_return=BookReturnSubject([broken, recorder]),
    )
    user, book = await make_user(), await make_book()
    await lending.borrow(user.id, book.id)

    result = await lending.return_book(user.id, book.id)

    assert [str(c) for c in calls] == [result.id]
    assert (await Loan.get(PydanticObjectId(result.id))).status == LoanStatus.RETURNED


async def test_waitlist_observer_only_notifies_head(services, clock, make_user, make_book):
    holder, first, second = await make_user(), await make_user(), await make_user()
    book = await make_book(total=1)
    await services.lending.borrow(holder.id, book.id)
    await services.lending.reserve(first.id, book.id)
    clock.advance(minutes=1)
    await services.lending.reserve(second.id, book.id)

    await services.lending.return_book(holder.id, book.id)

    assert await services.notifications.unread_count(first.id) == 1
    assert await services.notifications.unread_count(second.id) == 0
    assert (await services.reservations.next_pending(book.id)).user_id == second.id


async def test_cancel_reservation_via_workflow(services, make_user, make_book):
    owner, other, book = await make_user(), await make_user(), await make_book()
    reservation = await services.lending.reserve(owner.id, book.id)
    with pytest.raises(Unauthorized):
        await services.lending.cancel_reservation(reservation.id, other.id)
    cancelled = await services.lending.cancel_reservation(reservation.id, owner.id)
    assert cancelled.status == ReservationStatus.CANCELLED.value
    with pytest.raises(InvalidState):
        await services.lending.cancel_reservation(reservation.id, owner.id)


async def test_catalogue_mutations_need_librarian(services, make_user, make_book):
    student, librarian = await make_user(UserRole.STUDENT), await make_user(UserRole.LIBRARIAN)
    data = Book.Create(title="New", author="A", isbn="9781111111111")

    with pytest.raises(Unauthorized):
        await services.lending.add_book(student, data)
    created = await services.lending.add_book(librarian, data)
    assert created.available_copies == 1

    with pytest.raises(Unauthorized):
        await services.lending.remove_book(student, created.id)
    await services.lending.remove_book(librarian, created.id)
    with pytest.raises(NotFound):
        await services.lending.book_details(created.id)


async def test_list_books_flags_reservations(services, make_user, make_book):
    user = await make_user()
    reserved, free = await make_book(title="A reserved"), await make_book(title="B free")
    await services.lending.reserve(user.id, reserved.id)

    flags = {b.title: b.has_reservations for b in await services.lending.list_books()}
    assert flags == {"A reserved": True, "B free": False}


async def test_loan_history_and_payment(services, clock, make_user, make_book):
    user, waiting, book = await make_user(), await make_user(), await make_book(total=1)
    await services.lending.borrow(user.id, book.id)
    await services.lending.reserve(waiting.id, book.id)
    result = await services.lending.return_book(user.id, book.id)

    history = await services.lending.user_loans(user.id)
    assert len(history) == 1
    assert history[0].book.title == book.title
    assert history[0].fees.total_fee == 2.0
    assert history[0].user is None

    all_loans = await services.lending.all_loans()
    assert all_loans[0].user.email == user.email

    clock.advance(hours=1)
    paid = await services.lending.record_payment(result.id, PaymentStatus.PAID, "pi_123")
    assert paid.payment_status == PaymentStatus.PAID.value
    assert paid.payment_id == "pi_123"
    assert ensure_utc(paid.paid_at) == clock.now

    with pytest.raises(InvalidState):
        await services.lending.record_payment(result.id, PaymentStatus.PAID, "pi_456")


async def test_paying_a_free_loan_is_rejected(services, make_user, make_book):
    user, book = await make_user(), await make_book()
    await services.lending.borrow(user.id, book.id)
    result = await services.lending.return_book(user.id, book.id)
    with pytest.raises(InvalidState):
        await services.lending.record_payment(result.id, PaymentStatus.PAID)


async def test_borrow_cancels_every_own_reservation(services, make_user, make_book):
    holder, reader, other = await make_user(), await make_user(), await make_user()
    book = await make_book(total=2)

    await services.lending.borrow(holder.id, book.id)
    first = await services.lending.reserve(reader.id, book.id)
    await services.lending.return_book(holder.id, book.id)
    assert (await services.reservations.get(first.id)).status == ReservationStatus.NOTIFIED

    # Notified does not block a fresh Pending entry for the same reader
    second = await services.lending.reserve(reader.id, book.id)
    await services.lending.borrow(reader.id, book.id)

    assert (await services.reservations.get(first.id)).status == ReservationStatus.CANCELLED
    assert (await services.reservations.get(second.id)).status == ReservationStatus.CANCELLED
    assert await services.reservations.list_active(book.id) == []

    await services.lending.borrow(other.id, book.id)
    assert (await services.catalog.get_book(book.id)).available_copies == 0


async def test_own_reservation_still_charges_reservation_fee(services, make_user, make_book):
    user, book = await make_user(), await make_book(total=2)
    await services.lending.borrow(user.id, book.id)
    await services.lending.reserve(user.id, book.id)

    result = await services.lending.return_book(user.id, book.id)

    assert result.fees.reservation_fee == 2.0
    assert result.fees.late_fee == 0.0
    assert result.fees.total_fee == 2.0


@pytest.mark.parametrize("overdue", [
    {"days": 14, "seconds": 1},
    {"days": 60},
])
async def test_late_fee_is_flat_however_late(services, clock, make_user, make_book, overdue):
    user, book = await make_user(), await make_book()
    await services.lending.borrow(user.id, book.id)
    clock.advance(**overdue)

    result = await services.lending.return_book(user.id, book.id)

    assert result.fees.late_fee == 5.0
    assert result.fees.total_fee == 5.0
