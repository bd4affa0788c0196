import pytest

from app.core.exceptions import AlreadyExists, InvalidState, NotFound, Unauthorized
from app.models.enum import ReservationStatus


async def test_queue_is_first_come_first_served(services, clock, make_user, make_book):
    book = await make_book()
    first, second, third = await make_user(), await make_user(), await make_user()

    await services.reservations.create(third.id, book.id)
    clock.advance(minutes=1)
    await services.reservations.create(first.id, book.id)
    # Same timestamp as the previous one: insertion order decides
    await services.reservations.create(second.id, book.id)

    queue = await services.reservations.list_active(book.id)
    assert [r.user_id for r in queue] == [third.id, first.id, second.id]
    assert (await services.reservations.next_pending(book.id)).user_id == third.id


async def test_duplicate_pending_reservation_rejected(services, make_user, make_book):
    user, book = await make_user(), await make_book()
    await services.reservations.create(user.id, book.id)
    with pytest.raises(AlreadyExists):
        await services.reservations.create(user.id, book.id)


async def test_notified_is_active_but_not_pending(services, make_user, make_book):
    user, book = await make_user(), await make_book()
    reservation = await services.reservations.create(user.id, book.id)
    await services.reservations.set_status(reservation.id, ReservationStatus.NOTIFIED)

    assert await services.reservations.has_active(book.id)
    assert await services.reservations.next_pending(book.id) is None
    assert await services.reservations.books_with_active([book.id]) == {book.id}


async def test_cancel_rules(services, make_user, make_book):
    owner, stranger, book = await make_user(), await make_user(), await make_book()
    reservation = await services.reservations.create(owner.id, book.id)

    with pytest.raises(Unauthorized):
        await services.reservations.cancel(reservation.id, user_id=stranger.id)

    cancelled = await services.reservations.cancel(reservation.id, user_id=owner.id)
    assert cancelled.status == ReservationStatus.CANCELLED
    assert not await services.reservations.has_active(book.id)

    with pytest.raises(InvalidState):
        await services.reservations.cancel(reservation.id, user_id=owner.id)


async def test_cancel_unknown_reservation(services, make_user):
    user = await make_user()
    with pytest.raises(NotFound):
        await services.reservations.cancel("65f000000000000000000000", user_id=user.id)


async def test_user_listing_is_newest_first(services, clock, make_user, make_book):
    user = await make_user()
    older, newer = await make_book(), await make_book()
    await services.reservations.create(user.id, older.id)
    clock.advance(hours=1)
    await services.reservations.create(user.id, newer.id)

    listed = await services.reservations.list_for_user(user.id)
    assert [r.book_id for r in listed] == [newer.id, older.id]
