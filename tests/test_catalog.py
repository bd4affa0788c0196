import pytest

from app.core.exceptions import AlreadyExists, InvalidIdentifier, InvalidState, NotFound
from app.models.book import Book
from app.services.catalog import CatalogCache, CatalogStore


async def test_create_defaults_available_to_total(make_book):
    book = await make_book(total=3)
    assert book.total_copies == 3
    assert book.available_copies == 3


def test_available_cannot_exceed_total():
    with pytest.raises(ValueError):
        Book.Create(title="T", author="A", isbn="1", total_copies=1, available_copies=2)


async def test_duplicate_isbn_rejected(services, make_book):
    book = await make_book()
    with pytest.raises(AlreadyExists):
        await services.catalog.create(Book.Create(title="Copy", author="B", isbn=book.isbn))


async def test_search_is_case_insensitive_and_ordered_by_title(services, make_book):
    await make_book(title="Zen of Python", author="Tim Peters")
    await make_book(title="algorithms", author="Robert Sedgewick")
    await make_book(title="Python Cookbook", author="David Beazley")

    titles = [b.title for b in await services.catalog.search("PYTHON")]
    assert titles == ["Python Cookbook", "Zen of Python"]

    by_author = await services.catalog.search("beazley")
    assert [b.title for b in by_author] == ["Python Cookbook"]

    everything = [b.title for b in await services.catalog.search("   ")]
    assert everything == ["algorithms", "Python Cookbook", "Zen of Python"]


async def test_search_treats_query_literally(services, make_book):
    await make_book(title="C++ Primer")
    await make_book(title="Cats")
    assert [b.title for b in await services.catalog.search("c++")] == ["C++ Primer"]


async def test_update_shifts_available_by_total_change(services, make_book):
    book = await make_book(total=3, available=1)
    updated = await services.catalog.update(book.id, Book.Update(total_copies=5, title="New Title"))
    assert updated.title == "New Title"
    assert updated.total_copies == 5
    assert updated.available_copies == 3

    with pytest.raises(InvalidState):
        await services.catalog.update(book.id, Book.Update(total_copies=1))


async def test_take_copy_stops_at_zero(services, make_book):
    book = await make_book(total=1)
    taken = await services.catalog.take_copy(book.id)
    assert taken.available_copies == 0
    assert await services.catalog.take_copy(book.id) is None
    assert (await services.catalog.get_book(book.id)).available_copies == 0


async def test_release_copy_capped_at_total(services, make_book):
    book = await make_book(total=2)
    released = await services.catalog.release_copy(book.id)
    assert released.available_copies == 2


async def test_cache_is_invalidated_by_mutations(db, clock, make_book):
    cache = CatalogCache()
    catalog = CatalogStore(cache=cache, clock=clock)
    book = await make_book(total=2)

    await catalog.get_book(book.id)
    assert book.id in cache

    await catalog.take_copy(book.id)
    assert book.id not in cache
    assert (await catalog.get_book(book.id)).available_copies == 1


async def test_cached_copy_is_not_shared(db, clock, make_book):
    cache = CatalogCache()
    catalog = CatalogStore(cache=cache, clock=clock)
    book = await make_book()
    first = await catalog.get_book(book.id)
    first.title = "mutated"
    assert (await catalog.get_book(book.id)).title != "mutated"


async def test_delete_and_lookup_errors(services, make_book):
    book = await make_book()
    await services.catalog.delete(book.id)
    with pytest.raises(NotFound):
        await services.catalog.get_book(book.id)
    with pytest.raises(InvalidIdentifier):
        await services.catalog.get_book("not-an-id")
