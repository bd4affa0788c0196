# app/services/catalog.py
import re
from typing import Dict, List, Optional

from beanie import PydanticObjectId
from loguru import logger
from pymongo import ReturnDocument

from app.core.exceptions import AlreadyExists, InvalidState, NotFound
from app.core.utils import Clock, parse_object_id, utc_now
from app.models.book import Book


class CatalogCache:
    """Read-through cache of books keyed by id.

    Not authoritative: the database always wins. Entries are dropped on
    every catalogue mutation and refreshed after returns.
    """

    def __init__(self):
        self._books: Dict[str, Book] = {}

    def get(self, book_id) -> Optional[Book]:
        cached = self._books.get(str(book_id))
        return cached.model_copy() if cached is not None else None

    def put(self, book: Book) -> None:
        self._books[str(book.id)] = book.model_copy()

    def invalidate(self, book_id) -> None:
        self._books.pop(str(book_id), None)

    def clear(self) -> None:
        self._books.clear()

    def __contains__(self, book_id) -> bool:
        return str(book_id) in self._books

    def __len__(self) -> int:
        return len(self._books)


def _title_key(book: Book):
    return (book.title.casefold(), book.title)


class CatalogStore:
    """Persistent record of books. Performs no authorization of its own."""

    def __init__(self, cache: Optional[CatalogCache] = None, clock: Clock = utc_now):
        self.cache = cache
        self.clock = clock

    # --- Lookups ---
    async def find_book(self, book_id) -> Optional[Book]:
        oid = parse_object_id(book_id, "book")
        if self.cache is not None:
            cached = self.cache.get(oid)
            if cached is not None:
                return cached
        book = await Book.get(oid)
        if book is not None and self.cache is not None:
            self.cache.put(book)
        return book

    async def get_book(self, book_id) -> Book:
        book = await self.find_book(book_id)
        if book is None:
            raise NotFound("Book not found")
        return book

    async def get_by_isbn(self, isbn: str) -> Optional[Book]:
        return await Book.find_one(Book.isbn == isbn)

    async def list_all(self) -> List[Book]:
        books = await Book.find_all().to_list()
        return sorted(books, key=_title_key)

    async def search(self, query: Optional[str]) -> List[Book]:
        """Case-insensitive substring match over title, author and ISBN, ordered by title."""
        if not query or not query.strip():
            return await self.list_all()
        pattern = re.escape(query.strip())
        books = await Book.find({"$or": [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"author": {"$regex": pattern, "$options": "i"}},
            {"isbn": {"$regex": pattern, "$options": "i"}},
        ]}).to_list()
        return sorted(books, key=_title_key)

    # --- Mutations ---
    async def create(self, data: Book.Create) -> Book:
        if await self.get_by_isbn(data.isbn):
            raise AlreadyExists("Book with this ISBN already exists")
        available = data.available_copies if data.available_copies is not None else data.total_copies
        now = self.clock()
        book = Book(
            title=data.title,
            author=data.author,
            isbn=data.isbn,
            total_copies=data.total_copies,
            available_copies=available,
            created_at=now,
            updated_at=now,
        )
        await book.insert()
        logger.info(f"Book '{book.title}' (ISBN {book.isbn}) added to catalogue as {book.id}.")
        return book

    async def update(self, book_id, data: Book.Update) -> Book:
        """Edit metadata and/or total copies; availability shifts by the change in total."""
        book = await self.get_book(book_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return book

        if "isbn" in update_data and update_data["isbn"] != book.isbn:
            existing = await self.get_by_isbn(update_data["isbn"])
            if existing and existing.id != book.id:
                raise AlreadyExists("Book with this ISBN already exists")

        if "total_copies" in update_data:
            new_total = update_data["total_copies"]
            new_available = book.available_copies + (new_total - book.total_copies)
            if new_available < 0:
                raise InvalidState("Cannot reduce total copies below the number currently on loan")
            update_data["available_copies"] = new_available

        update_data["updated_at"] = self.clock()
        await Book.find_one({"_id": book.id}).update({"$set": update_data})
        self._invalidate(book.id)
        logger.info(f"Book {book.id} updated. Fields: {list(update_data.keys())}")
        return await self.get_book(book.id)

    async def delete(self, book_id) -> None:
        book = await self.get_book(book_id)
        await book.delete()
        self._invalidate(book.id)
        logger.info(f"Book '{book.title}' ({book.id}) removed from catalogue.")

    async def take_copy(self, book_id: PydanticObjectId) -> Optional[Book]:
        """Atomically decrement available copies if any are left; None when none were."""
        updated = await Book.get_motor_collection().find_one_and_update(
            {"_id": book_id, "available_copies": {"$gt": 0}},
            {"$inc": {"available_copies": -1}, "$set": {"updated_at": self.clock()}},
            return_document=ReturnDocument.AFTER,
        )
        self._invalidate(book_id)
        if updated is None:
            return None
        return await Book.get(book_id)

    async def release_copy(self, book_id: PydanticObjectId) -> Optional[Book]:
        """Increment available copies, never above total copies. None if the book is gone."""
        book = await Book.get(book_id)
        if book is None:
            return None
        await Book.get_motor_collection().update_one(
            {"_id": book_id, "available_copies": {"$lt": book.total_copies}},
            {"$inc": {"available_copies": 1}, "$set": {"updated_at": self.clock()}},
        )
        self._invalidate(book_id)
        return await Book.get(book_id)

    async def refresh(self, book_id) -> Optional[Book]:
        """Re-synchronise the cached entry for ``book_id`` from the database."""
        self._invalidate(book_id)
        return await self.find_book(book_id)

    def _invalidate(self, book_id) -> None:
        if self.cache is not None:
            self.cache.invalidate(book_id)
