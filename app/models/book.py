# app/models/book.py
from typing import Optional
from datetime import datetime

from beanie import Document
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pymongo import IndexModel, ASCENDING

from app.core.utils import utc_now


class Book(Document):
    """Catalogue entry. Invariant: 0 <= available_copies <= total_copies."""
    title: str = Field(..., max_length=300)
    author: str = Field(..., max_length=200)
    isbn: str = Field(..., max_length=20)
    total_copies: int = Field(default=1, ge=0)
    available_copies: int = Field(default=1, ge=0)

    # --- Timestamps ---
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "books"
        indexes = [
            IndexModel([("isbn", ASCENDING)], name="book_isbn_unique_index", unique=True),
            IndexModel([("title", ASCENDING)], name="book_title_index"),
            IndexModel([("author", ASCENDING)], name="book_author_index"),
        ]

    def is_available(self) -> bool:
        return self.available_copies > 0

    # --- Pydantic Schemas for API ---
    class Create(BaseModel):
        title: str = Field(..., min_length=1, max_length=300)
        author: str = Field(..., min_length=1, max_length=200)
        isbn: str = Field(..., min_length=1, max_length=20)
        total_copies: int = Field(default=1, ge=1)
        available_copies: Optional[int] = Field(None, ge=0)

        @model_validator(mode="after")
        def check_copies(self):
            if self.available_copies is not None and self.available_copies > self.total_copies:
                raise ValueError("available_copies cannot exceed total_copies")
            return self

    class Update(BaseModel):
        title: Optional[str] = Field(None, min_length=1, max_length=300)
        author: Optional[str] = Field(None, min_length=1, max_length=200)
        isbn: Optional[str] = Field(None, min_length=1, max_length=20)
        total_copies: Optional[int] = Field(None, ge=0)

    class Summary(BaseModel):
        id: str
        title: str
        author: str

    class Response(BaseModel):
        id: str
        title: str
        author: str
        isbn: str
        total_copies: int
        available_copies: int
        has_reservations: bool = False
        model_config = ConfigDict(from_attributes=True)


def validate_book_response(book_doc: Book, has_reservations: bool = False) -> Book.Response:
    return Book.Response(
        id=str(book_doc.id),
        title=book_doc.title,
        author=book_doc.author,
        isbn=book_doc.isbn,
        total_copies=book_doc.total_copies,
        available_copies=book_doc.available_copies,
        has_reservations=has_reservations,
    )


def book_summary(book_doc: Book) -> Book.Summary:
    return Book.Summary(id=str(book_doc.id), title=book_doc.title, author=book_doc.author)
