# app/api/v1/endpoints/books.py
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Request, status
from loguru import logger

from app.api.deps import get_services
from app.core.rate_limiter import limiter
from app.core.security import get_current_user
from app.models.book import Book
from app.models.user import User
from app.services.container import LibraryServices

router = APIRouter(tags=["Books"])


# --- GET --- (public search)
@router.get("", response_model=List[Book.Response], summary="Search the catalogue")
@limiter.limit("60/minute")
async def list_books(
    request: Request,
    q: Optional[str] = Query(None, description="Substring of title, author or ISBN"),
    services: LibraryServices = Depends(get_services),
):
    """List books ordered by title. A blank ``q`` lists the whole catalogue."""
    return await services.lending.list_books(q)


# --- GET /{book_id} --- (public)
@router.get("/{book_id}", response_model=Book.Response)
@limiter.limit("60/minute")
async def get_book(
    request: Request,
    book_id: str = Path(...),
    services: LibraryServices = Depends(get_services),
):
    return await services.lending.book_details(book_id)


# --- POST --- (librarian)
@router.post("", response_model=Book.Response, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
async def create_book(
    request: Request,
    book_in: Book.Create = Body(...),
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    logger.info(f"User '{current_user.email}' adding book '{book_in.title}' (ISBN {book_in.isbn}).")
    return await services.lending.add_book(current_user, book_in)


# --- PUT /{book_id} --- (librarian)
@router.put("/{book_id}", response_model=Book.Response)
@limiter.limit("30/minute")
async def update_book(
    request: Request,
    book_id: str = Path(...),
    book_in: Book.Update = Body(...),
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    return await services.lending.update_book(current_user, book_id, book_in)


# --- DELETE /{book_id} --- (librarian)
@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def delete_book(
    request: Request,
    book_id: str = Path(...),
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    await services.lending.remove_book(current_user, book_id)
    logger.info(f"Book {book_id} deleted by '{current_user.email}'.")
