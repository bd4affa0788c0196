# app/api/v1/endpoints/librarians.py
from typing import List

from fastapi import APIRouter, Body, Depends, Path, Query, Request, status
from loguru import logger

from app.api.deps import get_services
from app.core.exceptions import Unauthorized
from app.core.rate_limiter import limiter
from app.core.security import require_librarian
from app.models.book import Book
from app.models.loan import Loan
from app.models.user import User, validate_user_response
from app.services.container import LibraryServices

router = APIRouter(
    tags=["Librarians"],
    dependencies=[Depends(require_librarian)]
)


# --- Catalogue ---
@router.get("/books", response_model=List[Book.Response])
@limiter.limit("60/minute")
async def all_books(request: Request, services: LibraryServices = Depends(get_services)):
    return await services.lending.list_books()


# --- Users ---
@router.get("/users", response_model=List[User.Response])
@limiter.limit("30/minute")
async def list_users(
    request: Request,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    services: LibraryServices = Depends(get_services),
):
    users = await services.members.list_users(skip=skip, limit=limit)
    return [validate_user_response(u) for u in users]


@router.post("/users", response_model=User.Response, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def create_user(
    request: Request,
    user_in: User.AdminCreate = Body(...),
    current_user: User = Depends(require_librarian),
    services: LibraryServices = Depends(get_services),
):
    """Create a user of any role. Without a password the default one is set."""
    logger.info(f"Librarian '{current_user.email}' creating {user_in.role.value} '{user_in.email}'.")
    user = await services.members.create_user(
        user_in.role, name=user_in.name, email=user_in.email, password=user_in.password
    )
    return validate_user_response(user)


@router.put("/users/{user_id}", response_model=User.Response)
@limiter.limit("10/minute")
async def update_user(
    request: Request,
    user_id: str = Path(...),
    user_in: User.AdminUpdate = Body(...),
    current_user: User = Depends(require_librarian),
    services: LibraryServices = Depends(get_services),
):
    if user_in.role is not None and user_id == str(current_user.id) and user_in.role != current_user.role:
        raise Unauthorized("You cannot change your own role")
    user = await services.members.update_user(
        user_id,
        name=user_in.name,
        email=user_in.email,
        password=user_in.password,
        role=user_in.role,
    )
    return validate_user_response(user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("10/minute")
async def delete_user(
    request: Request,
    user_id: str = Path(...),
    current_user: User = Depends(require_librarian),
    services: LibraryServices = Depends(get_services),
):
    if user_id == str(current_user.id):
        raise Unauthorized("You cannot delete your own account")
    await services.members.delete_user(user_id)


@router.patch("/users/{user_id}/role", response_model=User.Response)
@limiter.limit("10/minute")
async def change_role(
    request: Request,
    user_id: str = Path(...),
    role_in: User.RoleChange = Body(...),
    current_user: User = Depends(require_librarian),
    services: LibraryServices = Depends(get_services),
):
    if user_id == str(current_user.id):
        raise Unauthorized("You cannot change your own role")
    user = await services.members.change_role(user_id, role_in.role)
    logger.info(f"Librarian '{current_user.email}' set role of {user.email} to {user.role.value}.")
    return validate_user_response(user)


# --- Loans ---
@router.get("/borrows", response_model=List[Loan.HistoryEntry])
@limiter.limit("30/minute")
async def all_loans(
    request: Request,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    services: LibraryServices = Depends(get_services),
):
    return await services.lending.all_loans(skip=skip, limit=limit)


@router.get("/users/{user_id}/borrows", response_model=List[Loan.HistoryEntry])
@limiter.limit("30/minute")
async def user_loans(
    request: Request,
    user_id: str = Path(...),
    services: LibraryServices = Depends(get_services),
):
    await services.members.get_user(user_id)
    return await services.lending.user_loans(user_id)


@router.patch("/borrows/{loan_id}/payment", response_model=Loan.HistoryEntry)
@limiter.limit("30/minute")
async def record_payment(
    request: Request,
    loan_id: str = Path(...),
    payment_in: Loan.PaymentUpdate = Body(...),
    services: LibraryServices = Depends(get_services),
):
    return await services.lending.record_payment(loan_id, payment_in.status, payment_in.payment_id)
