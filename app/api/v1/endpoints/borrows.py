# app/api/v1/endpoints/borrows.py
from typing import List

from fastapi import APIRouter, Body, Depends, Request, status
from loguru import logger

from app.api.deps import get_services
from app.core.rate_limiter import limiter
from app.core.security import get_current_user
from app.models.loan import Loan
from app.models.user import User
from app.services.container import LibraryServices

router = APIRouter(tags=["Borrowing"])


# --- POST --- (borrow a copy)
@router.post("", response_model=Loan.BorrowSummary, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def borrow_book(
    request: Request,
    borrow_in: Loan.BorrowRequest = Body(...),
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    logger.info(f"User '{current_user.email}' requests to borrow book {borrow_in.book_id}.")
    return await services.lending.borrow(current_user.id, borrow_in.book_id)


# --- POST /return ---
@router.post("/return", response_model=Loan.ReturnResult)
@limiter.limit("20/minute")
async def return_book(
    request: Request,
    return_in: Loan.BorrowRequest = Body(...),
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    logger.info(f"User '{current_user.email}' returns book {return_in.book_id}.")
    return await services.lending.return_book(current_user.id, return_in.book_id)


# --- GET --- (caller's loan history)
@router.get("", response_model=List[Loan.HistoryEntry])
@limiter.limit("60/minute")
async def my_loans(
    request: Request,
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    return await services.lending.user_loans(current_user.id)
