# app/api/v1/endpoints/reservations.py
from typing import List

from fastapi import APIRouter, Body, Depends, Path, Request, status

from app.api.deps import get_services
from app.core.rate_limiter import limiter
from app.core.security import get_current_user
from app.models.reservation import Reservation
from app.models.user import User
from app.services.container import LibraryServices

router = APIRouter(tags=["Reservations"])


@router.post("", response_model=Reservation.Response, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_reservation(
    request: Request,
    reservation_in: Reservation.Create = Body(...),
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    return await services.lending.reserve(current_user.id, reservation_in.book_id)


@router.get("", response_model=List[Reservation.Response])
@limiter.limit("60/minute")
async def my_reservations(
    request: Request,
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    """The caller's reservations, newest first."""
    return await services.lending.user_reservations(current_user.id)


@router.delete("/{reservation_id}", response_model=Reservation.Response)
@limiter.limit("20/minute")
async def cancel_reservation(
    request: Request,
    reservation_id: str = Path(...),
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    return await services.lending.cancel_reservation(reservation_id, current_user.id)
