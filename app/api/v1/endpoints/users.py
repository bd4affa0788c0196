# app/api/v1/endpoints/users.py
from fastapi import APIRouter, Body, Depends, Request

from app.api.deps import get_services
from app.core.rate_limiter import limiter
from app.core.security import get_current_user
from app.models.user import User, validate_user_response
from app.services.container import LibraryServices

router = APIRouter(tags=["Users - Profile"])


# --- GET /profile ---
@router.get("/profile", response_model=User.Response)
@limiter.limit("60/minute")
async def read_profile(request: Request, current_user: User = Depends(get_current_user)):
    return validate_user_response(current_user)


# --- PUT /profile ---
@router.put("/profile", response_model=User.Response)
@limiter.limit("10/minute")
async def update_profile(
    request: Request,
    profile_in: User.SelfUpdate = Body(...),
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    """Edit own name, email or password. Role and borrow limit are not self-service."""
    user = await services.members.update_user(
        current_user.id,
        name=profile_in.name,
        email=profile_in.email,
        password=profile_in.password,
    )
    return validate_user_response(user)


# --- PATCH /profile/password ---
@router.patch("/profile/password")
@limiter.limit("5/minute")
async def change_password(
    request: Request,
    password_in: User.PasswordChange = Body(...),
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    await services.members.change_password(current_user.id, password_in.old_password, password_in.new_password)
    return {"message": "Password updated successfully"}


# --- GET /borrowed-count ---
@router.get("/borrowed-count")
@limiter.limit("60/minute")
async def borrowed_count(
    request: Request,
    current_user: User = Depends(get_current_user),
    services: LibraryServices = Depends(get_services),
):
    count = await services.members.count_borrowed(current_user.id)
    return {"count": count, "max_borrow_limit": current_user.max_borrow_limit}
