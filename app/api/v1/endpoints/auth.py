# app/api/v1/endpoints/auth.py
from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from app.api.deps import get_services
from app.core.exceptions import Unauthorized
from app.core.rate_limiter import limiter
from app.core.security import create_user_token
from app.models.enum import UserRole
from app.models.token import AuthResponse, Token
from app.models.user import User, validate_user_response
from app.services.container import LibraryServices

router = APIRouter(tags=["Authentication"])

SELF_REGISTER_ROLES = (UserRole.STUDENT, UserRole.FACULTY)


# --- POST /register ---
@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/hour")
async def register_user(
    request: Request,
    user_in: User.Register = Body(...),
    services: LibraryServices = Depends(get_services),
):
    """Self-service sign-up for Students and Faculty. Librarians are created by librarians."""
    if user_in.role not in SELF_REGISTER_ROLES:
        logger.warning(f"Registration attempt with role '{user_in.role.value}' for '{user_in.email}' refused.")
        raise Unauthorized("Librarian accounts cannot be self-registered")
    user = await services.members.create_user(
        user_in.role, name=user_in.name, email=user_in.email, password=user_in.password
    )
    logger.info(f"User '{user.email}' registered as {user.role.value}.")
    return AuthResponse(access_token=create_user_token(user), user=validate_user_response(user))


# --- POST /login (JSON body) ---
@router.post("/login", response_model=AuthResponse)
@limiter.limit("20/minute")
async def login(
    request: Request,
    credentials: User.Login = Body(...),
    services: LibraryServices = Depends(get_services),
):
    user = await services.members.authenticate(credentials.email, credentials.password)
    logger.info(f"User '{user.email}' logged in.")
    return AuthResponse(access_token=create_user_token(user), user=validate_user_response(user))


# --- POST /token (OAuth2 password form, username = email) ---
@router.post("/token", response_model=Token)
@limiter.limit("20/minute")
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    services: LibraryServices = Depends(get_services),
):
    user = await services.members.authenticate(form_data.username, form_data.password)
    return Token(access_token=create_user_token(user))
