# app/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from bson import ObjectId
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from app.models.enum import UserRole
from app.models.user import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


# --- Password Functions ---
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# --- Token Functions ---
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_user_token(user: User) -> str:
    """Token whose subject is the user id; role is carried for clients only."""
    role = user.role.value if isinstance(user.role, UserRole) else user.role
    return create_access_token(data={"sub": str(user.id), "role": role})


def decode_subject(token: str) -> Optional[str]:
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    return payload.get("sub")


# --- Current user dependency ---
async def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme)
) -> User:
    """
    Resolve the caller from the user id placed on request.state by AuthMiddleware,
    decoding the token here when the middleware did not run.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id: Optional[str] = getattr(request.state, "user_id", None)
    if not user_id:
        logger.debug("User id not found in request state, decoding token in dependency.")
        try:
            user_id = decode_subject(token)
        except JWTError:
            logger.warning("Token decode failed in get_current_user dependency.")
            raise credentials_exception

    if not user_id or not ObjectId.is_valid(user_id):
        raise credentials_exception

    user = await User.get(ObjectId(user_id))
    if user is None:
        logger.warning(f"User '{user_id}' from token not found in database.")
        raise credentials_exception
    return user


# --- Role Checking Dependencies ---
def require_role(required_role: UserRole):
    """Dependency factory: caller must hold exactly ``required_role``."""
    async def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role != required_role:
            logger.warning(
                f"Forbidden: User '{current_user.email}' with role '{current_user.role.value}' "
                f"attempted action requiring role '{required_role.value}'."
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Operation not permitted. Required role: {required_role.value}"
            )
        return current_user
    return role_checker


require_librarian = require_role(UserRole.LIBRARIAN)
