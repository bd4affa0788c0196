# app/models/user.py
from typing import Optional, Dict
from datetime import datetime

from beanie import Document
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pymongo import IndexModel, ASCENDING

from app.core.utils import utc_now
from app.models.enum import UserRole

# Borrow cap per role; the stored max_borrow_limit is always derived from this table
BORROW_LIMITS: Dict[UserRole, int] = {
    UserRole.STUDENT: 3,
    UserRole.FACULTY: 5,
    UserRole.LIBRARIAN: 10,
}


def borrow_limit_for(role: UserRole) -> int:
    try:
        return BORROW_LIMITS[UserRole(role)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown user role: {role}")


class User(Document):
    name: str
    email: EmailStr
    hashed_password: str
    role: UserRole = Field(default=UserRole.STUDENT)
    max_borrow_limit: int = Field(default=BORROW_LIMITS[UserRole.STUDENT], gt=0)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "users"
        indexes = [
            IndexModel([("email", ASCENDING)], name="user_email_unique_index", unique=True),
            IndexModel([("role", ASCENDING)], name="user_role_index"),
        ]

    def apply_role(self, role: UserRole) -> None:
        """Switch role and recompute the borrow limit from it."""
        self.role = UserRole(role)
        self.max_borrow_limit = borrow_limit_for(self.role)

    def can_borrow(self, current_borrowed: int) -> bool:
        return current_borrowed < self.max_borrow_limit

    # --- Pydantic Schemas ---
    class Register(BaseModel):
        name: str = Field(..., min_length=1, max_length=200)
        email: EmailStr
        password: str = Field(..., min_length=6)
        role: UserRole

    class Login(BaseModel):
        email: EmailStr
        password: str

    class AdminCreate(BaseModel):
        name: str = Field(..., min_length=1, max_length=200)
        email: EmailStr
        role: UserRole
        password: Optional[str] = Field(None, min_length=6)

    class AdminUpdate(BaseModel):
        name: Optional[str] = Field(None, min_length=1, max_length=200)
        email: Optional[EmailStr] = None
        password: Optional[str] = Field(None, min_length=6)
        role: Optional[UserRole] = None

    class SelfUpdate(BaseModel):
        name: Optional[str] = Field(None, min_length=1, max_length=200)
        email: Optional[EmailStr] = None
        password: Optional[str] = Field(None, min_length=6)

    class PasswordChange(BaseModel):
        old_password: str
        new_password: str = Field(..., min_length=6)

    class RoleChange(BaseModel):
        role: UserRole

    class Response(BaseModel):
        id: str
        name: str
        email: EmailStr
        role: UserRole
        max_borrow_limit: int
        model_config = ConfigDict(from_attributes=True, use_enum_values=True)


def build_user(role: UserRole, *, name: str, email: str, hashed_password: str) -> User:
    """Construct a user whose borrow limit follows from its role."""
    role = UserRole(role)
    return User(
        name=name,
        email=email,
        hashed_password=hashed_password,
        role=role,
        max_borrow_limit=borrow_limit_for(role),
    )


def validate_user_response(user_doc: User) -> User.Response:
    return User.Response(
        id=str(user_doc.id),
        name=user_doc.name,
        email=user_doc.email,
        role=user_doc.role,
        max_borrow_limit=user_doc.max_borrow_limit,
    )
