# app/services/membership.py
from typing import List, Optional

from loguru import logger

from app.core.exceptions import AlreadyExists, InvalidCredentials, NotFound
from app.core.security import get_password_hash, verify_password
from app.core.utils import Clock, parse_object_id, utc_now
from app.models.enum import LoanStatus, UserRole
from app.models.loan import Loan
from app.models.user import User, build_user

DEFAULT_PASSWORD = "password123"


class MembershipStore:
    """Users, their roles and the borrow limit each role implies."""

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock

    async def find_user(self, user_id) -> Optional[User]:
        return await User.get(parse_object_id(user_id, "user"))

    async def get_user(self, user_id) -> User:
        user = await self.find_user(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        return await User.find_one(User.email == email)

    async def list_users(self, skip: int = 0, limit: int = 100) -> List[User]:
        return await User.find_all(skip=skip, limit=limit).sort("+name").to_list()

    async def count_borrowed(self, user_id) -> int:
        """Number of loans the user currently has in Borrowed status."""
        oid = parse_object_id(user_id, "user")
        return await Loan.find(Loan.user_id == oid, Loan.status == LoanStatus.BORROWED).count()

    async def create_user(self, role: UserRole, *, name: str, email: str, password: Optional[str] = None) -> User:
        if await self.get_by_email(email):
            raise AlreadyExists("User with this email already exists")
        user = build_user(
            role,
            name=name,
            email=email,
            hashed_password=get_password_hash(password or DEFAULT_PASSWORD),
        )
        now = self.clock()
        user.created_at = now
        user.updated_at = now
        await user.insert()
        logger.info(f"User '{user.email}' created with role {user.role.value} (limit {user.max_borrow_limit}).")
        return user

    async def authenticate(self, email: str, password: str) -> User:
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            raise InvalidCredentials("Invalid email or password")
        return user

    async def update_user(
        self,
        user_id,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> User:
        """Apply the given changes. A role change recomputes the borrow limit."""
        user = await self.get_user(user_id)
        if name:
            user.name = name
        if email and email != user.email:
            existing = await self.get_by_email(email)
            if existing and existing.id != user.id:
                raise AlreadyExists("Email already taken by another user")
            user.email = email
        if password:
            user.hashed_password = get_password_hash(password)
        if role is not None:
            user.apply_role(role)
        user.updated_at = self.clock()
        await user.save()
        logger.info(f"User {user.id} updated.")
        return user

    async def change_role(self, user_id, role: UserRole) -> User:
        return await self.update_user(user_id, role=role)

    async def change_password(self, user_id, old_password: str, new_password: str) -> User:
        user = await self.get_user(user_id)
        if not verify_password(old_password, user.hashed_password):
            raise InvalidCredentials("Current password is incorrect")
        return await self.update_user(user.id, password=new_password)

    async def delete_user(self, user_id) -> None:
        user = await self.get_user(user_id)
        await user.delete()
        logger.warning(f"User '{user.email}' ({user.id}) deleted.")
