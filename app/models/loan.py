# app/models/loan.py
from typing import Optional
from datetime import datetime, timedelta

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, ConfigDict, Field
from pymongo import IndexModel, ASCENDING, DESCENDING

from app.core.fees import FeeBreakdown
from app.core.utils import ensure_utc, utc_now
from app.models.book import Book
from app.models.enum import LoanStatus, PaymentStatus, UserRole

LOAN_PERIOD = timedelta(days=14)


class UserSummary(BaseModel):
    """Borrower reference shown in the librarian's loan history."""
    id: str
    name: str
    email: str
    role: UserRole
    model_config = ConfigDict(use_enum_values=True)


class Loan(Document):
    """A borrow transaction. Created on borrow, closed on return, never deleted."""
    user_id: PydanticObjectId
    book_id: PydanticObjectId
    borrowed_date: datetime
    due_date: datetime
    returned_date: Optional[datetime] = None
    status: LoanStatus = LoanStatus.BORROWED

    # Fee breakdown, filled in on return
    base_fee: float = Field(default=0.0, ge=0)
    late_fee: float = Field(default=0.0, ge=0)
    reservation_fee: float = Field(default=0.0, ge=0)

    # Payment result as reported by the payment provider
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_id: Optional[str] = None
    paid_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "loans"
        indexes = [
            IndexModel([("user_id", ASCENDING), ("book_id", ASCENDING), ("status", ASCENDING)], name="loan_user_book_status_index"),
            IndexModel([("status", ASCENDING)], name="loan_status_index"),
            IndexModel([("borrowed_date", DESCENDING)], name="loan_borrowed_date_index"),
        ]

    def is_overdue(self, now: datetime) -> bool:
        """Unreturned and past due. Derived on demand, never persisted."""
        return self.returned_date is None and now > ensure_utc(self.due_date)

    @property
    def total_fee(self) -> float:
        return self.base_fee + self.late_fee + self.reservation_fee

    def fee_breakdown(self) -> FeeBreakdown:
        return FeeBreakdown(
            base_fee=self.base_fee,
            late_fee=self.late_fee,
            reservation_fee=self.reservation_fee,
            total_fee=self.total_fee,
        )

    # --- Pydantic Schemas ---
    class BorrowRequest(BaseModel):
        book_id: str = Field(..., alias="bookId")
        model_config = ConfigDict(populate_by_name=True)

    class BorrowSummary(BaseModel):
        id: str
        book: Book.Summary
        borrowed_date: datetime
        due_date: datetime

    class ReturnResult(BaseModel):
        id: str
        returned_date: datetime
        fees: FeeBreakdown

    class HistoryEntry(BaseModel):
        id: str
        user: Optional[UserSummary] = None
        book: Optional[Book.Summary] = None
        borrowed_date: datetime
        due_date: datetime
        returned_date: Optional[datetime] = None
        status: LoanStatus
        fees: FeeBreakdown
        payment_status: PaymentStatus
        payment_id: Optional[str] = None
        paid_at: Optional[datetime] = None
        model_config = ConfigDict(use_enum_values=True)

    class PaymentUpdate(BaseModel):
        status: PaymentStatus
        payment_id: Optional[str] = Field(None, max_length=200)
