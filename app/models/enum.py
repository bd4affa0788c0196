# app/models/enum.py
from enum import Enum


class UserRole(str, Enum):
    STUDENT = "STUDENT"
    FACULTY = "FACULTY"
    LIBRARIAN = "LIBRARIAN"


class LoanStatus(str, Enum):
    BORROWED = "BORROWED"
    RETURNED = "RETURNED"  # terminal


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    NOTIFIED = "NOTIFIED"
    CANCELLED = "CANCELLED"


# Pending and Notified entries still hold a place in the queue
ACTIVE_RESERVATION_STATUSES = (ReservationStatus.PENDING, ReservationStatus.NOTIFIED)
