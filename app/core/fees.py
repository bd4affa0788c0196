# app/core/fees.py
"""Fee computation for returned loans.

Components are flat and independent of each other, so the total is a
plain sum. A loan returned late pays ``LATE_FEE`` once, however many days
overdue it is; any active reservation on the book adds
``RESERVATION_FEE`` (whoever placed it, including the returning user).
"""
from pydantic import BaseModel, Field

BASE_FEE: float = 0.0
LATE_FEE: float = 5.0
RESERVATION_FEE: float = 2.0


class FeeInputs(BaseModel):
    base_fee: float = Field(default=BASE_FEE, ge=0)
    is_overdue: bool = False
    has_reservation: bool = False


class FeeBreakdown(BaseModel):
    base_fee: float = 0.0
    late_fee: float = 0.0
    reservation_fee: float = 0.0
    total_fee: float = 0.0


def calculate_fees(inputs: FeeInputs) -> FeeBreakdown:
    late_fee = LATE_FEE if inputs.is_overdue else 0.0
    reservation_fee = RESERVATION_FEE if inputs.has_reservation else 0.0
    return FeeBreakdown(
        base_fee=inputs.base_fee,
        late_fee=late_fee,
        reservation_fee=reservation_fee,
        total_fee=inputs.base_fee + late_fee + reservation_fee,
    )
