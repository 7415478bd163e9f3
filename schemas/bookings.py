# schemas/bookings.py

from pydantic import BaseModel, EmailStr, Field
from decimal import Decimal
from typing import Optional


class BookingCreate(BaseModel):
    partner_id: Optional[int] = None
    # JPY, consumption tax included
    amount: Decimal = Field(..., gt=0)
    customer_email: Optional[EmailStr] = None
    # derived from earlier PAID bookings of the same customer when omitted
    is_first_order: Optional[bool] = None
    calculate: bool = True


class CommissionResult(BaseModel):
    booking_id: int
    commission_amount: Optional[Decimal] = None
    commission_rate_applied: Optional[Decimal] = None
    first_order_bonus_rate: Optional[Decimal] = None
    commission_status: str


class RefundRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)
