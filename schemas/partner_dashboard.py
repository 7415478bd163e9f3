from pydantic import BaseModel
from decimal import Decimal
from datetime import datetime
from typing import Optional


class PartnerBookingItem(BaseModel):
    id: int
    amount: Decimal
    payment_status: str
    is_first_order_for_customer: bool
    commission_rate: Optional[Decimal] = None
    commission_bonus_rate: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None
    commission_status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PartnerReferralItem(BaseModel):
    booking_id: int
    referee_id: int
    reward_rate: Decimal
    reward_amount: Decimal
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PartnerSummary(BaseModel):
    tier: str
    effective_rate: Decimal
    total_bookings: int
    commission_calculated: Decimal
    commission_paid: Decimal
    referral_rewards: Decimal
    referred_partners: int
    available_balance: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal
