# schemas/partners.py

from pydantic import BaseModel, EmailStr, Field
from decimal import Decimal
from typing import Optional
from datetime import datetime

from models.partners import (
    PartnerStatus,
    PartnerTier,
    SubscriptionStatus,
    EntryFeeStatus,
    KycStatus,
)


class PartnerRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    # referral code of the partner who invited this one
    referrer_code: Optional[str] = None


class PartnerOut(BaseModel):
    id: int
    name: str
    email: EmailStr
    referral_code: str
    status: PartnerStatus
    tier: PartnerTier
    subscription_status: SubscriptionStatus
    entry_fee_status: EntryFeeStatus
    kyc_status: KycStatus
    referrer_id: Optional[int] = None
    available_balance: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class BankAccountUpdate(BaseModel):
    bank_name: str = Field(..., min_length=1, max_length=150)
    bank_branch: Optional[str] = Field(None, max_length=150)
    bank_account_type: Optional[str] = Field(None, max_length=30)
    bank_account_number: str = Field(..., min_length=1, max_length=50)
    bank_account_holder: str = Field(..., min_length=1, max_length=150)


class KycSubmit(BaseModel):
    document_type: str = Field(..., min_length=1, max_length=50)


# ------------------------
# Admin side
# ------------------------
class PartnerStatusUpdate(BaseModel):
    status: PartnerStatus


class KycReview(BaseModel):
    kyc_status: KycStatus


class PartnerBalanceRow(BaseModel):
    partner_id: int
    partner_name: str
    referral_code: str
    available_balance: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal
    ledger_balance: Decimal
    in_sync: bool
