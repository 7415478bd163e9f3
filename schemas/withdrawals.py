# schemas/withdrawals.py

from pydantic import BaseModel, Field
from decimal import Decimal
from datetime import datetime
from typing import Optional, List

from app.withdrawal_service import WithdrawalAction
from models.withdrawal_requests import WithdrawalStatus


class WithdrawalCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)


class WithdrawalActionRequest(BaseModel):
    action: WithdrawalAction
    review_note: Optional[str] = Field(None, max_length=500)
    payment_reference: Optional[str] = Field(None, max_length=100)


class WithdrawalOut(BaseModel):
    id: int
    partner_id: int
    amount: Decimal
    status: WithdrawalStatus
    bank_name: Optional[str] = None
    bank_branch: Optional[str] = None
    account_type: Optional[str] = None
    account_number: Optional[str] = None
    account_holder: Optional[str] = None
    review_note: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    payment_reference: Optional[str] = None
    payment_method: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BalanceInfo(BaseModel):
    available: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal
    pending: Decimal


class BankInfo(BaseModel):
    bank_name: Optional[str] = None
    bank_branch: Optional[str] = None
    account_type: Optional[str] = None
    account_number: Optional[str] = None
    account_holder: Optional[str] = None


class WithdrawalOverview(BaseModel):
    balance: BalanceInfo
    bank_info: BankInfo
    withdrawals: List[WithdrawalOut]
    min_amount: Decimal


class StatusStat(BaseModel):
    count: int
    amount: Decimal


class AdminWithdrawalList(BaseModel):
    withdrawals: List[WithdrawalOut]
    stats: dict[str, StatusStat]
