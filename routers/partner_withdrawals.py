# routers/partner_withdrawals.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps_partner import get_current_partner
from app.withdrawal_service import (
    cancel_withdrawal,
    partner_withdrawal_overview,
    request_withdrawal,
)
from models.partners import Partner
from schemas.withdrawals import WithdrawalCreate, WithdrawalOut, WithdrawalOverview

router = APIRouter(prefix="/partner/withdrawals", tags=["Partner Withdrawals"])


@router.get("", response_model=WithdrawalOverview)
def partner_withdrawals(
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    return partner_withdrawal_overview(db, current_partner)


@router.post("", response_model=WithdrawalOut, status_code=201)
def partner_request_withdrawal(
    payload: WithdrawalCreate,
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    return request_withdrawal(db, current_partner.id, payload.amount)


@router.delete("/{request_id}", response_model=WithdrawalOut)
def partner_cancel_withdrawal(
    request_id: int,
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    return cancel_withdrawal(db, request_id, current_partner.id)
