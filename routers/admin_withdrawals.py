# routers/admin_withdrawals.py

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from app.db import get_db
from app.email_service import send_withdrawal_status_email
from app.withdrawal_service import list_withdrawals, transition_withdrawal, withdrawal_stats
from models.admin import Admin
from models.partners import Partner
from routers.auth_admin import get_current_admin
from schemas.withdrawals import AdminWithdrawalList, WithdrawalActionRequest, WithdrawalOut

router = APIRouter(
    prefix="/admin/withdrawals",
    tags=["Admin Withdrawals"],
)


# ---------------------------------------------------------
# 1) LIST + STATS
# ---------------------------------------------------------
@router.get("", response_model=AdminWithdrawalList)
def admin_list_withdrawals(
    status: Optional[str] = Query(default=None, pattern="^(all|pending|approved|processing|completed|rejected|cancelled)$"),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return {
        "withdrawals": list_withdrawals(db, status),
        "stats": withdrawal_stats(db),
    }


# ---------------------------------------------------------
# 2) APPROVE / REJECT / PROCESS / COMPLETE
# ---------------------------------------------------------
@router.post("/{request_id}/action", response_model=WithdrawalOut)
def admin_withdrawal_action(
    request_id: int,
    payload: WithdrawalActionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    withdrawal = transition_withdrawal(
        db,
        request_id,
        payload.action,
        admin=admin,
        review_note=payload.review_note,
        payment_reference=payload.payment_reference,
    )

    partner = db.query(Partner).filter(Partner.id == withdrawal.partner_id).first()
    if partner:
        background_tasks.add_task(
            send_withdrawal_status_email,
            partner.email,
            partner.name,
            withdrawal.id,
            withdrawal.status.value,
            withdrawal.amount,
            withdrawal.review_note,
            withdrawal.payment_reference,
        )

    return withdrawal
