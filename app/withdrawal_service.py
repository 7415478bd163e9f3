# app/withdrawal_service.py

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import enum
import logging
from typing import Any, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import ledger
from app.audit_service import record_admin_action
from app.errors import (
    BankInfoRequired,
    IllegalStateTransition,
    InsufficientBalance,
    InvalidAmount,
    KycRequired,
    PartnerNotFound,
    PaymentReferenceRequired,
    PendingWithdrawalExists,
    WithdrawalNotFound,
)
from models.partners import Partner, KycStatus
from models.partner_ledger import LedgerEntryKind
from models.withdrawal_requests import (
    WithdrawalRequest,
    WithdrawalStatus,
    ACTIVE_WITHDRAWAL_STATUSES,
)

logger = logging.getLogger(__name__)

MIN_WITHDRAWAL_AMOUNT = Decimal("5000")
MAX_WITHDRAWAL_AMOUNT = Decimal("10000000")


class WithdrawalAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    PROCESS = "process"
    COMPLETE = "complete"


# status -> {action -> next status}
ALLOWED_TRANSITIONS: dict[WithdrawalStatus, dict[WithdrawalAction, WithdrawalStatus]] = {
    WithdrawalStatus.PENDING: {
        WithdrawalAction.APPROVE: WithdrawalStatus.APPROVED,
        WithdrawalAction.REJECT: WithdrawalStatus.REJECTED,
    },
    WithdrawalStatus.APPROVED: {
        WithdrawalAction.PROCESS: WithdrawalStatus.PROCESSING,
        WithdrawalAction.REJECT: WithdrawalStatus.REJECTED,
    },
    WithdrawalStatus.PROCESSING: {
        WithdrawalAction.COMPLETE: WithdrawalStatus.COMPLETED,
    },
}


def _has_active_request(db: Session, partner_id: int) -> bool:
    return (
        db.query(WithdrawalRequest.id)
        .filter(
            WithdrawalRequest.partner_id == partner_id,
            WithdrawalRequest.status.in_(ACTIVE_WITHDRAWAL_STATUSES),
        )
        .first()
        is not None
    )


# ---------------------------------------------------------
# 1) PARTNER: NEW REQUEST
# ---------------------------------------------------------
def request_withdrawal(db: Session, partner_id: int, amount) -> WithdrawalRequest:
    """
    Reserves `amount` from the available balance and opens a pending request.
    The balance is debited right away; reject / cancel give it back.
    """
    try:
        amount = Decimal(str(amount))
    except ArithmeticError:
        raise InvalidAmount()

    if amount != amount.to_integral_value():
        raise InvalidAmount("Withdrawal amount must be a whole number of yen.")
    if amount < MIN_WITHDRAWAL_AMOUNT:
        raise InvalidAmount(f"Minimum withdrawal amount is ¥{int(MIN_WITHDRAWAL_AMOUNT):,}.")
    if amount > MAX_WITHDRAWAL_AMOUNT:
        raise InvalidAmount(f"Maximum withdrawal amount is ¥{int(MAX_WITHDRAWAL_AMOUNT):,}.")

    partner = db.query(Partner).filter(Partner.id == partner_id).with_for_update().first()
    if not partner:
        raise PartnerNotFound()

    if partner.kyc_status != KycStatus.APPROVED:
        raise KycRequired()

    if not partner.has_bank_info:
        raise BankInfoRequired()

    if _has_active_request(db, partner.id):
        raise PendingWithdrawalExists()

    if Decimal(str(partner.available_balance or 0)) < amount:
        raise InsufficientBalance()

    withdrawal = WithdrawalRequest(
        partner_id=partner.id,
        amount=amount,
        status=WithdrawalStatus.PENDING,
        bank_name=partner.bank_name,
        bank_branch=partner.bank_branch,
        account_type=partner.bank_account_type,
        account_number=partner.bank_account_number,
        account_holder=partner.bank_account_holder,
    )

    entry = ledger.debit(db, partner.id, amount, LedgerEntryKind.WITHDRAWAL_RESERVE)

    # partial unique index: one active request per partner
    try:
        with db.begin_nested():
            db.add(withdrawal)
            db.flush()
    except IntegrityError:
        raise PendingWithdrawalExists()

    entry.withdrawal_id = withdrawal.id
    db.commit()
    db.refresh(withdrawal)

    logger.info("Withdrawal requested id=%s partner_id=%s amount=%s", withdrawal.id, partner.id, amount)
    return withdrawal


# ---------------------------------------------------------
# 2) PARTNER: CANCEL (only while pending)
# ---------------------------------------------------------
def cancel_withdrawal(db: Session, request_id: int, partner_id: int) -> WithdrawalRequest:
    withdrawal = (
        db.query(WithdrawalRequest)
        .filter(WithdrawalRequest.id == request_id)
        .with_for_update()
        .first()
    )
    if not withdrawal or withdrawal.partner_id != partner_id:
        raise WithdrawalNotFound()

    if withdrawal.status != WithdrawalStatus.PENDING:
        raise IllegalStateTransition("Only pending withdrawal requests can be cancelled.")

    withdrawal.status = WithdrawalStatus.CANCELLED
    db.add(withdrawal)
    db.flush()

    ledger.credit(
        db,
        withdrawal.partner_id,
        Decimal(str(withdrawal.amount)),
        LedgerEntryKind.WITHDRAWAL_RELEASE,
        withdrawal_id=withdrawal.id,
        note="cancelled",
    )

    db.commit()
    db.refresh(withdrawal)

    logger.info("Withdrawal cancelled id=%s partner_id=%s", withdrawal.id, partner_id)
    return withdrawal


# ---------------------------------------------------------
# 3) ADMIN: APPROVE / REJECT / PROCESS / COMPLETE
# ---------------------------------------------------------
def transition_withdrawal(
    db: Session,
    request_id: int,
    action: WithdrawalAction | str,
    *,
    admin: Optional[Any] = None,
    review_note: Optional[str] = None,
    payment_reference: Optional[str] = None,
) -> WithdrawalRequest:
    try:
        action = WithdrawalAction(action)
    except ValueError:
        raise IllegalStateTransition(f"Unknown action: {action}")

    withdrawal = (
        db.query(WithdrawalRequest)
        .filter(WithdrawalRequest.id == request_id)
        .with_for_update()
        .first()
    )
    if not withdrawal:
        raise WithdrawalNotFound()

    next_status = ALLOWED_TRANSITIONS.get(withdrawal.status, {}).get(action)
    if next_status is None:
        raise IllegalStateTransition(
            f"Action {action.value} is not allowed for status {withdrawal.status.value}."
        )

    payment_reference = (payment_reference or "").strip() or None
    if action == WithdrawalAction.COMPLETE and not payment_reference:
        raise PaymentReferenceRequired()

    now = datetime.now(timezone.utc)
    amount = Decimal(str(withdrawal.amount))
    withdrawal.status = next_status

    if action in (WithdrawalAction.APPROVE, WithdrawalAction.REJECT):
        withdrawal.reviewed_by = getattr(admin, "id", None)
        withdrawal.reviewed_at = now
        withdrawal.review_note = (review_note or "").strip() or None

    db.add(withdrawal)
    db.flush()

    if action == WithdrawalAction.REJECT:
        ledger.credit(
            db,
            withdrawal.partner_id,
            amount,
            LedgerEntryKind.WITHDRAWAL_RELEASE,
            withdrawal_id=withdrawal.id,
            note="rejected",
        )

    if action == WithdrawalAction.COMPLETE:
        withdrawal.payment_reference = payment_reference
        withdrawal.payment_method = "bank_transfer"
        withdrawal.paid_at = now
        db.execute(
            update(Partner)
            .where(Partner.id == withdrawal.partner_id)
            .values(total_withdrawn=Partner.total_withdrawn + amount)
            .execution_options(synchronize_session=False)
        )
        ledger.expire_balances(db, withdrawal.partner_id)

    db.commit()
    db.refresh(withdrawal)

    logger.info(
        "Withdrawal id=%s %s -> %s by admin_id=%s",
        withdrawal.id,
        action.value,
        withdrawal.status.value,
        getattr(admin, "id", None),
    )

    record_admin_action(
        db,
        action=f"withdrawal_{action.value}",
        entity_type="withdrawal_request",
        entity_id=withdrawal.id,
        admin=admin,
        details={
            "amount": int(amount),
            "review_note": review_note,
            "payment_reference": payment_reference,
        },
    )
    return withdrawal


# ---------------------------------------------------------
# 4) READ SIDE
# ---------------------------------------------------------
def partner_withdrawal_overview(db: Session, partner: Partner) -> dict[str, Any]:
    withdrawals = (
        db.query(WithdrawalRequest)
        .filter(WithdrawalRequest.partner_id == partner.id)
        .order_by(WithdrawalRequest.created_at.desc(), WithdrawalRequest.id.desc())
        .limit(50)
        .all()
    )

    pending_amount = sum(
        (Decimal(str(w.amount)) for w in withdrawals if w.status in ACTIVE_WITHDRAWAL_STATUSES),
        Decimal("0"),
    )

    return {
        "balance": {
            "available": partner.available_balance or 0,
            "total_earned": partner.total_earned or 0,
            "total_withdrawn": partner.total_withdrawn or 0,
            "pending": pending_amount,
        },
        "bank_info": {
            "bank_name": partner.bank_name,
            "bank_branch": partner.bank_branch,
            "account_type": partner.bank_account_type,
            "account_number": partner.bank_account_number,
            "account_holder": partner.bank_account_holder,
        },
        "withdrawals": withdrawals,
        "min_amount": MIN_WITHDRAWAL_AMOUNT,
    }


def withdrawal_stats(db: Session) -> dict[str, dict[str, Any]]:
    """Count and total amount per in-flight status."""
    rows = (
        db.query(
            WithdrawalRequest.status,
            func.count(WithdrawalRequest.id),
            func.coalesce(func.sum(WithdrawalRequest.amount), 0),
        )
        .filter(WithdrawalRequest.status.in_(ACTIVE_WITHDRAWAL_STATUSES))
        .group_by(WithdrawalRequest.status)
        .all()
    )

    stats = {s.value: {"count": 0, "amount": Decimal("0")} for s in ACTIVE_WITHDRAWAL_STATUSES}
    for status, count, amount in rows:
        stats[status.value] = {"count": int(count), "amount": Decimal(str(amount))}
    return stats


def list_withdrawals(db: Session, status: Optional[str] = None, limit: int = 100) -> list[WithdrawalRequest]:
    q = db.query(WithdrawalRequest).order_by(WithdrawalRequest.created_at.desc(), WithdrawalRequest.id.desc())
    if status and status != "all":
        q = q.filter(WithdrawalRequest.status == WithdrawalStatus(status))
    return q.limit(limit).all()
