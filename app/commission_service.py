# app/commission_service.py

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app import ledger
from app.errors import (
    BookingNotFound,
    IllegalStateTransition,
    IneligiblePartner,
    InvalidAmount,
)
from app.ledger import yen
from app.referral_service import create_referral_reward, mark_reward_paid, reverse_referral_reward
from app.subscription_service import effective_rate, evaluate_tier
from models.bookings import Booking, CommissionStatus, PaymentStatus
from models.partners import Partner, PartnerStatus
from models.partner_ledger import LedgerEntryKind

logger = logging.getLogger(__name__)

# Japanese consumption tax included in booking amounts (fixed, not per-locale)
CONSUMPTION_TAX_DIVISOR = Decimal("1.1")

# Extra percentage points on a customer's first order
FIRST_ORDER_BONUS_PCT = Decimal("5")


# ---------------------------------------------------------
# PURE CALCULATION
# ---------------------------------------------------------
def net_of_tax(amount: Decimal) -> Decimal:
    return Decimal(amount) / CONSUMPTION_TAX_DIVISOR


def compute_commission(amount, rate_pct, is_first_order: bool = False) -> Decimal:
    """
    commission = round_half_up(net * rate) + round_half_up(net * 5%) on a first order,
    net = amount / 1.1. Whole yen.

    Base and bonus are rounded separately, so a first order always earns
    exactly the regular commission plus the rounded bonus.
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        raise InvalidAmount("Booking amount must be greater than zero.")

    net = net_of_tax(amount)
    base = yen(net * Decimal(str(rate_pct)) / Decimal("100"))
    if not is_first_order:
        return base
    return base + yen(net * FIRST_ORDER_BONUS_PCT / Decimal("100"))


def _commission_result(booking: Booking) -> dict[str, Any]:
    return {
        "booking_id": booking.id,
        "commission_amount": booking.commission_amount,
        "commission_rate_applied": booking.commission_rate,
        "first_order_bonus_rate": booking.commission_bonus_rate,
        "commission_status": booking.commission_status.value,
    }


def _lock_booking(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).with_for_update().first()
    if not booking:
        raise BookingNotFound()
    return booking


# ---------------------------------------------------------
# BOOKING COMPLETION
# ---------------------------------------------------------
def is_first_order_for_customer(db: Session, customer_email: Optional[str]) -> bool:
    if not customer_email:
        return False
    previous = (
        db.query(Booking.id)
        .filter(
            Booking.customer_email == customer_email,
            Booking.payment_status == PaymentStatus.PAID,
        )
        .first()
    )
    return previous is None


def ensure_partner_eligible(db: Session, partner_id: Optional[int], *, for_update: bool = False) -> Partner:
    """Only approved partners earn commission."""
    partner = None
    if partner_id:
        q = db.query(Partner).filter(Partner.id == partner_id)
        if for_update:
            q = q.with_for_update()
        partner = q.first()
    if not partner or partner.status != PartnerStatus.APPROVED:
        raise IneligiblePartner()
    return partner


def create_booking(
    db: Session,
    *,
    partner_id: Optional[int],
    amount,
    customer_email: Optional[str] = None,
    is_first_order: Optional[bool] = None,
) -> Booking:
    amount = Decimal(str(amount))
    if amount <= 0:
        raise InvalidAmount("Booking amount must be greater than zero.")

    if is_first_order is None:
        is_first_order = is_first_order_for_customer(db, customer_email)

    booking = Booking(
        customer_email=customer_email,
        amount=yen(amount),
        partner_id=partner_id,
        is_first_order_for_customer=bool(is_first_order),
        payment_status=PaymentStatus.PAID,
        commission_status=CommissionStatus.PENDING,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def calculate_booking_commission(db: Session, booking_id: int) -> dict[str, Any]:
    """
    Computes and stores the commission of a completed booking, exactly once.

    A booking already past `pending` returns its stored snapshot untouched.
    The pending -> calculated transition is a conditional UPDATE: only the
    request that wins it credits the partner and fires the referral override.
    """
    booking = _lock_booking(db, booking_id)

    if booking.commission_status != CommissionStatus.PENDING:
        return _commission_result(booking)

    amount = Decimal(str(booking.amount))
    if amount <= 0:
        raise InvalidAmount("Booking amount must be greater than zero.")

    partner = ensure_partner_eligible(db, booking.partner_id, for_update=True)

    if evaluate_tier(partner):
        db.add(partner)

    rate = effective_rate(partner)
    bonus_rate = FIRST_ORDER_BONUS_PCT if booking.is_first_order_for_customer else Decimal("0")
    commission = compute_commission(amount, rate, booking.is_first_order_for_customer)

    result = db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.commission_status == CommissionStatus.PENDING)
        .values(
            commission_rate=rate,
            commission_bonus_rate=bonus_rate,
            commission_amount=commission,
            commission_status=CommissionStatus.CALCULATED,
            commission_calculated_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # another request calculated it first
        db.rollback()
        booking = _lock_booking(db, booking_id)
        return _commission_result(booking)

    if commission > 0:
        ledger.credit(
            db,
            partner.id,
            commission,
            LedgerEntryKind.COMMISSION,
            count_as_earned=True,
            booking_id=booking.id,
        )

    # edge-triggered: only reached on the pending -> calculated transition
    create_referral_reward(db, booking_id=booking.id, referee=partner, commission_amount=commission)

    db.commit()
    db.refresh(booking)

    logger.info(
        "Commission calculated booking_id=%s partner_id=%s rate=%s first_order=%s amount=%s",
        booking.id,
        partner.id,
        rate,
        booking.is_first_order_for_customer,
        commission,
    )
    return _commission_result(booking)


# ---------------------------------------------------------
# SETTLEMENT / REFUND
# ---------------------------------------------------------
def settle_booking_commission(db: Session, booking_id: int) -> dict[str, Any]:
    booking = _lock_booking(db, booking_id)
    if booking.commission_status != CommissionStatus.CALCULATED:
        raise IllegalStateTransition(
            f"Commission in status {booking.commission_status.value} cannot be settled."
        )

    booking.commission_status = CommissionStatus.PAID
    mark_reward_paid(db, booking.id)

    db.add(booking)
    db.commit()
    db.refresh(booking)
    return _commission_result(booking)


def reverse_booking_commission(db: Session, booking_id: int, reason: Optional[str] = None) -> dict[str, Any]:
    """
    Refund of a booking whose commission was already credited.
    The stored snapshot is left as is; the money goes back through negative
    ledger entries for the partner and, if any, for the referrer's reward.
    """
    booking = _lock_booking(db, booking_id)
    if booking.commission_status not in (CommissionStatus.CALCULATED, CommissionStatus.PAID):
        raise IllegalStateTransition(
            f"Commission in status {booking.commission_status.value} cannot be reversed."
        )

    commission = Decimal(str(booking.commission_amount or 0))
    if commission > 0 and booking.partner_id:
        ledger.debit(
            db,
            booking.partner_id,
            commission,
            LedgerEntryKind.COMMISSION_REVERSAL,
            reduce_earned=True,
            booking_id=booking.id,
            note=(reason or "")[:255] or None,
        )

    reverse_referral_reward(db, booking.id, note=reason)

    booking.commission_status = CommissionStatus.REVERSED
    booking.payment_status = PaymentStatus.REFUNDED
    booking.refunded_at = datetime.now(timezone.utc)

    db.add(booking)
    db.commit()
    db.refresh(booking)

    logger.info("Commission reversed booking_id=%s amount=%s", booking.id, commission)
    return _commission_result(booking)
