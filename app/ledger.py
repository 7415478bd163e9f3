# app/ledger.py

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
import logging
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.errors import InsufficientBalance
from models.partners import Partner
from models.partner_ledger import PartnerLedgerEntry, LedgerEntryKind

logger = logging.getLogger(__name__)


def yen(v: Decimal) -> Decimal:
    """Round half-up to whole yen."""
    return Decimal(v).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


BALANCE_COLUMNS = ["available_balance", "total_earned", "total_withdrawn"]


def expire_balances(db: Session, partner_id: int) -> None:
    """Balances are changed by plain UPDATEs; drop any copy held by the session."""
    partner = db.get(Partner, partner_id)
    if partner is not None:
        db.expire(partner, BALANCE_COLUMNS)


def _append(
    db: Session,
    *,
    partner_id: int,
    kind: LedgerEntryKind,
    amount: Decimal,
    booking_id: Optional[int] = None,
    withdrawal_id: Optional[int] = None,
    referral_reward_id: Optional[int] = None,
    note: Optional[str] = None,
) -> PartnerLedgerEntry:
    entry = PartnerLedgerEntry(
        partner_id=partner_id,
        kind=kind,
        amount=amount,
        booking_id=booking_id,
        withdrawal_id=withdrawal_id,
        referral_reward_id=referral_reward_id,
        note=note,
    )
    db.add(entry)
    return entry


def credit(
    db: Session,
    partner_id: int,
    amount: Decimal,
    kind: LedgerEntryKind,
    *,
    count_as_earned: bool = False,
    **refs,
) -> PartnerLedgerEntry:
    """
    Adds `amount` to the available balance (and to total_earned for
    commissions / rewards) with a single UPDATE, then appends the entry.
    Does not commit.
    """
    amount = yen(amount)
    values = {"available_balance": Partner.available_balance + amount}
    if count_as_earned:
        values["total_earned"] = Partner.total_earned + amount

    db.execute(
        update(Partner)
        .where(Partner.id == partner_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    expire_balances(db, partner_id)
    logger.info("Ledger credit partner_id=%s kind=%s amount=%s", partner_id, kind.value, amount)
    return _append(db, partner_id=partner_id, kind=kind, amount=amount, **refs)


def debit(
    db: Session,
    partner_id: int,
    amount: Decimal,
    kind: LedgerEntryKind,
    *,
    reduce_earned: bool = False,
    **refs,
) -> PartnerLedgerEntry:
    """
    Subtracts `amount` only if the balance covers it
    (UPDATE ... WHERE available_balance >= amount). Raises InsufficientBalance
    otherwise. Does not commit.
    """
    amount = yen(amount)
    values = {"available_balance": Partner.available_balance - amount}
    if reduce_earned:
        values["total_earned"] = Partner.total_earned - amount

    result = db.execute(
        update(Partner)
        .where(Partner.id == partner_id, Partner.available_balance >= amount)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientBalance()

    expire_balances(db, partner_id)
    logger.info("Ledger debit partner_id=%s kind=%s amount=%s", partner_id, kind.value, amount)
    return _append(db, partner_id=partner_id, kind=kind, amount=-amount, **refs)


def ledger_balance(db: Session, partner_id: int) -> Decimal:
    """Balance re-derived from the entries; should equal partners.available_balance."""
    total = (
        db.query(func.coalesce(func.sum(PartnerLedgerEntry.amount), 0))
        .filter(PartnerLedgerEntry.partner_id == partner_id)
        .scalar()
    )
    return Decimal(str(total or 0))
