# models/partner_ledger.py

from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, String, Enum
from sqlalchemy.sql import func
import enum

from models import Base


class LedgerEntryKind(str, enum.Enum):
    COMMISSION = "commission"
    REFERRAL_REWARD = "referral_reward"
    WITHDRAWAL_RESERVE = "withdrawal_reserve"
    WITHDRAWAL_RELEASE = "withdrawal_release"
    COMMISSION_REVERSAL = "commission_reversal"
    REFERRAL_REVERSAL = "referral_reversal"


class PartnerLedgerEntry(Base):
    """
    Append-only balance movement of a partner (signed JPY amount).
    partners.available_balance is the running total of these rows:
    - commission / referral_reward          -> credit
    - withdrawal_reserve                    -> debit (request created)
    - withdrawal_release                    -> credit (request rejected/cancelled)
    - commission_reversal / referral_reversal -> debit (refund)
    Rows are never updated or deleted.
    """
    __tablename__ = "partner_ledger_entries"

    id = Column(Integer, primary_key=True, index=True)

    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)

    kind = Column(
        Enum(LedgerEntryKind, name="ledger_entry_kind", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    amount = Column(Numeric(12, 0), nullable=False)

    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    withdrawal_id = Column(Integer, ForeignKey("withdrawal_requests.id"), nullable=True)
    referral_reward_id = Column(Integer, ForeignKey("referral_rewards.id"), nullable=True)

    note = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
