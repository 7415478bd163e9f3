# models/partner_entry_fees.py

from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, String, Enum
from sqlalchemy.sql import func
import enum

from models import Base


class EntryFeePaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PartnerEntryFee(Base):
    """
    One-time entry fee charge (Stripe Checkout, mode=payment) that unlocks
    the partner tier. One row per checkout session.
    """
    __tablename__ = "partner_entry_fees"

    id = Column(Integer, primary_key=True, index=True)

    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)

    amount = Column(Numeric(12, 0), nullable=False)

    status = Column(
        Enum(EntryFeePaymentStatus, name="entry_fee_payment_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=EntryFeePaymentStatus.PENDING,
    )

    stripe_session_id = Column(String(255), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
