from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Enum,
    Boolean,
    ForeignKey,
)
from sqlalchemy.sql import func
import enum

from models import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class CommissionStatus(str, enum.Enum):
    PENDING = "pending"
    CALCULATED = "calculated"
    PAID = "paid"
    REVERSED = "reversed"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    customer_email = Column(String(255), nullable=True)

    # Amount paid by the customer, JPY, consumption tax included
    amount = Column(Numeric(12, 0), nullable=False)

    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PAID)

    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=True, index=True)
    is_first_order_for_customer = Column(Boolean, nullable=False, default=False)

    # --- commission snapshot (written once) ---
    commission_rate = Column(Numeric(5, 2), nullable=True)
    commission_bonus_rate = Column(Numeric(5, 2), nullable=True)
    commission_amount = Column(Numeric(12, 0), nullable=True)
    commission_status = Column(
        Enum(CommissionStatus, name="commission_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CommissionStatus.PENDING,
    )
    commission_calculated_at = Column(DateTime(timezone=True), nullable=True)

    refunded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
