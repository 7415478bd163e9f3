from sqlalchemy import Column, Integer, Numeric, DateTime, Enum, ForeignKey, String, Index, text
from sqlalchemy.sql import func
import enum

from models import Base


class WithdrawalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Statuses that still hold a reservation on the partner balance
ACTIVE_WITHDRAWAL_STATUSES = (
    WithdrawalStatus.PENDING,
    WithdrawalStatus.APPROVED,
    WithdrawalStatus.PROCESSING,
)

_ACTIVE_WHERE = text("status IN ('pending', 'approved', 'processing')")


class WithdrawalRequest(Base):
    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        # one in-flight request per partner
        Index(
            "uq_withdrawal_requests_active_partner",
            "partner_id",
            unique=True,
            postgresql_where=_ACTIVE_WHERE,
            sqlite_where=_ACTIVE_WHERE,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)

    amount = Column(Numeric(12, 0), nullable=False)

    status = Column(
        Enum(WithdrawalStatus, name="withdrawal_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=WithdrawalStatus.PENDING,
    )

    # Bank snapshot at request time
    bank_name = Column(String(150), nullable=True)
    bank_branch = Column(String(150), nullable=True)
    account_type = Column(String(30), nullable=True)
    account_number = Column(String(50), nullable=True)
    account_holder = Column(String(150), nullable=True)

    # Review / payment
    review_note = Column(String(500), nullable=True)
    reviewed_by = Column(Integer, ForeignKey("admins.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    payment_reference = Column(String(100), nullable=True)
    payment_method = Column(String(50), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
