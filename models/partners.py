from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Enum,
    ForeignKey,
    CheckConstraint,
    text,
)
from sqlalchemy.sql import func
import enum

from models import Base


class PartnerStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"


class PartnerTier(str, enum.Enum):
    GROWTH = "growth"
    PARTNER = "partner"


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INACTIVE = "inactive"


class EntryFeeStatus(str, enum.Enum):
    NONE = "none"
    PENDING = "pending"
    COMPLETED = "completed"


class KycStatus(str, enum.Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def _enum(cls, name: str):
    # store the lowercase values, not the member names
    return Enum(cls, name=name, values_callable=lambda e: [m.value for m in e])


class Partner(Base):
    __tablename__ = "partners"
    __table_args__ = (
        CheckConstraint("available_balance >= 0", name="ck_partners_available_balance_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(150), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    hashed_password = Column(String(255), nullable=False)

    # 6 chars A-Z0-9, shared with referred partners
    referral_code = Column(String(20), nullable=False, unique=True, index=True)

    status = Column(_enum(PartnerStatus, "partner_status"), nullable=False, default=PartnerStatus.PENDING)

    # --- tier / subscription ---
    # tier is a billing fact; the rate actually applied is derived at call time
    tier = Column(_enum(PartnerTier, "partner_tier"), nullable=False, default=PartnerTier.GROWTH)
    subscription_status = Column(
        _enum(SubscriptionStatus, "subscription_status"),
        nullable=False,
        default=SubscriptionStatus.INACTIVE,
    )
    subscription_id = Column(String(255), nullable=True)
    subscription_current_period_end = Column(DateTime(timezone=True), nullable=True)
    stripe_customer_id = Column(String(255), nullable=True)
    entry_fee_status = Column(_enum(EntryFeeStatus, "entry_fee_status"), nullable=False, default=EntryFeeStatus.NONE)

    # Weak reference: who invited this partner
    referrer_id = Column(Integer, ForeignKey("partners.id", ondelete="SET NULL"), nullable=True, index=True)

    # --- KYC / bank ---
    kyc_status = Column(_enum(KycStatus, "kyc_status"), nullable=False, default=KycStatus.NONE)
    kyc_document_type = Column(String(50), nullable=True)

    bank_name = Column(String(150), nullable=True)
    bank_branch = Column(String(150), nullable=True)
    bank_account_type = Column(String(30), nullable=True)
    bank_account_number = Column(String(50), nullable=True)
    bank_account_holder = Column(String(150), nullable=True)

    # --- balances (JPY) ---
    available_balance = Column(Numeric(12, 0), nullable=False, default=0, server_default=text("0"))
    total_earned = Column(Numeric(12, 0), nullable=False, default=0, server_default=text("0"))
    total_withdrawn = Column(Numeric(12, 0), nullable=False, default=0, server_default=text("0"))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def has_bank_info(self) -> bool:
        return bool(self.bank_name and self.bank_account_number and self.bank_account_holder)
