from sqlalchemy import Column, Integer, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
import enum

from models import Base


class ReferralRewardStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REVERSED = "reversed"


class ReferralReward(Base):
    """
    Override paid to the partner who invited the earning partner.
    At most one row per booking (unique booking_id).
    """
    __tablename__ = "referral_rewards"

    id = Column(Integer, primary_key=True, index=True)

    referrer_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)
    referee_id = Column(Integer, ForeignKey("partners.id"), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, unique=True)

    reward_rate = Column(Numeric(5, 2), nullable=False)
    reward_amount = Column(Numeric(12, 0), nullable=False)

    status = Column(
        Enum(ReferralRewardStatus, name="referral_reward_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ReferralRewardStatus.PENDING,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    paid_at = Column(DateTime(timezone=True), nullable=True)
