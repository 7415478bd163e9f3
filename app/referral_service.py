# app/referral_service.py

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import ledger
from app.ledger import yen
from models.partners import Partner
from models.partner_ledger import LedgerEntryKind
from models.referral_rewards import ReferralReward, ReferralRewardStatus

logger = logging.getLogger(__name__)

# Flat override on the referee's commission, independent of tier.
# Rewards are whole yen (half-up), like the balances they are credited to.
REFERRAL_REWARD_PCT = Decimal("2")


def compute_referral_reward(commission_amount) -> Decimal:
    return yen(Decimal(str(commission_amount)) * REFERRAL_REWARD_PCT / Decimal("100"))


def create_referral_reward(
    db: Session,
    *,
    booking_id: int,
    referee: Partner,
    commission_amount,
) -> Optional[ReferralReward]:
    """
    One-level override for whoever referred `referee`.
    Returns None when there is no referrer or a reward for the booking
    already exists (skip, not an error). Does not commit.
    """
    if not referee.referrer_id:
        return None

    existing = db.query(ReferralReward.id).filter(ReferralReward.booking_id == booking_id).first()
    if existing:
        logger.info("Referral reward already exists booking_id=%s, skip", booking_id)
        return None

    reward_amount = compute_referral_reward(commission_amount)
    reward = ReferralReward(
        referrer_id=referee.referrer_id,
        referee_id=referee.id,
        booking_id=booking_id,
        reward_rate=REFERRAL_REWARD_PCT,
        reward_amount=reward_amount,
        status=ReferralRewardStatus.PENDING,
    )

    # unique(booking_id) is the real guard against concurrent inserts
    try:
        with db.begin_nested():
            db.add(reward)
            db.flush()
    except IntegrityError:
        logger.info("Referral reward insert lost the race booking_id=%s, skip", booking_id)
        return None

    if reward_amount > 0:
        ledger.credit(
            db,
            referee.referrer_id,
            reward_amount,
            LedgerEntryKind.REFERRAL_REWARD,
            count_as_earned=True,
            booking_id=booking_id,
            referral_reward_id=reward.id,
        )

    logger.info(
        "Referral reward created booking_id=%s referrer_id=%s referee_id=%s amount=%s",
        booking_id,
        referee.referrer_id,
        referee.id,
        reward_amount,
    )
    return reward


def mark_reward_paid(db: Session, booking_id: int) -> Optional[ReferralReward]:
    reward = (
        db.query(ReferralReward)
        .filter(ReferralReward.booking_id == booking_id)
        .with_for_update()
        .first()
    )
    if not reward or reward.status != ReferralRewardStatus.PENDING:
        return reward

    reward.status = ReferralRewardStatus.PAID
    reward.paid_at = datetime.now(timezone.utc)
    db.add(reward)
    return reward


def reverse_referral_reward(db: Session, booking_id: int, note: Optional[str] = None) -> Optional[ReferralReward]:
    reward = (
        db.query(ReferralReward)
        .filter(ReferralReward.booking_id == booking_id)
        .with_for_update()
        .first()
    )
    if not reward or reward.status == ReferralRewardStatus.REVERSED:
        return reward

    amount = Decimal(str(reward.reward_amount or 0))
    if amount > 0:
        ledger.debit(
            db,
            reward.referrer_id,
            amount,
            LedgerEntryKind.REFERRAL_REVERSAL,
            reduce_earned=True,
            booking_id=booking_id,
            referral_reward_id=reward.id,
            note=(note or "")[:255] or None,
        )

    reward.status = ReferralRewardStatus.REVERSED
    db.add(reward)
    return reward
