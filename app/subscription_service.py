# app/subscription_service.py

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Optional

import stripe
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import (
    AlreadyAtTier,
    EntryFeeRequired,
    PartnerNotFound,
    SubscriptionRequired,
)
from app.tiers import GROWTH_RATE, PARTNER_ENTRY_FEE, rate_for
from models.partners import Partner, PartnerTier, SubscriptionStatus, EntryFeeStatus
from models.partner_entry_fees import PartnerEntryFee, EntryFeePaymentStatus

logger = logging.getLogger(__name__)

if settings.stripe_secret_key:
    stripe.api_key = settings.stripe_secret_key

# Stripe subscription.status -> internal status
PROVIDER_STATUS_MAP: dict[str, SubscriptionStatus] = {
    "active": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "unpaid": SubscriptionStatus.CANCELED,
}

# Statuses after which the entry fee is forfeited
LAPSED_STATUSES = (SubscriptionStatus.CANCELED, SubscriptionStatus.INACTIVE)


def map_provider_status(provider_status: Optional[str]) -> SubscriptionStatus:
    key = (provider_status or "").strip().lower()
    return PROVIDER_STATUS_MAP.get(key, SubscriptionStatus.INACTIVE)


def _get_partner(db: Session, partner_id: int, *, for_update: bool = False) -> Partner:
    q = db.query(Partner).filter(Partner.id == partner_id)
    if for_update:
        q = q.with_for_update()
    partner = q.first()
    if not partner:
        raise PartnerNotFound()
    return partner


# ---------------------------------------------------------
# EFFECTIVE RATE (derived, never stored)
# ---------------------------------------------------------
def effective_rate(partner: Partner) -> Decimal:
    """
    Commission rate (percent) applied to a new booking.
    Growth rate unless tier=partner AND subscription active: the stored tier
    alone does not entitle the partner to the elevated rate.
    """
    if partner.tier == PartnerTier.PARTNER and partner.subscription_status == SubscriptionStatus.ACTIVE:
        return rate_for(PartnerTier.PARTNER)
    return GROWTH_RATE


def evaluate_tier(partner: Partner) -> bool:
    """
    Lazy downgrade. Returns True if the partner row was changed (caller commits).

    - partner tier + subscription not active -> growth
    - canceled / inactive is a lapse: the entry fee must be paid again
    - past_due keeps the entry fee so a recovered subscription restores the tier
    """
    if partner.tier != PartnerTier.PARTNER:
        return False
    if partner.subscription_status == SubscriptionStatus.ACTIVE:
        return False

    partner.tier = PartnerTier.GROWTH
    if partner.subscription_status in LAPSED_STATUSES:
        partner.entry_fee_status = EntryFeeStatus.NONE

    logger.info(
        "Lazy downgrade partner_id=%s subscription_status=%s entry_fee_status=%s",
        partner.id,
        partner.subscription_status.value,
        partner.entry_fee_status.value,
    )
    return True


# ---------------------------------------------------------
# UPGRADE / DOWNGRADE
# ---------------------------------------------------------
def upgrade_tier(db: Session, partner_id: int, target_tier: PartnerTier | str) -> Partner:
    target = PartnerTier(target_tier)
    partner = _get_partner(db, partner_id, for_update=True)

    if evaluate_tier(partner):
        db.flush()

    if partner.tier == target:
        raise AlreadyAtTier()

    if target == PartnerTier.PARTNER:
        if partner.entry_fee_status != EntryFeeStatus.COMPLETED:
            raise EntryFeeRequired()
        if partner.subscription_status != SubscriptionStatus.ACTIVE:
            raise SubscriptionRequired()
        partner.tier = PartnerTier.PARTNER
    else:
        # voluntary downgrade forfeits the entry fee
        partner.tier = PartnerTier.GROWTH
        partner.entry_fee_status = EntryFeeStatus.NONE

    db.add(partner)
    db.commit()
    db.refresh(partner)

    logger.info("Tier changed partner_id=%s tier=%s", partner.id, partner.tier.value)
    return partner


# ---------------------------------------------------------
# PROVIDER CALLBACKS
# ---------------------------------------------------------
def record_subscription_event(
    db: Session,
    partner_id: int,
    provider_status: Optional[str],
    effective_tier_from_provider: Optional[str] = None,
    *,
    subscription_id: Optional[str] = None,
    current_period_end: Optional[datetime] = None,
    customer_id: Optional[str] = None,
) -> Partner:
    partner = _get_partner(db, partner_id, for_update=True)
    new_status = map_provider_status(provider_status)

    partner.subscription_status = new_status
    if subscription_id:
        partner.subscription_id = subscription_id
    if current_period_end:
        partner.subscription_current_period_end = current_period_end
    if customer_id:
        partner.stripe_customer_id = customer_id

    provider_tier = (effective_tier_from_provider or "").strip().lower() or None

    if new_status == SubscriptionStatus.ACTIVE and provider_tier:
        if provider_tier == PartnerTier.PARTNER.value:
            if partner.entry_fee_status == EntryFeeStatus.COMPLETED:
                partner.tier = PartnerTier.PARTNER
            else:
                logger.warning(
                    "Provider reports partner tier without completed entry fee, keeping growth | partner_id=%s",
                    partner.id,
                )
        elif provider_tier == PartnerTier.GROWTH.value:
            partner.tier = PartnerTier.GROWTH
        else:
            logger.warning("Unknown provider tier=%s partner_id=%s", provider_tier, partner.id)

    db.add(partner)
    db.commit()
    db.refresh(partner)

    logger.info(
        "Subscription event partner_id=%s provider_status=%s -> %s tier=%s",
        partner.id,
        provider_status,
        new_status.value,
        partner.tier.value,
    )
    return partner


# ---------------------------------------------------------
# ENTRY FEE (one-time Stripe checkout)
# ---------------------------------------------------------
def start_partner_upgrade(
    db: Session,
    partner: Partner,
    *,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> dict[str, Any]:
    """
    Starts the growth -> partner upgrade.
    Entry fee already paid -> upgrade right away; otherwise a Checkout Session
    for the entry fee is created and the fee row is left pending until the
    webhook confirms it.
    """
    if evaluate_tier(partner):
        db.add(partner)
        db.commit()
        db.refresh(partner)

    if partner.tier == PartnerTier.PARTNER:
        raise AlreadyAtTier()

    if partner.entry_fee_status == EntryFeeStatus.COMPLETED:
        upgraded = upgrade_tier(db, partner.id, PartnerTier.PARTNER)
        return {"ok": True, "status": "upgraded", "tier": upgraded.tier.value}

    base = settings.site_url.rstrip("/")
    customer_params: dict[str, Any] = (
        {"customer": partner.stripe_customer_id}
        if partner.stripe_customer_id
        else {"customer_email": partner.email}
    )
    session = stripe.checkout.Session.create(
        mode="payment",
        payment_method_types=["card"],
        **customer_params,
        line_items=[
            {
                "price_data": {
                    "currency": settings.stripe_currency,
                    "product_data": {"name": "Guide Partner - entry fee"},
                    "unit_amount": PARTNER_ENTRY_FEE,
                },
                "quantity": 1,
            }
        ],
        success_url=success_url or f"{base}/guide-partner/dashboard?partner=success",
        cancel_url=cancel_url or f"{base}/guide-partner/subscription?partner=cancelled",
        metadata={
            "type": "partner_entry_fee",
            "partner_id": str(partner.id),
        },
    )

    fee = PartnerEntryFee(
        partner_id=partner.id,
        amount=PARTNER_ENTRY_FEE,
        status=EntryFeePaymentStatus.PENDING,
        stripe_session_id=session.id,
    )
    partner.entry_fee_status = EntryFeeStatus.PENDING

    db.add(fee)
    db.add(partner)
    db.commit()

    logger.info("Entry fee checkout created partner_id=%s session_id=%s", partner.id, session.id)

    return {
        "ok": True,
        "status": "checkout_created",
        "session_id": session.id,
        "checkout_url": getattr(session, "url", None),
    }


def complete_entry_fee(db: Session, session_id: str, partner_id: Optional[int] = None) -> dict[str, Any]:
    """
    Idempotent: a repeated webhook for the same session is a no-op.
    The tier upgrade is attempted but a missing active subscription is not an
    error here (the partner can confirm later via /partner/subscription/tier).
    """
    fee = (
        db.query(PartnerEntryFee)
        .filter(PartnerEntryFee.stripe_session_id == session_id)
        .with_for_update()
        .first()
    )

    if not fee:
        if partner_id is None:
            logger.warning("Entry fee session not found and no partner_id | session_id=%s", session_id)
            return {"ok": True, "ignored": "entry fee not found"}
        # checkout created outside this service: record it now
        fee = PartnerEntryFee(
            partner_id=partner_id,
            amount=PARTNER_ENTRY_FEE,
            status=EntryFeePaymentStatus.PENDING,
            stripe_session_id=session_id,
        )
        db.add(fee)
        db.flush()

    if fee.status == EntryFeePaymentStatus.COMPLETED:
        return {"ok": True, "status": "already_completed", "partner_id": fee.partner_id}

    partner = _get_partner(db, fee.partner_id, for_update=True)

    fee.status = EntryFeePaymentStatus.COMPLETED
    fee.completed_at = datetime.now(timezone.utc)
    partner.entry_fee_status = EntryFeeStatus.COMPLETED

    db.add(fee)
    db.add(partner)
    db.commit()

    logger.info("Entry fee completed partner_id=%s session_id=%s", partner.id, session_id)

    try:
        upgrade_tier(db, partner.id, PartnerTier.PARTNER)
        status = "upgraded"
    except (SubscriptionRequired, AlreadyAtTier) as e:
        db.rollback()
        logger.info("Entry fee paid, tier not changed partner_id=%s: %s", partner.id, e.message)
        status = "entry_fee_completed"

    return {"ok": True, "status": status, "partner_id": partner.id}
