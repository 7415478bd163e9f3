# routers/partner_subscription.py

import logging

import stripe
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps_partner import get_current_partner
from app.email_service import send_tier_changed_email
from app.subscription_service import effective_rate, evaluate_tier, start_partner_upgrade, upgrade_tier
from app.tiers import get_tier, list_tiers
from models.partners import Partner
from schemas.subscriptions import (
    SubscriptionOut,
    TierCatalogOut,
    TierChangeRequest,
    TierOut,
    UpgradeRequest,
)

router = APIRouter(tags=["Subscription"])

logger = logging.getLogger(__name__)


def _subscription_out(partner: Partner) -> SubscriptionOut:
    return SubscriptionOut(
        tier=partner.tier,
        subscription_status=partner.subscription_status,
        entry_fee_status=partner.entry_fee_status,
        subscription_current_period_end=partner.subscription_current_period_end,
        effective_rate=effective_rate(partner),
    )


# ---------------------------------------------------------
# 1) PUBLIC TIER CATALOG
# ---------------------------------------------------------
@router.get("/commission-tiers", response_model=TierCatalogOut)
def commission_tiers():
    tiers = list_tiers()
    return TierCatalogOut(
        tiers=[
            TierOut(
                code=t.code,
                name=t.name,
                monthly_fee=t.monthly_fee,
                entry_fee=t.entry_fee,
                commission_rate=t.commission_rate,
            )
            for t in tiers
        ],
        min_rate=min(t.commission_rate for t in tiers),
        max_rate=max(t.commission_rate for t in tiers),
    )


# ---------------------------------------------------------
# 2) PARTNER SUBSCRIPTION STATE
# ---------------------------------------------------------
@router.get("/partner/subscription", response_model=SubscriptionOut)
def partner_subscription(
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    if evaluate_tier(current_partner):
        db.add(current_partner)
        db.commit()
        db.refresh(current_partner)
    return _subscription_out(current_partner)


# ---------------------------------------------------------
# 3) START UPGRADE (entry fee checkout)
# ---------------------------------------------------------
@router.post("/partner/subscription/upgrade")
def partner_start_upgrade(
    payload: UpgradeRequest,
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    try:
        return start_partner_upgrade(
            db,
            current_partner,
            success_url=payload.success_url,
            cancel_url=payload.cancel_url,
        )
    except stripe.StripeError as e:
        db.rollback()
        logger.error("Stripe checkout failed partner_id=%s: %s", current_partner.id, str(e))
        raise HTTPException(status_code=502, detail="Payment provider error, retry later.")


# ---------------------------------------------------------
# 4) CHANGE TIER (confirm upgrade / voluntary downgrade)
# ---------------------------------------------------------
@router.post("/partner/subscription/tier", response_model=SubscriptionOut)
def partner_change_tier(
    payload: TierChangeRequest,
    background_tasks: BackgroundTasks,
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    partner = upgrade_tier(db, current_partner.id, payload.target_tier)

    tier = get_tier(partner.tier)
    background_tasks.add_task(
        send_tier_changed_email,
        partner.email,
        partner.name,
        tier.name,
        tier.commission_rate,
    )
    return _subscription_out(partner)
