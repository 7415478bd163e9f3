# routers/stripe_webhook.py

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from typing import Any, Optional

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import settings
from app.db import get_db
from app.errors import PartnerNotFound
from app.subscription_service import complete_entry_fee, record_subscription_event

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

logger = logging.getLogger(__name__)

ENTRY_FEE_TYPE = "partner_entry_fee"
SUBSCRIPTION_TYPE = "partner_subscription"


def _partner_id_from(metadata: dict[str, Any]) -> Optional[int]:
    raw = (metadata or {}).get("partner_id")
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _period_end(obj: dict[str, Any]) -> Optional[datetime]:
    ts = obj.get("current_period_end")
    if not isinstance(ts, int):
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc)


@router.post("/stripe")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Stripe webhook endpoint.
    - checkout.session.completed (entry fee): marks the fee paid, tries the upgrade
    - checkout.session.completed (subscription): subscription active
    - customer.subscription.created / updated / deleted: subscription status sync
    Anything else is acknowledged and ignored.
    """
    webhook_secret = settings.stripe_webhook_secret.strip()
    if not webhook_secret:
        raise HTTPException(
            status_code=500,
            detail="Stripe webhook not configured (missing STRIPE_WEBHOOK_SECRET)",
        )

    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    if not sig_header:
        raise HTTPException(status_code=400, detail="Missing Stripe-Signature header")

    try:
        stripe.Webhook.construct_event(
            payload=payload,
            sig_header=sig_header,
            secret=webhook_secret,
        )
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid webhook signature: {str(e)}")

    # signature verified: work on the plain JSON
    event = json.loads(payload)
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}
    metadata = obj.get("metadata") or {}
    partner_id = _partner_id_from(metadata)

    logger.info("Stripe event type=%s id=%s", event_type, event.get("id"))

    try:
        # -----------------------------------
        # checkout.session.completed
        # -----------------------------------
        if event_type == "checkout.session.completed":
            if metadata.get("type") == ENTRY_FEE_TYPE:
                if obj.get("payment_status") not in (None, "paid"):
                    return {"ok": True, "ignored": "entry fee not paid"}
                return complete_entry_fee(db, obj.get("id"), partner_id)

            if obj.get("mode") == "subscription" and metadata.get("type") == SUBSCRIPTION_TYPE:
                if partner_id is None:
                    logger.warning("Subscription checkout without partner_id session_id=%s", obj.get("id"))
                    return {"ok": True, "ignored": "missing partner_id metadata"}
                partner = record_subscription_event(
                    db,
                    partner_id,
                    "active",
                    metadata.get("tier"),
                    subscription_id=obj.get("subscription"),
                    customer_id=obj.get("customer"),
                )
                return {"ok": True, "partner_id": partner.id, "subscription_status": partner.subscription_status.value}

            return {"ok": True, "ignored": "checkout session type"}

        # -----------------------------------
        # customer.subscription.*
        # -----------------------------------
        if event_type in ("customer.subscription.created", "customer.subscription.updated"):
            if metadata.get("type") != SUBSCRIPTION_TYPE or partner_id is None:
                return {"ok": True, "ignored": "subscription type"}
            partner = record_subscription_event(
                db,
                partner_id,
                obj.get("status"),
                metadata.get("tier"),
                subscription_id=obj.get("id"),
                current_period_end=_period_end(obj),
                customer_id=obj.get("customer"),
            )
            return {"ok": True, "partner_id": partner.id, "subscription_status": partner.subscription_status.value}

        if event_type == "customer.subscription.deleted":
            if metadata.get("type") != SUBSCRIPTION_TYPE or partner_id is None:
                return {"ok": True, "ignored": "subscription type"}
            partner = record_subscription_event(db, partner_id, "canceled")
            return {"ok": True, "partner_id": partner.id, "subscription_status": partner.subscription_status.value}

    except PartnerNotFound:
        # acknowledged: Stripe retries any non-2xx
        db.rollback()
        logger.warning("Stripe event for unknown partner_id=%s type=%s", partner_id, event_type)
        return {"ok": True, "ignored": "partner not found"}

    return {"ok": True, "ignored": event_type}
