import json
from types import SimpleNamespace

import pytest

from app import subscription_service
from conftest import partner_headers
from models.partners import EntryFeeStatus, PartnerTier, SubscriptionStatus
from routers import stripe_webhook


@pytest.fixture
def signed(monkeypatch):
    """Accept any signature; the handler only needs construct_event not to raise."""
    monkeypatch.setattr(stripe_webhook.stripe.Webhook, "construct_event", lambda **kwargs: {})


def _post(client, event: dict):
    return client.post(
        "/webhooks/stripe",
        content=json.dumps(event),
        headers={"stripe-signature": "t=1,v1=test", "Content-Type": "application/json"},
    )


def test_missing_signature_header(client):
    resp = client.post("/webhooks/stripe", content="{}")
    assert resp.status_code == 400


def test_invalid_signature(client, monkeypatch):
    def _reject(**kwargs):
        raise ValueError("bad payload")

    monkeypatch.setattr(stripe_webhook.stripe.Webhook, "construct_event", _reject)
    resp = _post(client, {"type": "checkout.session.completed"})
    assert resp.status_code == 400


def test_entry_fee_checkout_completed(client, db, make_partner, monkeypatch, signed):
    monkeypatch.setattr(
        subscription_service.stripe.checkout.Session,
        "create",
        lambda **kwargs: SimpleNamespace(id="cs_test_fee", url="https://checkout.stripe.test/pay"),
    )
    partner = make_partner(subscription_status=SubscriptionStatus.ACTIVE)

    started = client.post("/partner/subscription/upgrade", headers=partner_headers(partner), json={})
    assert started.status_code == 200
    assert started.json()["session_id"] == "cs_test_fee"

    event = {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_test_fee",
                "mode": "payment",
                "payment_status": "paid",
                "metadata": {"type": "partner_entry_fee", "partner_id": str(partner.id)},
            }
        },
    }
    resp = _post(client, event)
    assert resp.status_code == 200
    assert resp.json()["status"] == "upgraded"

    # redelivery is a no-op
    resp = _post(client, event)
    assert resp.json()["status"] == "already_completed"

    db.refresh(partner)
    assert partner.tier == PartnerTier.PARTNER
    assert partner.entry_fee_status == EntryFeeStatus.COMPLETED


def test_subscription_updated_past_due(client, db, active_partner, signed):
    event = {
        "id": "evt_2",
        "type": "customer.subscription.updated",
        "data": {
            "object": {
                "id": "sub_123",
                "status": "past_due",
                "customer": "cus_1",
                "current_period_end": 1790000000,
                "metadata": {"type": "partner_subscription", "partner_id": str(active_partner.id)},
            }
        },
    }

    resp = _post(client, event)

    assert resp.status_code == 200
    assert resp.json()["subscription_status"] == "past_due"
    db.refresh(active_partner)
    assert active_partner.subscription_id == "sub_123"
    assert active_partner.stripe_customer_id == "cus_1"
    assert active_partner.subscription_current_period_end is not None


def test_subscription_deleted(client, db, active_partner, signed):
    event = {
        "type": "customer.subscription.deleted",
        "data": {
            "object": {
                "id": "sub_123",
                "status": "canceled",
                "metadata": {"type": "partner_subscription", "partner_id": str(active_partner.id)},
            }
        },
    }

    resp = _post(client, event)

    assert resp.json()["subscription_status"] == "canceled"
    db.refresh(active_partner)
    assert active_partner.subscription_status == SubscriptionStatus.CANCELED


def test_unknown_partner_acknowledged(client, signed):
    event = {
        "type": "customer.subscription.updated",
        "data": {
            "object": {
                "id": "sub_x",
                "status": "active",
                "metadata": {"type": "partner_subscription", "partner_id": "999"},
            }
        },
    }
    resp = _post(client, event)
    assert resp.status_code == 200
    assert resp.json()["ignored"] == "partner not found"


def test_unrelated_event_ignored(client, signed):
    resp = _post(client, {"type": "invoice.paid", "data": {"object": {}}})
    assert resp.status_code == 200
    assert resp.json()["ignored"] == "invoice.paid"
