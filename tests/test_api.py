from decimal import Decimal

from app import email_service
from conftest import PASSWORD, admin_headers, partner_headers
from models.bookings import Booking
from models.partners import EntryFeeStatus, KycStatus, PartnerStatus, PartnerTier, SubscriptionStatus
from models.withdrawal_requests import WithdrawalRequest, WithdrawalStatus


class TestPublic:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}

    def test_commission_tiers(self, client):
        resp = client.get("/commission-tiers")
        assert resp.status_code == 200
        body = resp.json()
        assert [t["code"] for t in body["tiers"]] == ["growth", "partner"]
        assert Decimal(str(body["min_rate"])) == Decimal("10")
        assert Decimal(str(body["max_rate"])) == Decimal("20")
        assert body["tiers"][1]["entry_fee"] == 200000


class TestRegistrationAndLogin:
    def test_register_with_referrer(self, client, db, make_partner):
        referrer = make_partner()

        resp = client.post(
            "/partners/register",
            json={
                "name": "Sato Hanako",
                "email": "Hanako@Example.com",
                "password": PASSWORD,
                "referrer_code": referrer.referral_code.lower(),
            },
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["email"] == "hanako@example.com"
        assert body["status"] == "pending"
        assert body["tier"] == "growth"
        assert body["referrer_id"] == referrer.id
        assert len(body["referral_code"]) == 6
        assert body["referral_code"].isalnum() and body["referral_code"].upper() == body["referral_code"]

    def test_register_unknown_referrer(self, client):
        resp = client.post(
            "/partners/register",
            json={"name": "X", "email": "x@example.com", "password": PASSWORD, "referrer_code": "ZZZZZZ"},
        )
        assert resp.status_code == 400

    def test_register_duplicate_email(self, client, make_partner):
        partner = make_partner()
        resp = client.post(
            "/partners/register",
            json={"name": "X", "email": partner.email, "password": PASSWORD},
        )
        assert resp.status_code == 400

    def test_login(self, client, make_partner):
        partner = make_partner()

        resp = client.post("/partner/login", json={"email": partner.email, "password": PASSWORD})
        assert resp.status_code == 200
        token = resp.json()["access_token"]

        me = client.get("/partner/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["id"] == partner.id

    def test_login_wrong_password(self, client, make_partner):
        partner = make_partner()
        resp = client.post("/partner/login", json={"email": partner.email, "password": "nope-nope"})
        assert resp.status_code == 401

    def test_admin_token_refused_on_partner_routes(self, client, admin):
        resp = client.get("/partner/me", headers=admin_headers(admin))
        assert resp.status_code == 401

    def test_partner_token_refused_on_admin_routes(self, client, make_partner):
        partner = make_partner()
        resp = client.get("/admin/partners", headers=partner_headers(partner))
        assert resp.status_code == 403

    def test_admin_login(self, client, admin):
        resp = client.post("/admin/login", json={"email": admin.email, "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["admin"]["id"] == admin.id


class TestPartnerPortal:
    def test_me_applies_lazy_downgrade(self, client, db, make_partner):
        partner = make_partner(tier=PartnerTier.PARTNER, subscription_status=SubscriptionStatus.CANCELED)

        resp = client.get("/partner/me", headers=partner_headers(partner))

        assert resp.status_code == 200
        assert resp.json()["tier"] == "growth"
        assert resp.json()["entry_fee_status"] == "none"

    def test_bank_account_and_kyc(self, client, db, make_partner):
        partner = make_partner()
        headers = partner_headers(partner)

        resp = client.put(
            "/partner/bank-account",
            headers=headers,
            json={
                "bank_name": "MUFG",
                "bank_branch": "Ginza",
                "bank_account_type": "futsu",
                "bank_account_number": "7654321",
                "bank_account_holder": "SATO HANAKO",
            },
        )
        assert resp.status_code == 200

        resp = client.post("/partner/kyc", headers=headers, json={"document_type": "passport"})
        assert resp.status_code == 200
        assert resp.json()["kyc_status"] == "pending"

        db.refresh(partner)
        assert partner.bank_account_holder == "SATO HANAKO"
        assert partner.kyc_document_type == "passport"

    def test_subscription_view(self, client, active_partner):
        resp = client.get("/partner/subscription", headers=partner_headers(active_partner))
        assert resp.status_code == 200
        body = resp.json()
        assert body["tier"] == "partner"
        assert Decimal(str(body["effective_rate"])) == Decimal("20")

    def test_tier_change_errors_are_typed(self, client, make_partner):
        partner = make_partner(subscription_status=SubscriptionStatus.ACTIVE)

        resp = client.post(
            "/partner/subscription/tier",
            headers=partner_headers(partner),
            json={"target_tier": "partner"},
        )

        assert resp.status_code == 402
        assert resp.headers["X-Error-Code"] == "entry_fee_required"
        assert resp.json()["code"] == "entry_fee_required"

    def test_voluntary_downgrade(self, client, active_partner):
        resp = client.post(
            "/partner/subscription/tier",
            headers=partner_headers(active_partner),
            json={"target_tier": "growth"},
        )
        assert resp.status_code == 200
        assert resp.json()["tier"] == "growth"
        assert resp.json()["entry_fee_status"] == "none"


class TestBookingsAndCommissions:
    def test_create_and_calculate(self, client, db, admin, make_partner):
        referrer = make_partner()
        partner = make_partner(
            tier=PartnerTier.PARTNER,
            subscription_status=SubscriptionStatus.ACTIVE,
            entry_fee_status=EntryFeeStatus.COMPLETED,
            referrer=referrer,
        )

        resp = client.post(
            "/admin/bookings",
            headers=admin_headers(admin),
            json={"partner_id": partner.id, "amount": 220000, "is_first_order": False},
        )

        assert resp.status_code == 201
        body = resp.json()
        assert Decimal(str(body["commission_amount"])) == Decimal("40000")
        assert body["commission_status"] == "calculated"

        again = client.post(f"/admin/bookings/{body['booking_id']}/commission", headers=admin_headers(admin))
        assert again.status_code == 200
        assert Decimal(str(again.json()["commission_amount"])) == Decimal("40000")

        referrals = client.get("/partner/referrals", headers=partner_headers(referrer))
        assert referrals.status_code == 200
        assert [Decimal(str(r["reward_amount"])) for r in referrals.json()] == [Decimal("800")]

        summary = client.get("/partner/summary", headers=partner_headers(partner)).json()
        assert summary["total_bookings"] == 1
        assert Decimal(str(summary["commission_calculated"])) == Decimal("40000")

    def test_ineligible_partner(self, client, db, admin, make_partner):
        partner = make_partner(status=PartnerStatus.SUSPENDED)

        resp = client.post(
            "/admin/bookings",
            headers=admin_headers(admin),
            json={"partner_id": partner.id, "amount": 220000},
        )

        assert resp.status_code == 403
        assert resp.json()["code"] == "ineligible_partner"
        assert db.query(Booking).count() == 0

    def test_booking_stored_without_calculation(self, client, db, admin, make_partner):
        partner = make_partner(status=PartnerStatus.PENDING)

        resp = client.post(
            "/admin/bookings",
            headers=admin_headers(admin),
            json={"partner_id": partner.id, "amount": 220000, "calculate": False},
        )

        assert resp.status_code == 201
        assert resp.json()["commission_status"] == "pending"
        assert db.query(Booking).count() == 1

    def test_refund(self, client, admin, make_partner):
        partner = make_partner()
        booking = client.post(
            "/admin/bookings",
            headers=admin_headers(admin),
            json={"partner_id": partner.id, "amount": 220000, "is_first_order": False},
        ).json()

        resp = client.post(
            f"/admin/bookings/{booking['booking_id']}/refund",
            headers=admin_headers(admin),
            json={"reason": "cancelled by customer"},
        )

        assert resp.status_code == 200
        assert resp.json()["commission_status"] == "reversed"

    def test_unknown_booking(self, client, admin):
        resp = client.post("/admin/bookings/999/commission", headers=admin_headers(admin))
        assert resp.status_code == 404
        assert resp.headers["X-Error-Code"] == "booking_not_found"


class TestWithdrawalsApi:
    def test_partner_flow(self, client, db, admin, withdrawable_partner):
        headers = partner_headers(withdrawable_partner)

        created = client.post("/partner/withdrawals", headers=headers, json={"amount": 10000})
        assert created.status_code == 201
        wid = created.json()["id"]

        dup = client.post("/partner/withdrawals", headers=headers, json={"amount": 5000})
        assert dup.status_code == 409
        assert dup.json()["code"] == "pending_withdrawal_exists"

        overview = client.get("/partner/withdrawals", headers=headers).json()
        assert Decimal(str(overview["balance"]["available"])) == Decimal("40000")
        assert Decimal(str(overview["balance"]["pending"])) == Decimal("10000")

        listed = client.get("/admin/withdrawals?status=pending", headers=admin_headers(admin)).json()
        assert [w["id"] for w in listed["withdrawals"]] == [wid]
        assert listed["stats"]["pending"]["count"] == 1

        for action in ("approve", "process"):
            resp = client.post(
                f"/admin/withdrawals/{wid}/action",
                headers=admin_headers(admin),
                json={"action": action},
            )
            assert resp.status_code == 200

        missing_ref = client.post(
            f"/admin/withdrawals/{wid}/action",
            headers=admin_headers(admin),
            json={"action": "complete"},
        )
        assert missing_ref.status_code == 400
        assert missing_ref.json()["code"] == "payment_reference_required"

        done = client.post(
            f"/admin/withdrawals/{wid}/action",
            headers=admin_headers(admin),
            json={"action": "complete", "payment_reference": "TRX-1"},
        )
        assert done.status_code == 200
        assert done.json()["status"] == "completed"

        db.refresh(withdrawable_partner)
        assert withdrawable_partner.total_withdrawn == Decimal("10000")

    def test_failed_notice_email_keeps_status(self, client, db, admin, withdrawable_partner, monkeypatch):
        attempts = []

        def _smtp_down(to_email, subject, text_body, html_body=None):
            attempts.append((to_email, subject))
            raise RuntimeError("SMTP connection refused")

        monkeypatch.setattr(email_service, "_deliver", _smtp_down)
        wid = client.post(
            "/partner/withdrawals",
            headers=partner_headers(withdrawable_partner),
            json={"amount": 10000},
        ).json()["id"]

        resp = client.post(
            f"/admin/withdrawals/{wid}/action",
            headers=admin_headers(admin),
            json={"action": "approve"},
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"
        assert attempts == [(withdrawable_partner.email, "Guide Partner - withdrawal approved")]
        assert db.get(WithdrawalRequest, wid).status == WithdrawalStatus.APPROVED

    def test_below_minimum(self, client, withdrawable_partner):
        resp = client.post(
            "/partner/withdrawals",
            headers=partner_headers(withdrawable_partner),
            json={"amount": 4999},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_amount"

    def test_cancel(self, client, withdrawable_partner):
        headers = partner_headers(withdrawable_partner)
        wid = client.post("/partner/withdrawals", headers=headers, json={"amount": 10000}).json()["id"]

        resp = client.delete(f"/partner/withdrawals/{wid}", headers=headers)

        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"


class TestAdminPartners:
    def test_approve_and_kyc(self, client, db, admin, make_partner):
        partner = make_partner(status=PartnerStatus.PENDING, kyc_status=KycStatus.PENDING)

        resp = client.patch(
            f"/admin/partners/{partner.id}/status",
            headers=admin_headers(admin),
            json={"status": "approved"},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"

        resp = client.patch(
            f"/admin/partners/{partner.id}/kyc",
            headers=admin_headers(admin),
            json={"kyc_status": "approved"},
        )
        assert resp.status_code == 200
        assert resp.json()["kyc_status"] == "approved"

    def test_balances_in_sync(self, client, admin, make_partner):
        partner = make_partner()
        client.post(
            "/admin/bookings",
            headers=admin_headers(admin),
            json={"partner_id": partner.id, "amount": 220000, "is_first_order": False},
        )

        rows = client.get("/admin/partners/balances", headers=admin_headers(admin)).json()

        row = next(r for r in rows if r["partner_id"] == partner.id)
        assert Decimal(str(row["available_balance"])) == Decimal("20000")
        assert row["in_sync"] is True

    def test_unknown_partner(self, client, admin):
        resp = client.get("/admin/partners/999", headers=admin_headers(admin))
        assert resp.status_code == 404
