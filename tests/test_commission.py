"""
Commission calculator and booking-level commission persistence.
"""

from decimal import Decimal

import pytest

from app.commission_service import (
    calculate_booking_commission,
    compute_commission,
    create_booking,
    reverse_booking_commission,
    settle_booking_commission,
)
from app.errors import IllegalStateTransition, IneligiblePartner, InsufficientBalance, InvalidAmount
from app.ledger import ledger_balance, yen
from models.bookings import Booking, CommissionStatus, PaymentStatus
from models.partner_ledger import PartnerLedgerEntry, LedgerEntryKind
from models.partners import PartnerStatus, PartnerTier, SubscriptionStatus, EntryFeeStatus
from models.referral_rewards import ReferralReward, ReferralRewardStatus


class TestComputeCommission:
    def test_growth_rate(self):
        assert compute_commission(220000, Decimal("10")) == Decimal("20000")

    def test_first_order_bonus_is_additive(self):
        assert compute_commission(220000, Decimal("10"), is_first_order=True) == Decimal("30000")

    def test_partner_rate(self):
        assert compute_commission(220000, Decimal("20")) == Decimal("40000")

    def test_rounds_half_up_to_whole_yen(self):
        # 1100 / 1.1 = 1000; 1000 * 10.05 % = 100.5 -> 101
        assert compute_commission(1100, Decimal("10.05")) == Decimal("101")

    def test_small_amount(self):
        # 11 / 1.1 * 10 % = 1
        assert compute_commission(11, Decimal("10")) == Decimal("1")

    def test_first_order_rounds_base_and_bonus_separately(self):
        # 1998 / 1.1 = 1816.36...: base 181.6 -> 182, bonus 90.8 -> 91
        assert compute_commission(1998, Decimal("10"), is_first_order=True) == Decimal("273")

    @pytest.mark.parametrize("rate", [Decimal("10"), Decimal("20")])
    @pytest.mark.parametrize("amount", list(range(1, 3000, 13)) + [1998, 12345, 99999, 220000, 1234567])
    def test_first_order_bonus_is_additive_for_any_amount(self, amount, rate):
        bonus = yen(Decimal(amount) / Decimal("1.1") * Decimal("0.05"))
        assert compute_commission(amount, rate, is_first_order=True) == compute_commission(amount, rate) + bonus

    @pytest.mark.parametrize("amount", [0, -1, Decimal("-220000")])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(InvalidAmount):
            compute_commission(amount, Decimal("10"))


class TestCalculateBookingCommission:
    def test_growth_partner(self, db, make_partner):
        partner = make_partner()
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)

        result = calculate_booking_commission(db, booking.id)

        assert result["commission_amount"] == Decimal("20000")
        assert result["commission_rate_applied"] == Decimal("10")
        assert result["first_order_bonus_rate"] == Decimal("0")
        assert result["commission_status"] == "calculated"

        db.refresh(partner)
        assert partner.available_balance == Decimal("20000")
        assert partner.total_earned == Decimal("20000")

    def test_first_order_bonus(self, db, make_partner):
        partner = make_partner()
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=True)

        result = calculate_booking_commission(db, booking.id)

        assert result["commission_amount"] == Decimal("30000")
        assert result["first_order_bonus_rate"] == Decimal("5")

    def test_active_partner_with_referrer(self, db, make_partner):
        referrer = make_partner()
        partner = make_partner(
            tier=PartnerTier.PARTNER,
            subscription_status=SubscriptionStatus.ACTIVE,
            entry_fee_status=EntryFeeStatus.COMPLETED,
            referrer=referrer,
        )
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)

        result = calculate_booking_commission(db, booking.id)

        assert result["commission_amount"] == Decimal("40000")
        assert result["commission_rate_applied"] == Decimal("20")

        reward = db.query(ReferralReward).filter(ReferralReward.booking_id == booking.id).one()
        assert reward.referrer_id == referrer.id
        assert reward.referee_id == partner.id
        assert reward.reward_amount == Decimal("800")
        assert reward.status == ReferralRewardStatus.PENDING

        db.refresh(referrer)
        assert referrer.available_balance == Decimal("800")

    def test_lapsed_partner_gets_growth_rate(self, db, make_partner):
        partner = make_partner(
            tier=PartnerTier.PARTNER,
            subscription_status=SubscriptionStatus.PAST_DUE,
            entry_fee_status=EntryFeeStatus.COMPLETED,
        )
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)

        result = calculate_booking_commission(db, booking.id)

        assert result["commission_amount"] == Decimal("20000")
        db.refresh(partner)
        assert partner.tier == PartnerTier.GROWTH

    def test_second_call_returns_stored_snapshot(self, db, make_partner):
        partner = make_partner()
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)

        first = calculate_booking_commission(db, booking.id)

        # rate change after calculation must not touch the snapshot
        partner.tier = PartnerTier.PARTNER
        partner.subscription_status = SubscriptionStatus.ACTIVE
        partner.entry_fee_status = EntryFeeStatus.COMPLETED
        db.commit()

        second = calculate_booking_commission(db, booking.id)

        assert second == first
        db.refresh(partner)
        assert partner.available_balance == Decimal("20000")
        entries = db.query(PartnerLedgerEntry).filter(PartnerLedgerEntry.kind == LedgerEntryKind.COMMISSION).count()
        assert entries == 1

    def test_no_second_referral_reward(self, db, make_partner):
        referrer = make_partner()
        partner = make_partner(referrer=referrer)
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)

        calculate_booking_commission(db, booking.id)
        calculate_booking_commission(db, booking.id)

        assert db.query(ReferralReward).count() == 1
        db.refresh(referrer)
        assert referrer.available_balance == Decimal("400")

    def test_unapproved_partner_rejected(self, db, make_partner):
        partner = make_partner(status=PartnerStatus.PENDING)
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)

        with pytest.raises(IneligiblePartner):
            calculate_booking_commission(db, booking.id)

    def test_booking_without_partner_rejected(self, db):
        booking = create_booking(db, partner_id=None, amount=220000, is_first_order=False)

        with pytest.raises(IneligiblePartner):
            calculate_booking_commission(db, booking.id)

    def test_first_order_derived_from_history(self, db, make_partner):
        partner = make_partner()
        first = create_booking(db, partner_id=partner.id, amount=11000, customer_email="c@example.com")
        second = create_booking(db, partner_id=partner.id, amount=11000, customer_email="c@example.com")

        assert first.is_first_order_for_customer is True
        assert second.is_first_order_for_customer is False

    def test_create_booking_rejects_zero_amount(self, db, make_partner):
        partner = make_partner()
        with pytest.raises(InvalidAmount):
            create_booking(db, partner_id=partner.id, amount=0)


class TestSettleAndRefund:
    def test_settle_marks_commission_and_reward_paid(self, db, make_partner):
        referrer = make_partner()
        partner = make_partner(referrer=referrer)
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)
        calculate_booking_commission(db, booking.id)

        result = settle_booking_commission(db, booking.id)

        assert result["commission_status"] == "paid"
        reward = db.query(ReferralReward).one()
        assert reward.status == ReferralRewardStatus.PAID
        assert reward.paid_at is not None

    def test_settle_requires_calculated(self, db, make_partner):
        partner = make_partner()
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)

        with pytest.raises(IllegalStateTransition):
            settle_booking_commission(db, booking.id)

    def test_refund_reverses_commission_and_reward(self, db, make_partner):
        referrer = make_partner()
        partner = make_partner(referrer=referrer)
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)
        calculate_booking_commission(db, booking.id)

        result = reverse_booking_commission(db, booking.id, reason="customer cancelled")

        assert result["commission_status"] == "reversed"
        # snapshot untouched
        assert result["commission_amount"] == Decimal("20000")

        stored = db.query(Booking).filter(Booking.id == booking.id).one()
        assert stored.payment_status == PaymentStatus.REFUNDED
        assert stored.refunded_at is not None

        db.refresh(partner)
        db.refresh(referrer)
        assert partner.available_balance == Decimal("0")
        assert partner.total_earned == Decimal("0")
        assert referrer.available_balance == Decimal("0")
        assert ledger_balance(db, partner.id) == Decimal("0")
        assert ledger_balance(db, referrer.id) == Decimal("0")

        reward = db.query(ReferralReward).one()
        assert reward.status == ReferralRewardStatus.REVERSED

    def test_refund_twice_rejected(self, db, make_partner):
        partner = make_partner()
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)
        calculate_booking_commission(db, booking.id)
        reverse_booking_commission(db, booking.id)

        with pytest.raises(IllegalStateTransition):
            reverse_booking_commission(db, booking.id)

    def test_refund_after_balance_withdrawn(self, db, make_partner):
        partner = make_partner()
        booking = create_booking(db, partner_id=partner.id, amount=220000, is_first_order=False)
        calculate_booking_commission(db, booking.id)

        partner.available_balance = Decimal("0")
        db.commit()

        with pytest.raises(InsufficientBalance):
            reverse_booking_commission(db, booking.id)
        db.rollback()

        stored = db.query(Booking).filter(Booking.id == booking.id).one()
        assert stored.commission_status == CommissionStatus.CALCULATED
