# routers/partner_portal.py
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps_partner import get_current_partner
from app.subscription_service import effective_rate, evaluate_tier
from models.bookings import Booking, CommissionStatus
from models.partners import Partner, KycStatus
from models.referral_rewards import ReferralReward, ReferralRewardStatus
from schemas.partner_dashboard import PartnerBookingItem, PartnerReferralItem, PartnerSummary
from schemas.partners import PartnerOut, BankAccountUpdate, KycSubmit

router = APIRouter(prefix="/partner", tags=["Partner Portal"])


def _refresh_tier(db: Session, partner: Partner) -> Partner:
    if evaluate_tier(partner):
        db.add(partner)
        db.commit()
        db.refresh(partner)
    return partner


@router.get("/me", response_model=PartnerOut)
def partner_me(
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    return _refresh_tier(db, current_partner)


@router.get("/summary", response_model=PartnerSummary)
def partner_summary(
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    partner = _refresh_tier(db, current_partner)
    partner_id = partner.id

    # =========================
    # BOOKINGS / COMMISSIONS
    # =========================
    total_bookings = (
        db.query(func.count(Booking.id))
        .filter(Booking.partner_id == partner_id)
        .scalar()
        or 0
    )

    def _commission_sum(status: CommissionStatus) -> Decimal:
        v = (
            db.query(func.coalesce(func.sum(Booking.commission_amount), 0))
            .filter(Booking.partner_id == partner_id, Booking.commission_status == status)
            .scalar()
        )
        return Decimal(str(v or 0))

    # =========================
    # REFERRALS
    # =========================
    referral_rewards = (
        db.query(func.coalesce(func.sum(ReferralReward.reward_amount), 0))
        .filter(
            ReferralReward.referrer_id == partner_id,
            ReferralReward.status != ReferralRewardStatus.REVERSED,
        )
        .scalar()
    )

    referred_partners = (
        db.query(func.count(Partner.id))
        .filter(Partner.referrer_id == partner_id)
        .scalar()
        or 0
    )

    return PartnerSummary(
        tier=partner.tier.value,
        effective_rate=effective_rate(partner),
        total_bookings=int(total_bookings),
        commission_calculated=_commission_sum(CommissionStatus.CALCULATED),
        commission_paid=_commission_sum(CommissionStatus.PAID),
        referral_rewards=Decimal(str(referral_rewards or 0)),
        referred_partners=int(referred_partners),
        available_balance=partner.available_balance or 0,
        total_earned=partner.total_earned or 0,
        total_withdrawn=partner.total_withdrawn or 0,
    )


@router.get("/bookings", response_model=List[PartnerBookingItem])
def partner_bookings(
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    bookings = (
        db.query(Booking)
        .filter(Booking.partner_id == current_partner.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .limit(200)
        .all()
    )
    return [
        PartnerBookingItem(
            id=b.id,
            amount=b.amount,
            payment_status=b.payment_status.value,
            is_first_order_for_customer=b.is_first_order_for_customer,
            commission_rate=b.commission_rate,
            commission_bonus_rate=b.commission_bonus_rate,
            commission_amount=b.commission_amount,
            commission_status=b.commission_status.value,
            created_at=b.created_at,
        )
        for b in bookings
    ]


@router.get("/referrals", response_model=List[PartnerReferralItem])
def partner_referrals(
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    rewards = (
        db.query(ReferralReward)
        .filter(ReferralReward.referrer_id == current_partner.id)
        .order_by(ReferralReward.created_at.desc(), ReferralReward.id.desc())
        .limit(200)
        .all()
    )
    return [
        PartnerReferralItem(
            booking_id=r.booking_id,
            referee_id=r.referee_id,
            reward_rate=r.reward_rate,
            reward_amount=r.reward_amount,
            status=r.status.value,
            created_at=r.created_at,
        )
        for r in rewards
    ]


@router.put("/bank-account", response_model=PartnerOut)
def update_bank_account(
    payload: BankAccountUpdate,
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    # in-flight withdrawals keep the snapshot taken at request time
    current_partner.bank_name = payload.bank_name.strip()
    current_partner.bank_branch = (payload.bank_branch or "").strip() or None
    current_partner.bank_account_type = (payload.bank_account_type or "").strip() or None
    current_partner.bank_account_number = payload.bank_account_number.strip()
    current_partner.bank_account_holder = payload.bank_account_holder.strip()

    db.add(current_partner)
    db.commit()
    db.refresh(current_partner)
    return current_partner


@router.post("/kyc", response_model=PartnerOut)
def submit_kyc(
    payload: KycSubmit,
    current_partner: Partner = Depends(get_current_partner),
    db: Session = Depends(get_db),
):
    """Marks the identity documents as submitted; an admin reviews them."""
    if current_partner.kyc_status != KycStatus.APPROVED:
        current_partner.kyc_status = KycStatus.PENDING
        current_partner.kyc_document_type = payload.document_type.strip()
        db.add(current_partner)
        db.commit()
        db.refresh(current_partner)
    return current_partner
