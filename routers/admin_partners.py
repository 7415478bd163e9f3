# routers/admin_partners.py

from typing import List, Optional
from decimal import Decimal
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.audit_service import record_admin_action
from app.db import get_db
from app.errors import PartnerNotFound
from app.ledger import ledger_balance
from models.admin import Admin
from models.partners import Partner, PartnerStatus
from routers.auth_admin import get_current_admin, get_current_superadmin
from schemas.partners import KycReview, PartnerBalanceRow, PartnerOut, PartnerStatusUpdate

router = APIRouter(
    prefix="/admin/partners",
    tags=["Admin Partners"],
)

logger = logging.getLogger(__name__)


def _get_partner(db: Session, partner_id: int) -> Partner:
    partner = db.query(Partner).filter(Partner.id == partner_id).first()
    if not partner:
        raise PartnerNotFound()
    return partner


# ---------------------------------------------------------
# 1) LIST (optional ?status=pending|approved|suspended)
# ---------------------------------------------------------
@router.get("", response_model=List[PartnerOut])
def admin_list_partners(
    status: Optional[PartnerStatus] = Query(default=None),
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    q = db.query(Partner).order_by(Partner.created_at.desc(), Partner.id.desc())
    if status is not None:
        q = q.filter(Partner.status == status)
    return q.all()


# ---------------------------------------------------------
# 2) BALANCES (stored vs re-derived from the ledger)
# ---------------------------------------------------------
@router.get("/balances", response_model=List[PartnerBalanceRow])
def admin_partner_balances(
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    rows = []
    for p in db.query(Partner).order_by(Partner.id).all():
        derived = ledger_balance(db, p.id)
        stored = Decimal(str(p.available_balance or 0))
        if derived != stored:
            logger.warning("Ledger mismatch partner_id=%s stored=%s ledger=%s", p.id, stored, derived)
        rows.append(
            PartnerBalanceRow(
                partner_id=p.id,
                partner_name=p.name,
                referral_code=p.referral_code,
                available_balance=stored,
                total_earned=p.total_earned or 0,
                total_withdrawn=p.total_withdrawn or 0,
                ledger_balance=derived,
                in_sync=derived == stored,
            )
        )
    return rows


# ---------------------------------------------------------
# 3) DETAIL
# ---------------------------------------------------------
@router.get("/{partner_id}", response_model=PartnerOut)
def admin_get_partner(
    partner_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return _get_partner(db, partner_id)


# ---------------------------------------------------------
# 4) APPROVE / SUSPEND
# ---------------------------------------------------------
@router.patch("/{partner_id}/status", response_model=PartnerOut)
def admin_update_partner_status(
    partner_id: int,
    payload: PartnerStatusUpdate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    partner = _get_partner(db, partner_id)
    previous = partner.status

    partner.status = payload.status
    db.add(partner)
    db.commit()
    db.refresh(partner)

    record_admin_action(
        db,
        action="partner_status_update",
        entity_type="partner",
        entity_id=partner.id,
        admin=admin,
        details={"from": previous.value, "to": partner.status.value},
    )
    return partner


# ---------------------------------------------------------
# 5) KYC REVIEW (superadmin)
# ---------------------------------------------------------
@router.patch("/{partner_id}/kyc", response_model=PartnerOut)
def admin_review_kyc(
    partner_id: int,
    payload: KycReview,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_superadmin),
):
    partner = _get_partner(db, partner_id)
    previous = partner.kyc_status

    partner.kyc_status = payload.kyc_status
    db.add(partner)
    db.commit()
    db.refresh(partner)

    record_admin_action(
        db,
        action="partner_kyc_review",
        entity_type="partner",
        entity_id=partner.id,
        admin=admin,
        details={"from": previous.value, "to": partner.kyc_status.value},
    )
    return partner
