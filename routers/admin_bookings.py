# routers/admin_bookings.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.audit_service import record_admin_action
from app.commission_service import (
    calculate_booking_commission,
    create_booking,
    ensure_partner_eligible,
    reverse_booking_commission,
    settle_booking_commission,
)
from app.db import get_db
from models.admin import Admin
from routers.auth_admin import get_current_admin
from schemas.bookings import BookingCreate, CommissionResult, RefundRequest

router = APIRouter(
    prefix="/admin/bookings",
    tags=["Admin Bookings"],
)


# ---------------------------------------------------------
# 1) BOOKING COMPLETED (from the booking workflow)
# ---------------------------------------------------------
@router.post("", response_model=CommissionResult, status_code=201)
def admin_create_booking(
    payload: BookingCreate,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    # an ineligible partner stores no booking
    if payload.calculate and payload.partner_id:
        ensure_partner_eligible(db, payload.partner_id)

    booking = create_booking(
        db,
        partner_id=payload.partner_id,
        amount=payload.amount,
        customer_email=payload.customer_email,
        is_first_order=payload.is_first_order,
    )

    if payload.calculate and booking.partner_id:
        return calculate_booking_commission(db, booking.id)

    return CommissionResult(booking_id=booking.id, commission_status=booking.commission_status.value)


# ---------------------------------------------------------
# 2) CALCULATE (idempotent)
# ---------------------------------------------------------
@router.post("/{booking_id}/commission", response_model=CommissionResult)
def admin_calculate_commission(
    booking_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    return calculate_booking_commission(db, booking_id)


# ---------------------------------------------------------
# 3) SETTLE (calculated -> paid)
# ---------------------------------------------------------
@router.post("/{booking_id}/settle", response_model=CommissionResult)
def admin_settle_commission(
    booking_id: int,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    result = settle_booking_commission(db, booking_id)
    record_admin_action(
        db,
        action="commission_settle",
        entity_type="booking",
        entity_id=booking_id,
        admin=admin,
        details={"commission_amount": int(result["commission_amount"] or 0)},
    )
    return result


# ---------------------------------------------------------
# 4) REFUND (reverses commission + referral reward)
# ---------------------------------------------------------
@router.post("/{booking_id}/refund", response_model=CommissionResult)
def admin_refund_booking(
    booking_id: int,
    payload: RefundRequest,
    db: Session = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
):
    result = reverse_booking_commission(db, booking_id, reason=payload.reason)
    record_admin_action(
        db,
        action="commission_reverse",
        entity_type="booking",
        entity_id=booking_id,
        admin=admin,
        details={"commission_amount": int(result["commission_amount"] or 0), "reason": payload.reason},
    )
    return result
