# app/errors.py
"""
Business-rule errors of the partner program.

Every error is terminal for the request that raised it: nothing here is
retried internally. The FastAPI handler in app.main turns them into
{"code": ..., "message": ...} responses with an X-Error-Code header.
"""
from __future__ import annotations

from typing import Any


class PartnerProgramError(Exception):
    code: str = "partner_program_error"
    status_code: int = 400
    default_message: str = "Partner program error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


# -------------------------------------------------
# Commission
# -------------------------------------------------
class InvalidAmount(PartnerProgramError):
    code = "invalid_amount"
    default_message = "Amount is not valid."


class IneligiblePartner(PartnerProgramError):
    code = "ineligible_partner"
    status_code = 403
    default_message = "Partner not found or not approved."


# -------------------------------------------------
# Tiers / subscription
# -------------------------------------------------
class EntryFeeRequired(PartnerProgramError):
    code = "entry_fee_required"
    status_code = 402
    default_message = "The partner entry fee has not been paid."


class SubscriptionRequired(PartnerProgramError):
    code = "subscription_required"
    status_code = 402
    default_message = "An active subscription is required."


class AlreadyAtTier(PartnerProgramError):
    code = "already_at_tier"
    status_code = 409
    default_message = "Partner is already on the requested tier."


# -------------------------------------------------
# Withdrawals
# -------------------------------------------------
class InsufficientBalance(PartnerProgramError):
    code = "insufficient_balance"
    default_message = "Available balance is insufficient."


class PendingWithdrawalExists(PartnerProgramError):
    code = "pending_withdrawal_exists"
    status_code = 409
    default_message = "A withdrawal request is already being processed."


class KycRequired(PartnerProgramError):
    code = "kyc_required"
    status_code = 403
    default_message = "Identity verification (KYC) must be approved first."


class BankInfoRequired(PartnerProgramError):
    code = "bank_info_required"
    default_message = "Bank account details are incomplete."


class IllegalStateTransition(PartnerProgramError):
    code = "illegal_state_transition"
    status_code = 409
    default_message = "Action not allowed in the current state."


class PaymentReferenceRequired(PartnerProgramError):
    code = "payment_reference_required"
    default_message = "A payment reference is required to complete a withdrawal."


# -------------------------------------------------
# Lookups
# -------------------------------------------------
class PartnerNotFound(PartnerProgramError):
    code = "partner_not_found"
    status_code = 404
    default_message = "Partner not found."


class BookingNotFound(PartnerProgramError):
    code = "booking_not_found"
    status_code = 404
    default_message = "Booking not found."


class WithdrawalNotFound(PartnerProgramError):
    code = "withdrawal_not_found"
    status_code = 404
    default_message = "Withdrawal request not found."
