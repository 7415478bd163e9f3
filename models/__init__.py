from sqlalchemy.orm import declarative_base

Base = declarative_base()

# --------------------------------------------------
# Partners & tiers
# --------------------------------------------------
from .partners import Partner  # noqa: F401
from .partner_entry_fees import PartnerEntryFee  # noqa: F401

# --------------------------------------------------
# Bookings & commissions
# --------------------------------------------------
from .bookings import Booking  # noqa: F401
from .referral_rewards import ReferralReward  # noqa: F401

# --------------------------------------------------
# Balances & withdrawals
# --------------------------------------------------
from .withdrawal_requests import WithdrawalRequest  # noqa: F401
from .partner_ledger import PartnerLedgerEntry  # noqa: F401

# --------------------------------------------------
# Admin
# --------------------------------------------------
from .admin import Admin  # noqa: F401
from .audit_logs import AuditLog  # noqa: F401
