# schemas/subscriptions.py

from pydantic import BaseModel
from decimal import Decimal
from datetime import datetime
from typing import Optional, List

from models.partners import PartnerTier, SubscriptionStatus, EntryFeeStatus


class TierOut(BaseModel):
    code: PartnerTier
    name: str
    monthly_fee: int
    entry_fee: int
    commission_rate: Decimal


class TierCatalogOut(BaseModel):
    tiers: List[TierOut]
    min_rate: Decimal
    max_rate: Decimal


class SubscriptionOut(BaseModel):
    tier: PartnerTier
    subscription_status: SubscriptionStatus
    entry_fee_status: EntryFeeStatus
    subscription_current_period_end: Optional[datetime] = None
    effective_rate: Decimal


class UpgradeRequest(BaseModel):
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class TierChangeRequest(BaseModel):
    target_tier: PartnerTier
