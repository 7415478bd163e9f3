# app/tiers.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from models.partners import PartnerTier


@dataclass(frozen=True)
class TierDefinition:
    code: PartnerTier
    name: str
    monthly_fee: int  # JPY
    entry_fee: int  # JPY, one-time
    commission_rate: Decimal  # percent


# -------------------------------------------------
# TIER CATALOG (deployment constants)
# -------------------------------------------------
TIER_CATALOG: dict[PartnerTier, TierDefinition] = {
    PartnerTier.GROWTH: TierDefinition(
        code=PartnerTier.GROWTH,
        name="Growth",
        monthly_fee=1980,
        entry_fee=0,
        commission_rate=Decimal("10"),
    ),
    PartnerTier.PARTNER: TierDefinition(
        code=PartnerTier.PARTNER,
        name="Guide Partner",
        monthly_fee=4980,
        entry_fee=200000,
        commission_rate=Decimal("20"),
    ),
}

GROWTH_RATE = TIER_CATALOG[PartnerTier.GROWTH].commission_rate
PARTNER_ENTRY_FEE = TIER_CATALOG[PartnerTier.PARTNER].entry_fee


def get_tier(tier_code: PartnerTier | str) -> TierDefinition:
    try:
        return TIER_CATALOG[PartnerTier(tier_code)]
    except (ValueError, KeyError):
        raise ValueError(f"Unknown tier: {tier_code!r}")


def rate_for(tier_code: PartnerTier | str) -> Decimal:
    """Nominal commission rate (percent) of a tier."""
    return get_tier(tier_code).commission_rate


def list_tiers() -> list[TierDefinition]:
    return sorted(TIER_CATALOG.values(), key=lambda t: t.commission_rate)
