"""
Advisory MOQ helpers for quote screens: minimum spend, "order a bit more"
recommendations and progress toward the minimum. Nothing here gates an order;
that is MOQValidator's job.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Mapping, Optional

from ..calculators.money import to_decimal
from ..domain.models import CustomerTier, TierBenefits
from .validator import MOQValidation, MOQValidator

D = Decimal

# quantities at which non-retail customers usually reach a better band
RECOMMENDATION_THRESHOLDS = (1000, 5000, 10000)
# rough per-unit saving used for the recommendation estimate
ESTIMATED_SAVING_PER_UNIT = D("0.05")
WARNING_RATIO = D("0.8")


@dataclass(frozen=True)
class MinimumOrderValue:
    moq: int
    minimum_value: D
    after_discount: Optional[D] = None
    tier_discount: Optional[D] = None  # percent


@dataclass(frozen=True)
class MOQRecommendation:
    current: int
    recommended: int
    savings: Optional[D] = None


@dataclass(frozen=True)
class MOQTierComparison:
    tier: CustomerTier
    moq: int
    minimum_order_value: D
    increment: Optional[int] = None
    note: Optional[str] = None


def calculate_minimum_order_value(
    validator: MOQValidator,
    tiers: Mapping[CustomerTier, TierBenefits],
    base_price: D,
    tier: CustomerTier,
    product_id: str,
    category: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> MinimumOrderValue:
    tier = CustomerTier(tier)
    moq = validator.get_effective_moq(product_id, tier, category, now=now)
    minimum_value = to_decimal(base_price) * moq

    pct = tiers[tier].discount_percentage
    if pct <= 0:
        return MinimumOrderValue(moq=moq, minimum_value=minimum_value)
    return MinimumOrderValue(
        moq=moq,
        minimum_value=minimum_value,
        after_discount=minimum_value * (D("1") - pct / D("100")),
        tier_discount=pct,
    )


def get_moq_recommendation(
    validator: MOQValidator,
    product_id: str,
    current_quantity: int,
    tier: CustomerTier,
    category: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> MOQRecommendation:
    tier = CustomerTier(tier)
    moq = validator.get_effective_moq(product_id, tier, category, now=now)
    increment = validator.get_increment_quantity(product_id, tier, category, now=now)

    recommended = max(current_quantity, moq)
    if increment and recommended % increment != 0:
        recommended = -(-recommended // increment) * increment

    if tier != CustomerTier.RETAIL:
        for threshold in RECOMMENDATION_THRESHOLDS:
            if recommended < threshold and current_quantity < threshold:
                recommended = threshold
                break

    savings = None
    if recommended > current_quantity:
        savings = (recommended - current_quantity) * ESTIMATED_SAVING_PER_UNIT
    return MOQRecommendation(current=current_quantity, recommended=recommended, savings=savings)


def get_moq_message(validation: MOQValidation) -> str:
    if validation.valid:
        return "✓ Order quantity is valid"
    if validation.is_increment:
        return (
            f"Order must be in increments of {validation.next_valid_quantity}. "
            f"Consider ordering {validation.next_valid_quantity} units for better pricing."
        )
    return (
        f"Minimum {validation.moq} units required. "
        f"You need {validation.quantity_needed} more units."
    )


def should_show_moq_warning(quantity: int, moq: int) -> bool:
    """True when the quantity is close to the minimum (80% or more) but still below it."""
    if quantity >= moq:
        return False
    return quantity >= moq * WARNING_RATIO


def get_moq_progress_percentage(quantity: int, moq: int) -> int:
    if moq <= 0:
        return 100
    pct = (D(quantity) / D(moq) * D("100")).quantize(D("1"), rounding=ROUND_HALF_UP)
    return min(100, int(pct))


def compare_moq_across_tiers(
    validator: MOQValidator,
    tiers: Mapping[CustomerTier, TierBenefits],
    product_id: str,
    base_price: D,
    category: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> List[MOQTierComparison]:
    out: List[MOQTierComparison] = []
    for tier in CustomerTier:
        calc = calculate_minimum_order_value(
            validator, tiers, base_price, tier, product_id, category, now=now
        )
        note = None
        if calc.tier_discount is not None:
            shown = f"{calc.tier_discount:.0f}"
            if tier == CustomerTier.WHOLESALE:
                note = f"Save {shown}%"
            elif tier == CustomerTier.ENTERPRISE:
                note = f"Save {shown}% + Volume Discounts"
        out.append(
            MOQTierComparison(
                tier=tier,
                moq=calc.moq,
                minimum_order_value=calc.minimum_value,
                increment=validator.get_increment_quantity(product_id, tier, category, now=now),
                note=note,
            )
        )
    return out
