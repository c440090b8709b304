from __future__ import annotations

from typing import Iterable, Optional

from ..domain.models import VolumeDiscount
from ..explain.formatter import format_pct
from .base import D, Rule, RuleResult, register


def select_volume_band(
    bands: Iterable[VolumeDiscount], quantity: int, product_id: str
) -> Optional[VolumeDiscount]:
    """
    First band in declared order matching quantity and product scope.
    Bands are checked for overlap when the config is loaded.
    """
    for band in bands:
        if band.matches(quantity, product_id):
            return band
    return None


@register
class VolumeDiscountRule(Rule):
    """
    Stage 2: quantity band discount, on the price after the tier discount.
    """

    type_name = "volume_discount"
    title = "Volume discount"

    def apply(self, ctx, line_state) -> RuleResult:
        tier = ctx.config.tiers[ctx.pricing.customer_tier]
        band = select_volume_band(tier.volume_discounts, line_state.quantity, line_state.product_id)

        if band is None:
            line_state.volume_discount_pct = D("0")
            return RuleResult.skipped({"reason": "no_matching_band", "qty": line_state.quantity})

        line_state.volume_band = band
        pct = band.discount_percentage
        line_state.volume_discount_pct = pct

        if pct <= D("0"):
            return RuleResult.skipped({"reason": "zero_pct", "min": band.min_quantity})

        before = line_state.unit_price
        amount = line_state.apply_pct(pct)
        line_state.volume_discount_amount = amount

        upper = band.max_quantity if band.max_quantity is not None else "+"
        line_state.breakdown.add_step(
            "VOLUME_DISCOUNT",
            f"Volume discount {band.min_quantity}-{upper}: -{format_pct(pct)}% (from {before} to {line_state.unit_price})",
        )
        return RuleResult.applied(
            amount,
            {"pct": str(pct), "min": band.min_quantity, "max": band.max_quantity},
        )
