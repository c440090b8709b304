from __future__ import annotations

from ..explain.formatter import format_pct
from .base import D, Rule, RuleResult, register


@register
class TierDiscountRule(Rule):
    """
    Stage 1: flat discount of the customer's tier, on the base price.
    """

    type_name = "tier_discount"
    title = "Tier discount"

    def apply(self, ctx, line_state) -> RuleResult:
        tier = ctx.config.tiers[ctx.pricing.customer_tier]
        pct = tier.discount_percentage
        line_state.tier_discount_pct = pct

        if pct <= D("0"):
            return RuleResult.skipped({"tier": tier.tier.value, "pct": "0"})

        before = line_state.unit_price
        amount = line_state.apply_pct(pct)
        line_state.tier_discount_amount = amount

        line_state.breakdown.add_step(
            "TIER_DISCOUNT",
            f"{tier.name} pricing: -{format_pct(pct)}% (from {before} to {line_state.unit_price})",
        )
        return RuleResult.applied(amount, {"tier": tier.tier.value, "pct": str(pct)})
