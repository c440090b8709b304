from dataclasses import replace
from decimal import Decimal

from app.verticals.printshop.domain.models import CustomerTier
from app.verticals.printshop.rule_types.tier_discount import TierDiscountRule


def test_tier_discount_happy_wholesale_15(ctx, line_state):
    out = TierDiscountRule().apply(ctx=ctx, line_state=line_state)

    assert out.decision == "APPLIED"
    assert line_state.tier_discount_pct == Decimal("15")
    assert line_state.unit_price == Decimal("0.2125")
    assert out.delta == Decimal("0.0375")
    assert any("Wholesale pricing: -15%" in s for s in line_state.breakdown)


def test_tier_discount_edge_retail_is_skipped(ctx, line_state):
    ctx.pricing = replace(ctx.pricing, customer_tier=CustomerTier.RETAIL)
    out = TierDiscountRule().apply(ctx=ctx, line_state=line_state)

    assert out.decision == "SKIPPED"
    assert line_state.unit_price == Decimal("0.25")
    assert "TIER_DISCOUNT" not in line_state.breakdown.codes()


def test_tier_discount_enterprise_on_base_price(ctx, line_state):
    ctx.pricing = replace(ctx.pricing, customer_tier=CustomerTier.ENTERPRISE)
    TierDiscountRule().apply(ctx=ctx, line_state=line_state)

    assert line_state.unit_price == Decimal("0.175")
    assert line_state.tier_discount_amount == Decimal("0.075")
