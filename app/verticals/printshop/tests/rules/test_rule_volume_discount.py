from decimal import Decimal

import pytest

from app.verticals.printshop.domain.models import DiscountScope, VolumeDiscount
from app.verticals.printshop.rule_types.volume_discount import VolumeDiscountRule, select_volume_band


def test_volume_discount_happy_500_band(ctx, line_state):
    out = VolumeDiscountRule().apply(ctx=ctx, line_state=line_state)

    assert out.decision == "APPLIED"
    assert line_state.volume_discount_pct == Decimal("18")
    assert line_state.volume_band.min_quantity == 500
    assert line_state.unit_price == Decimal("0.205")
    assert "VOLUME_DISCOUNT" in line_state.breakdown.codes()


@pytest.mark.parametrize(
    "qty, pct",
    [(1999, Decimal("18")), (2000, Decimal("22")), (4999, Decimal("22")), (5000, Decimal("25"))],
)
def test_volume_discount_edge_band_boundaries(ctx, line_state, qty, pct):
    line_state.quantity = qty
    VolumeDiscountRule().apply(ctx=ctx, line_state=line_state)

    assert line_state.volume_discount_pct == pct


def test_volume_discount_invalid_below_first_band(ctx, line_state):
    line_state.quantity = 499
    out = VolumeDiscountRule().apply(ctx=ctx, line_state=line_state)

    assert out.decision == "SKIPPED"
    assert line_state.volume_discount_pct == Decimal("0")
    assert line_state.volume_band is None
    assert line_state.unit_price == Decimal("0.25")


def test_select_volume_band_respects_product_scope():
    bands = [
        VolumeDiscount(
            min_quantity=100,
            max_quantity=499,
            discount_percentage=Decimal("12"),
            applies_to=DiscountScope.SPECIFIC_PRODUCTS,
            product_ids=("custom-shape",),
        ),
        VolumeDiscount(min_quantity=500, discount_percentage=Decimal("20")),
    ]

    assert select_volume_band(bands, 200, "custom-shape").discount_percentage == Decimal("12")
    assert select_volume_band(bands, 200, "label-3x2in") is None
    assert select_volume_band(bands, 800, "label-3x2in").discount_percentage == Decimal("20")
