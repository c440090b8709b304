from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.verticals.printshop.domain.errors import InvalidQuantity
from app.verticals.printshop.domain.models import ALL_TIERS, CustomerTier, MOQRule
from app.verticals.printshop.engine.context import CartItem
from app.verticals.printshop.moq.validator import MOQValidator


@pytest.fixture
def validator(config, fixed_now):
    return MOQValidator(config.moq_rules, clock=lambda: fixed_now)


def test_moq_boundary_is_inclusive(validator):
    below = validator.validate_moq(499, "sticker-round-3in", CustomerTier.WHOLESALE)
    at = validator.validate_moq(500, "sticker-round-3in", CustomerTier.WHOLESALE)

    assert below.valid is False
    assert below.moq == 500
    assert below.quantity_needed == 1
    assert below.message == "Minimum order quantity for this product is 500 units"
    assert below.suggestion == "Please increase your order to at least 500 units"
    assert at.valid is True
    assert at.message == "Order quantity meets MOQ requirements"


def test_increment_violation_suggests_resubmittable_quantity(validator):
    v = validator.validate_moq(550, "sticker-round-3in", CustomerTier.WHOLESALE)

    assert v.valid is False
    assert v.is_increment is True
    assert v.next_valid_quantity == 600
    assert v.message == "Orders must be in increments of 100. Current: 550, Next valid: 600"

    again = validator.validate_moq(v.next_valid_quantity, "sticker-round-3in", CustomerTier.WHOLESALE)
    assert again.valid is True


def test_highest_minimum_wins(validator):
    assert validator.get_effective_moq("custom-shape", CustomerTier.WHOLESALE) == 2000
    assert validator.get_effective_moq("custom-shape", CustomerTier.ENTERPRISE) == 10000
    assert validator.get_increment_quantity("custom-shape", CustomerTier.ENTERPRISE) == 500

    v = validator.validate_moq(1900, "custom-shape", CustomerTier.WHOLESALE)
    assert v.quantity_needed == 100


def test_enterprise_increment_of_500(validator):
    assert validator.validate_moq(5000, "label-3x2in", CustomerTier.ENTERPRISE).valid is True
    v = validator.validate_moq(5250, "label-3x2in", CustomerTier.ENTERPRISE)
    assert v.next_valid_quantity == 5500


def test_category_rule_only_applies_to_its_category(validator):
    assert validator.validate_moq(1, "sticker-round-2in", CustomerTier.RETAIL).valid is True
    bulk = validator.validate_moq(49, "sticker-round-2in", CustomerTier.RETAIL, category="bulk-products")
    assert bulk.valid is False
    assert bulk.moq == 50


def test_no_rules_means_minimum_of_one(fixed_now):
    v = MOQValidator([], clock=lambda: fixed_now)
    assert v.get_effective_moq("anything", CustomerTier.RETAIL) == 1
    assert v.get_increment_quantity("anything", CustomerTier.RETAIL) is None


def test_effective_dates_and_active_flag(fixed_now):
    rules = [
        MOQRule(id="future", tier=ALL_TIERS, minimum_quantity=1000, effective_from=fixed_now + timedelta(days=1)),
        MOQRule(id="expired", tier=ALL_TIERS, minimum_quantity=900, effective_until=fixed_now - timedelta(days=1)),
        MOQRule(id="off", tier=ALL_TIERS, minimum_quantity=800, active=False),
        MOQRule(id="current", tier=ALL_TIERS, minimum_quantity=10, effective_from=fixed_now, effective_until=fixed_now),
    ]
    v = MOQValidator(rules, clock=lambda: fixed_now)

    assert [r.id for r in v.get_applicable_rules("p", CustomerTier.RETAIL)] == ["current"]
    later = fixed_now + timedelta(days=2)
    assert v.get_effective_moq("p", CustomerTier.RETAIL, now=later) == 1000


def test_first_increment_in_rule_order(fixed_now):
    rules = [
        MOQRule(id="a", tier=ALL_TIERS, minimum_quantity=100),
        MOQRule(id="b", tier=ALL_TIERS, minimum_quantity=100, increment_quantity=50),
        MOQRule(id="c", tier=ALL_TIERS, minimum_quantity=100, increment_quantity=25),
    ]
    v = MOQValidator(rules, clock=lambda: fixed_now)

    assert v.get_increment_quantity("p", CustomerTier.WHOLESALE) == 50


@pytest.mark.parametrize("qty", [0, -1, 2.5])
def test_invalid_quantity_raises(validator, qty):
    with pytest.raises(InvalidQuantity):
        validator.validate_moq(qty, "sticker-round-3in", CustomerTier.WHOLESALE)


def test_cart_moq_is_per_line(validator):
    out = validator.validate_cart_moq(
        [
            CartItem("sticker-round-3in", 500),
            CartItem("label-3x2in", 250),
            CartItem("label-3x2in", 250),
        ],
        CustomerTier.WHOLESALE,
    )

    assert out.valid is False
    assert [b.valid for b in out.breakdowns] == [True, False, False]
    assert out.errors == [
        "label-3x2in: Please increase your order to at least 500 units",
        "label-3x2in: Please increase your order to at least 500 units",
    ]


def test_cart_moq_all_valid(validator):
    out = validator.validate_cart_moq([CartItem("sticker-round-3in", 700)], CustomerTier.WHOLESALE)

    assert out.valid is True
    assert out.errors == []


def test_rule_dates_use_injected_clock():
    jan = datetime(2025, 1, 1, tzinfo=timezone.utc)
    rule = MOQRule(id="jan", tier=ALL_TIERS, minimum_quantity=5, effective_until=jan)
    v = MOQValidator([rule], clock=lambda: jan + timedelta(seconds=1))

    assert v.get_effective_moq("p", CustomerTier.RETAIL) == 1
    assert v.get_effective_moq("p", CustomerTier.RETAIL, now=jan) == 5


def test_naive_now_is_treated_as_utc_for_rule_dates():
    jan = datetime(2025, 1, 31, tzinfo=timezone.utc)
    rule = MOQRule(id="jan", tier=ALL_TIERS, minimum_quantity=5, effective_until=jan)
    v = MOQValidator([rule])

    assert v.get_effective_moq("p", CustomerTier.RETAIL, now=datetime(2025, 1, 10)) == 5
    assert v.get_effective_moq("p", CustomerTier.RETAIL, now=datetime(2025, 2, 1)) == 1
    assert v.validate_moq(3, "p", CustomerTier.RETAIL, now=datetime(2025, 1, 10)).valid is False
