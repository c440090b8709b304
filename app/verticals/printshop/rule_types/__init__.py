# Ensure registration happens by importing modules
from .base import Rule, RuleResult, rule_registry  # noqa
from . import (  # noqa
    tier_discount,
    volume_discount,
    promo_code,
)

# Fixed precedence; discounts compound in this order
PRICING_PIPELINE = ("tier_discount", "volume_discount", "promo_code")
