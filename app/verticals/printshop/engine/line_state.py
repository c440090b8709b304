from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from ..domain.errors import UnknownProduct
from ..domain.models import PricingConfig, Product, VolumeDiscount
from ..explain.breakdown_builder import Breakdown
from .context import AppliedPromotion

D = Decimal


@dataclass
class LineState:
    # Input
    product_id: str
    quantity: int
    base_price: D

    # Running per-unit price; every rule discounts what is left
    unit_price: D = D("0")

    # Resolved by rules
    tier_discount_pct: D = D("0")
    volume_discount_pct: D = D("0")
    promo_discount_pct: D = D("0")
    tier_discount_amount: D = D("0")
    volume_discount_amount: D = D("0")
    promo_discount_amount: D = D("0")
    volume_band: Optional[VolumeDiscount] = None
    promotion: Optional[AppliedPromotion] = None

    breakdown: Breakdown = field(default_factory=Breakdown)

    def __post_init__(self) -> None:
        self.unit_price = self.base_price

    def apply_pct(self, pct: D) -> D:
        """
        Take `pct` percent off the running unit price. Returns the per-unit amount removed.
        """
        amount = self.unit_price * pct / D("100")
        self.unit_price = self.unit_price - amount
        return amount

    @property
    def display_discount_pct(self) -> D:
        return self.tier_discount_pct + self.volume_discount_pct + self.promo_discount_pct


def get_product(config: PricingConfig, product_id: str) -> Product:
    product = config.products.get(product_id)
    if product is None:
        raise UnknownProduct(product_id)
    return product


def load_line_state(config: PricingConfig, product_id: str, quantity: int) -> LineState:
    product = get_product(config, product_id)
    ls = LineState(product_id=product_id, quantity=quantity, base_price=product.base_price)
    ls.breakdown.add_meta("INIT", f"product={product_id}, qty={quantity}, basePrice={product.base_price}")
    return ls
