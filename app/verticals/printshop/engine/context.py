from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..domain.models import CustomerTier, PricingConfig, ShippingMethod

D = Decimal


# -----------------------------
# Input models
# -----------------------------


@dataclass(frozen=True)
class ShippingAddress:
    state: Optional[str] = None
    country: Optional[str] = None


@dataclass(frozen=True)
class PricingContext:
    """
    Per-request pricing input. `quantity` is used by single-product pricing;
    cart pricing overrides it per line.
    """

    customer_tier: CustomerTier
    quantity: int = 1
    promotional_code: Optional[str] = None
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    tax_rate: D = D("0")
    shipping_address: Optional[ShippingAddress] = None


@dataclass(frozen=True)
class CartItem:
    product_id: str
    quantity: int
    category: Optional[str] = None


# -----------------------------
# Output models
# -----------------------------


@dataclass(frozen=True)
class AppliedVolumeDiscount:
    min_quantity: int
    max_quantity: Optional[int]
    percentage: D
    applies_to: str


@dataclass(frozen=True)
class AppliedPromotion:
    code: str
    percentage: D
    description: str
    valid: bool
    message: str


@dataclass(frozen=True)
class PriceBreakdown:
    """Per-unit dollar contribution of every stage."""

    retail_price: D
    tier_discount: D
    volume_discount: D
    promotional_discount: D
    final_unit_price: D


@dataclass(frozen=True)
class PriceCalculation:
    product_id: str
    base_price: D
    quantity: int
    unit_price: D
    subtotal: D
    # Display value: tier + volume + promo, NOT the compounded effective rate
    discount_percentage: D
    discount_amount: D
    final_price: D
    tier: CustomerTier
    breakdown: PriceBreakdown
    volume_discount: Optional[AppliedVolumeDiscount] = None
    promotional_discount: Optional[AppliedPromotion] = None
    steps: List[str] = field(default_factory=list)

    @property
    def final_unit_price(self) -> D:
        return self.breakdown.final_unit_price

    @property
    def effective_discount_percentage(self) -> D:
        if self.base_price == 0:
            return D("0")
        return (D("1") - self.breakdown.final_unit_price / self.base_price) * D("100")


@dataclass(frozen=True)
class Savings:
    amount: D
    percentage: D
    description: str


@dataclass(frozen=True)
class CartItemPricing:
    items: List[PriceCalculation]
    subtotal: D
    total_discount: D
    estimated_tax: D
    estimated_shipping: D
    total: D
    savings: Savings
    warnings: List[Dict[str, Any]] = field(default_factory=list)


# -----------------------------
# Runtime context (per request)
# -----------------------------


@dataclass
class EngineContext:
    """
    Execution context for one pricing run: injected config, request input,
    a fixed `now` and the warning/block accumulators. Nothing outside this object.
    """

    config: PricingConfig
    pricing: PricingContext
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    warnings: List[Dict[str, Any]] = field(default_factory=list)
    blocks: List[Dict[str, Any]] = field(default_factory=list)

    def warn(self, code: str, message: str, **meta: Any) -> None:
        self.warnings.append({"code": code, "message": message, "meta": meta})

    def block(self, code: str, message: str, **meta: Any) -> None:
        self.blocks.append({"code": code, "message": message, "meta": meta})

    @property
    def is_blocked(self) -> bool:
        return bool(self.blocks)
