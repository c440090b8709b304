from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

D = Decimal


def as_utc(dt: datetime) -> datetime:
    # naive timestamps are taken as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class CustomerTier(str, Enum):
    RETAIL = "retail"
    WHOLESALE = "wholesale"
    ENTERPRISE = "enterprise"


# MOQ rules may target every tier at once
ALL_TIERS = "all"


class DiscountScope(str, Enum):
    ALL_PRODUCTS = "all-products"
    SPECIFIC_PRODUCTS = "specific-products"


class ShippingMethod(str, Enum):
    STANDARD = "standard"
    EXPEDITED = "expedited"
    PRIORITY = "priority"


class NetTerms(str, Enum):
    NET_0 = "net-0"
    NET_15 = "net-15"
    NET_30 = "net-30"
    NET_60 = "net-60"


# -----------------------------
# Tier benefits
# -----------------------------


@dataclass(frozen=True)
class VolumeDiscount:
    """
    Quantity band [min_quantity, max_quantity]; max_quantity None = unbounded.
    """

    min_quantity: int
    discount_percentage: D
    max_quantity: Optional[int] = None
    applies_to: DiscountScope = DiscountScope.ALL_PRODUCTS
    product_ids: Tuple[str, ...] = ()

    def contains(self, quantity: int) -> bool:
        if quantity < self.min_quantity:
            return False
        return self.max_quantity is None or quantity <= self.max_quantity

    def covers_product(self, product_id: str) -> bool:
        if self.applies_to == DiscountScope.ALL_PRODUCTS:
            return True
        return product_id in self.product_ids

    def matches(self, quantity: int, product_id: str) -> bool:
        return self.contains(quantity) and self.covers_product(product_id)


@dataclass(frozen=True)
class ShippingPolicy:
    # None or 0 = no free shipping threshold
    free_shipping_threshold: Optional[D] = None
    shipping_discount: D = D("0")
    expedited_available: bool = False
    drop_shipping_support: bool = False


@dataclass(frozen=True)
class TierBenefits:
    tier: CustomerTier
    name: str
    description: str
    discount_percentage: D
    volume_discounts: Tuple[VolumeDiscount, ...]
    min_order_quantity: int
    shipping: ShippingPolicy
    bulk_order_discount: D = D("0")
    net_terms: Tuple[NetTerms, ...] = (NetTerms.NET_0,)
    credit_terms_available: bool = False
    credit_limit: Optional[D] = None
    invoicing_support: bool = False
    info: str = ""


# -----------------------------
# Catalog, promos, MOQ
# -----------------------------


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    base_price: D
    sku: str = ""
    category: Optional[str] = None


@dataclass(frozen=True)
class PromoCode:
    code: str
    percentage: D
    min_quantity: int = 1
    description: str = ""
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class MOQRule:
    id: str
    tier: str  # CustomerTier value or ALL_TIERS
    minimum_quantity: int
    product_id: Optional[str] = None
    category: Optional[str] = None
    increment_quantity: Optional[int] = None
    active: bool = True
    effective_from: Optional[datetime] = None
    effective_until: Optional[datetime] = None
    notes: Optional[str] = None

    def applies_to_tier(self, tier: CustomerTier) -> bool:
        return self.tier == ALL_TIERS or self.tier == CustomerTier(tier).value

    def is_effective(self, now: datetime) -> bool:
        if not self.active:
            return False
        at = as_utc(now)
        if self.effective_from is not None and at < as_utc(self.effective_from):
            return False
        if self.effective_until is not None and at > as_utc(self.effective_until):
            return False
        return True


@dataclass(frozen=True)
class NetTermsConfig:
    term: NetTerms
    days: int
    label: str
    description: str
    minimum_order_amount: D = D("0")
    requires_approval: bool = False
    credit_required: bool = False


# -----------------------------
# Whole configuration (injected, read-only)
# -----------------------------


@dataclass(frozen=True)
class PricingConfig:
    """
    Everything the engines need, loaded once and passed in explicitly.
    """

    tiers: dict = field(default_factory=dict)  # CustomerTier -> TierBenefits
    products: dict = field(default_factory=dict)  # product_id -> Product
    promo_codes: dict = field(default_factory=dict)  # CODE (upper) -> PromoCode
    moq_rules: Tuple[MOQRule, ...] = ()
    net_terms: dict = field(default_factory=dict)  # NetTerms -> NetTermsConfig
    shipping_rates: dict = field(default_factory=dict)  # ShippingMethod -> Decimal
    version: str = "v1"
