from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
import re
from typing import List, Mapping, Optional, Sequence, Tuple

from pydantic import EmailStr, TypeAdapter, ValidationError

from ..calculators.money import to_decimal
from ..domain.models import CustomerTier, DiscountScope, NetTerms, TierBenefits
from ..explain.formatter import format_pct

D = Decimal

WHOLESALE_TAG = "wholesale"
LIFETIME_VALUE_THRESHOLD = D("5000")
TOTAL_ORDERS_THRESHOLD = 10

_EMAIL = TypeAdapter(EmailStr)
_PHONE_RE = re.compile(r"^\+?1?\d{10,}$")


class BusinessType(str, Enum):
    MANUFACTURER = "manufacturer"
    DISTRIBUTOR = "distributor"
    RETAILER = "retailer"
    OTHER = "other"


@dataclass(frozen=True)
class CustomerAccount:
    id: str
    role: str = "customer"
    tier: Optional[CustomerTier] = None
    tags: Tuple[str, ...] = ()
    lifetime_value: D = D("0")
    total_orders: int = 0


@dataclass(frozen=True)
class WholesaleProfile:
    business_name: Optional[str] = None
    business_type: Optional[BusinessType] = None
    net_terms: Optional[NetTerms] = None
    primary_contact_email: Optional[str] = None
    primary_contact_phone: Optional[str] = None
    tax_id: Optional[str] = None
    po_number: Optional[str] = None
    credit_limit: Optional[D] = None


@dataclass(frozen=True)
class DiscountSummary:
    discount_percentage: D
    description: str


def get_customer_tier(account: CustomerAccount) -> CustomerTier:
    """Explicit tier first, then the legacy 'wholesale' tag, else retail."""
    if account.tier is not None:
        return CustomerTier(account.tier)
    if WHOLESALE_TAG in account.tags:
        return CustomerTier.WHOLESALE
    return CustomerTier.RETAIL


def get_tier_benefits(tiers: Mapping[CustomerTier, TierBenefits], tier: CustomerTier) -> TierBenefits:
    return tiers[CustomerTier(tier)]


def calculate_discount(
    tiers: Mapping[CustomerTier, TierBenefits],
    quantity: int,
    tier: CustomerTier,
    product_ids: Sequence[str] = (),
) -> DiscountSummary:
    """
    Headline discount for marketing copy: the matching volume band if any,
    otherwise the tier rate. Not used for pricing; the calculator compounds
    both.
    """
    benefits = get_tier_benefits(tiers, tier)

    band = next(
        (
            vd
            for vd in benefits.volume_discounts
            if vd.contains(quantity)
            and (
                vd.applies_to == DiscountScope.ALL_PRODUCTS
                # a specific-products band must cover every product in the order
                or (product_ids and all(vd.covers_product(p) for p in product_ids))
            )
        ),
        None,
    )

    if band is not None:
        return DiscountSummary(
            discount_percentage=band.discount_percentage,
            description=(
                f"Volume discount: {format_pct(band.discount_percentage)}% off for {band.min_quantity}+ units"
            ),
        )
    return DiscountSummary(
        discount_percentage=benefits.discount_percentage,
        description=f"{benefits.name} pricing: {format_pct(benefits.discount_percentage)}% off",
    )


def is_wholesale_eligible(account: CustomerAccount) -> bool:
    if account.role != "customer":
        return False
    if WHOLESALE_TAG in account.tags:
        return True
    return (
        to_decimal(account.lifetime_value) >= LIFETIME_VALUE_THRESHOLD
        or account.total_orders >= TOTAL_ORDERS_THRESHOLD
    )


def _is_email(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        _EMAIL.validate_python(value)
    except ValidationError:
        return False
    return True


def validate_wholesale_profile(profile: WholesaleProfile) -> List[str]:
    errors: List[str] = []

    if not (profile.business_name or "").strip():
        errors.append("Business name is required")
    if not profile.business_type:
        errors.append("Business type is required")
    if not profile.net_terms:
        errors.append("Net terms selection is required")
    if not _is_email(profile.primary_contact_email):
        errors.append("Valid primary contact email is required")
    if not _PHONE_RE.match(profile.primary_contact_phone or ""):
        errors.append("Valid primary contact phone is required")

    return errors
