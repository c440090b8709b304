from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..domain.models import (
    DiscountScope,
    MOQRule,
    PricingConfig,
    PromoCode,
    TierBenefits,
    VolumeDiscount,
)
from .common import ValidationError, ValidationResult, ValidationWarning, _err, _warn, merge_results

D = Decimal
HUNDRED = D("100")


def _upper(band: VolumeDiscount) -> Optional[int]:
    return band.max_quantity


def bands_overlap(a: VolumeDiscount, b: VolumeDiscount) -> bool:
    """
    True when some (quantity, product) pair would match both bands.
    """
    a_max = _upper(a)
    b_max = _upper(b)
    ranges_meet = (b_max is None or a.min_quantity <= b_max) and (
        a_max is None or b.min_quantity <= a_max
    )
    if not ranges_meet:
        return False

    if a.applies_to == DiscountScope.ALL_PRODUCTS or b.applies_to == DiscountScope.ALL_PRODUCTS:
        return True
    return bool(set(a.product_ids) & set(b.product_ids))


def _pct_ok(v: D) -> bool:
    return D("0") <= v <= HUNDRED


def validate_tier_benefits(tier: TierBenefits, known_terms: set) -> ValidationResult:
    errors: list[ValidationError] = []
    warnings: list[ValidationWarning] = []
    key = tier.tier.value

    if not _pct_ok(tier.discount_percentage):
        errors.append(_err("tiers", key, "discountPercentage", "OUT_OF_RANGE", "discountPercentage must be between 0 and 100."))

    if not _pct_ok(tier.shipping.shipping_discount):
        errors.append(_err("tiers", key, "shippingDiscount", "OUT_OF_RANGE", "shippingDiscount must be between 0 and 100."))

    for term in tier.net_terms:
        if term not in known_terms:
            errors.append(_err("tiers", key, "netTerms", "UNKNOWN_TERM", f"Net terms '{term.value}' are not configured."))

    bands = list(tier.volume_discounts)
    for idx, band in enumerate(bands):
        where = f"volumeDiscounts[{idx}]"
        if band.max_quantity is not None and band.min_quantity > band.max_quantity:
            errors.append(_err("tiers", key, where, "INVALID_RANGE", "minQuantity must be <= maxQuantity."))
        if not _pct_ok(band.discount_percentage):
            errors.append(_err("tiers", key, where, "OUT_OF_RANGE", "discountPercentage must be between 0 and 100."))
        if band.applies_to == DiscountScope.SPECIFIC_PRODUCTS and not band.product_ids:
            errors.append(_err("tiers", key, where, "EMPTY_SCOPE", "specific-products band needs at least one product id."))

    # Non-overlap: selection stays first-match, but any overlap is rejected here
    for i in range(len(bands)):
        for j in range(i + 1, len(bands)):
            if bands_overlap(bands[i], bands[j]):
                errors.append(
                    _err(
                        "tiers",
                        key,
                        f"volumeDiscounts[{j}]",
                        "OVERLAP",
                        f"Volume band {j} overlaps band {i} "
                        f"({bands[i].min_quantity}-{bands[i].max_quantity or 'inf'} vs "
                        f"{bands[j].min_quantity}-{bands[j].max_quantity or 'inf'}).",
                    )
                )

    if tier.credit_terms_available and tier.credit_limit is None:
        warnings.append(
            _warn("tiers", key, "creditLimit", "NO_CREDIT_LIMIT", "Credit terms are available but no credit limit is configured.")
        )

    return ValidationResult(ok=len(errors) == 0, errors=errors, warnings=warnings)


def validate_promo_codes(promos: list[PromoCode]) -> ValidationResult:
    errors: list[ValidationError] = []
    seen: set[str] = set()
    for p in promos:
        code = p.code.upper()
        if code in seen:
            errors.append(_err("promoCodes", p.code, "code", "DUPLICATE", "Promo codes are case-insensitive and must be unique."))
        seen.add(code)
        if not _pct_ok(p.percentage):
            errors.append(_err("promoCodes", p.code, "percentage", "OUT_OF_RANGE", "percentage must be between 0 and 100."))
    return ValidationResult(ok=len(errors) == 0, errors=errors)


def validate_moq_rules(rules: list[MOQRule]) -> ValidationResult:
    errors: list[ValidationError] = []
    seen: set[str] = set()
    for r in rules:
        if r.id in seen:
            errors.append(_err("moqRules", r.id, "id", "DUPLICATE", "MOQ rule ids must be unique."))
        seen.add(r.id)
        if r.effective_from and r.effective_until and r.effective_from > r.effective_until:
            errors.append(_err("moqRules", r.id, "effectiveUntil", "INVALID_RANGE", "effectiveFrom must be <= effectiveUntil."))
        if r.increment_quantity is not None and r.minimum_quantity % r.increment_quantity != 0:
            errors.append(
                _err(
                    "moqRules",
                    r.id,
                    "incrementQuantity",
                    "UNREACHABLE_MOQ",
                    "minimumQuantity must be a multiple of incrementQuantity.",
                )
            )
    return ValidationResult(ok=len(errors) == 0, errors=errors)


def validate_pricing_config(config: PricingConfig, *, check_promos: bool = True) -> ValidationResult:
    known_terms = set(config.net_terms.keys())
    results = [validate_tier_benefits(t, known_terms) for t in config.tiers.values()]
    if check_promos:
        results.append(validate_promo_codes(list(config.promo_codes.values())))
    results.append(validate_moq_rules(list(config.moq_rules)))

    errors: list[ValidationError] = []
    for pid, product in config.products.items():
        if product.base_price < 0:
            errors.append(_err("products", pid, "basePrice", "OUT_OF_RANGE", "basePrice must be >= 0."))
    results.append(ValidationResult(ok=not errors, errors=errors))

    return merge_results(*results)
