from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from app.core.logging_config import logger

from ..calculators.promo import PromoValidation, validate_promo_code
from ..calculators.money import to_decimal
from ..calculators.shipping import calc_shipping
from ..domain.errors import ensure_quantity
from ..domain.models import CustomerTier, NetTerms, PricingConfig, TierBenefits, as_utc
from ..invoicing.net_terms import calculate_due_date
from ..rule_types import PRICING_PIPELINE, rule_registry
from ..rule_types.base import Rule
from .context import (
    AppliedVolumeDiscount,
    CartItem,
    CartItemPricing,
    EngineContext,
    PriceBreakdown,
    PriceCalculation,
    PricingContext,
    Savings,
)
from .line_state import LineState, get_product, load_line_state

D = Decimal

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PriceCalculator:
    """
    Tier -> volume -> promo pipeline for one product, and cart aggregation.

    Deterministic: the config is injected and `now` can be passed per call
    (or a clock at construction). No state is kept between calls.
    """

    def __init__(self, config: PricingConfig, clock: Optional[Clock] = None):
        self.config = config
        self.clock = clock or _utc_now
        self.rules: List[Rule] = [rule_registry[name]() for name in PRICING_PIPELINE]

    # -----------------
    # lookups
    # -----------------

    def get_base_price(self, product_id: str) -> D:
        return get_product(self.config, product_id).base_price

    def tier_benefits(self, tier: CustomerTier) -> TierBenefits:
        return self.config.tiers[CustomerTier(tier)]

    def validate_promo_code(self, code: str, quantity: int, *, now: Optional[datetime] = None) -> PromoValidation:
        ensure_quantity(quantity)
        return validate_promo_code(self.config.promo_codes, code, quantity, now or self.clock())

    # -----------------
    # single product
    # -----------------

    def _run_pipeline(self, ctx: EngineContext, product_id: str, quantity: int) -> LineState:
        ls = load_line_state(self.config, product_id, quantity)
        for rule in self.rules:
            rule.apply(ctx=ctx, line_state=ls)
        return ls

    @staticmethod
    def _to_calculation(ls: LineState, tier: CustomerTier) -> PriceCalculation:
        subtotal = ls.unit_price * ls.quantity
        discount_amount = ls.base_price * ls.quantity - subtotal

        band = ls.volume_band
        return PriceCalculation(
            product_id=ls.product_id,
            base_price=ls.base_price,
            quantity=ls.quantity,
            unit_price=ls.base_price,
            subtotal=subtotal,
            discount_percentage=ls.display_discount_pct,
            discount_amount=discount_amount,
            final_price=subtotal,
            tier=tier,
            breakdown=PriceBreakdown(
                retail_price=ls.base_price,
                tier_discount=ls.tier_discount_amount,
                volume_discount=ls.volume_discount_amount,
                promotional_discount=ls.promo_discount_amount,
                final_unit_price=ls.unit_price,
            ),
            volume_discount=(
                AppliedVolumeDiscount(
                    min_quantity=band.min_quantity,
                    max_quantity=band.max_quantity,
                    percentage=band.discount_percentage,
                    applies_to=band.applies_to.value,
                )
                if band is not None
                else None
            ),
            promotional_discount=ls.promotion,
            steps=ls.breakdown.as_strings(),
        )

    def calculate_product_price(
        self,
        product_id: str,
        context: PricingContext,
        *,
        now: Optional[datetime] = None,
    ) -> PriceCalculation:
        quantity = ensure_quantity(context.quantity)
        tier = CustomerTier(context.customer_tier)
        ctx = EngineContext(config=self.config, pricing=context, now=as_utc(now or self.clock()))

        ls = self._run_pipeline(ctx, product_id, quantity)
        for w in ctx.warnings:
            logger.info("pricing.warning", warning_code=w["code"], message=w["message"], meta=w["meta"])
        return self._to_calculation(ls, tier)

    # -----------------
    # cart
    # -----------------

    def calculate_shipping(self, subtotal: D, context: PricingContext) -> D:
        tier = self.tier_benefits(context.customer_tier)
        return calc_shipping(to_decimal(subtotal), tier.shipping, context.shipping_method, self.config.shipping_rates)

    @staticmethod
    def _savings_description(tier: CustomerTier, pct: D) -> str:
        shown = f"{pct:.0f}"
        if tier == CustomerTier.WHOLESALE:
            return f"You're saving {shown}% as a wholesale customer"
        if tier == CustomerTier.ENTERPRISE:
            return f"Enterprise pricing: save {shown}%"
        if pct > 0:
            return f"Volume discounts applied: save {shown}%"
        return "Standard pricing"

    def calculate_cart_pricing(
        self,
        items: Iterable[CartItem],
        context: PricingContext,
        *,
        now: Optional[datetime] = None,
    ) -> CartItemPricing:
        run_now = as_utc(now or self.clock())
        tier = CustomerTier(context.customer_tier)

        calculations: List[PriceCalculation] = []
        warnings: list = []
        for item in items:
            line_ctx = replace(context, quantity=ensure_quantity(item.quantity))
            ctx = EngineContext(config=self.config, pricing=line_ctx, now=run_now)
            ls = self._run_pipeline(ctx, item.product_id, line_ctx.quantity)
            calculations.append(self._to_calculation(ls, tier))
            warnings.extend(ctx.warnings)

        subtotal = sum((c.final_price for c in calculations), D("0"))
        total_discount = sum((c.discount_amount for c in calculations), D("0"))

        estimated_tax = subtotal * to_decimal(context.tax_rate or 0)
        estimated_shipping = self.calculate_shipping(subtotal, context)
        total = subtotal + estimated_tax + estimated_shipping

        if subtotal > 0:
            savings_pct = total_discount / (subtotal + total_discount) * D("100")
        else:
            savings_pct = D("0")

        logger.bind(
            tier=tier.value,
            lines=len(calculations),
            subtotal=str(subtotal),
            warnings=len(warnings),
        ).info("pricing.cart_priced")

        return CartItemPricing(
            items=calculations,
            subtotal=subtotal,
            total_discount=total_discount,
            estimated_tax=estimated_tax,
            estimated_shipping=estimated_shipping,
            total=total,
            savings=Savings(
                amount=total_discount,
                percentage=savings_pct,
                description=self._savings_description(tier, savings_pct),
            ),
            warnings=warnings,
        )

    # -----------------
    # payment term helpers
    # -----------------

    def estimate_net_terms_due_date(self, net_terms: NetTerms, invoice_date: Optional[datetime] = None) -> datetime:
        return calculate_due_date(self.config.net_terms, invoice_date or self.clock(), net_terms)

    def get_pricing_tier_info(self, tier: CustomerTier) -> str:
        return self.tier_benefits(tier).info


def calculate_early_payment_discount(
    amount: D, days_early_payment: int, discount_percentage: D = D("2")
) -> D:
    """
    2/10 net 30 style: `discount_percentage` off when paid within 10 days.
    """
    if days_early_payment <= 10:
        return to_decimal(amount) * to_decimal(discount_percentage) / D("100")
    return D("0")
