from __future__ import annotations

from ..calculators.promo import validate_promo_code
from ..engine.context import AppliedPromotion
from ..explain.formatter import format_pct
from .base import D, Rule, RuleResult, register


@register
class PromoCodeRule(Rule):
    """
    Stage 3: promotional code, on the price after tier and volume discounts.
    An invalid code never fails the line: 0% plus a warning.
    """

    type_name = "promo_code"
    title = "Promotional code"

    def apply(self, ctx, line_state) -> RuleResult:
        code = ctx.pricing.promotional_code
        if not code:
            return RuleResult.skipped({"reason": "no_code"})

        validation = validate_promo_code(ctx.config.promo_codes, code, line_state.quantity, ctx.now)

        if not validation.valid or validation.discount is None:
            line_state.promotion = AppliedPromotion(
                code=code,
                percentage=D("0"),
                description="",
                valid=False,
                message=validation.message,
            )
            line_state.breakdown.add_check(
                "PROMO_CODE",
                f"Promotional code {code}: {validation.message}",
                status="FAIL",
            )
            ctx.warn(
                "PROMO_CODE_INVALID",
                validation.message,
                promoCode=code,
                productId=line_state.product_id,
                quantity=line_state.quantity,
            )
            return RuleResult.skipped({"reason": "invalid_code", "message": validation.message})

        pct = validation.discount
        line_state.promo_discount_pct = pct
        line_state.promotion = AppliedPromotion(
            code=code,
            percentage=pct,
            description=validation.promo.description if validation.promo else "",
            valid=True,
            message=validation.message,
        )

        before = line_state.unit_price
        amount = line_state.apply_pct(pct)
        line_state.promo_discount_amount = amount

        line_state.breakdown.add_step(
            "PROMO_CODE",
            f"Promotional code {code.upper()}: -{format_pct(pct)}% (from {before} to {line_state.unit_price})",
        )
        return RuleResult.applied(amount, {"code": code.upper(), "pct": str(pct)})
