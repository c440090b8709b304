from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from app.config import get_settings
from app.core.logging_config import logger

from ..calculators.money import to_decimal
from ..domain.errors import QuoteBlocked
from ..domain.models import CustomerTier, NetTerms, PricingConfig, ShippingMethod, as_utc
from ..explain.formatter import format_notices_header
from ..invoicing.engine import InvoiceEngine
from ..invoicing.models import BillTo, Invoice, InvoiceLineItem, NetTermsDecision
from ..moq.validator import CartMOQValidation, MOQValidator
from .context import CartItem, CartItemPricing, EngineContext, PricingContext
from .line_state import get_product
from .price_calculator import PriceCalculator

D = Decimal

Clock = Callable[[], datetime]

STATUS_OK = "OK"
STATUS_BLOCKED = "BLOCKED"


@dataclass(frozen=True)
class OrderRequest:
    customer_tier: CustomerTier
    items: Sequence[CartItem]
    promotional_code: Optional[str] = None
    net_terms: NetTerms = NetTerms.NET_0
    shipping_method: Optional[ShippingMethod] = None
    tax_rate: Optional[D] = None
    credit_limit: Optional[D] = None
    credit_used: Optional[D] = None


@dataclass(frozen=True)
class OrderQuote:
    status: str
    request: OrderRequest
    now: datetime
    moq: Optional[CartMOQValidation] = None
    pricing: Optional[CartItemPricing] = None
    net_terms: Optional[NetTermsDecision] = None
    blocks: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_blocked(self) -> bool:
        return self.status == STATUS_BLOCKED

    def notices_text(self) -> str:
        parts = [
            format_notices_header("BLOCKING", self.blocks),
            format_notices_header("WARNINGS", self.warnings),
        ]
        return "\n\n".join(p for p in parts if p)


class OrderEngine:
    """
    MOQ gate -> cart pricing -> net-terms gate, then invoice on request.

    Business rule violations end up in `blocks` (hard stop) or `warnings`
    (informational); the quote is still priced so the caller can show numbers.
    """

    def __init__(self, config: PricingConfig, clock: Optional[Clock] = None):
        self.config = config
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.moq = MOQValidator(config.moq_rules, clock=self.clock)
        self.calculator = PriceCalculator(config, clock=self.clock)
        self.invoices = InvoiceEngine(config, clock=self.clock)

    def _pricing_context(self, request: OrderRequest) -> PricingContext:
        settings = get_settings()
        tax_rate = request.tax_rate
        if tax_rate is None:
            tax_rate = settings.default_tax_rate
        return PricingContext(
            customer_tier=CustomerTier(request.customer_tier),
            promotional_code=request.promotional_code,
            shipping_method=ShippingMethod(request.shipping_method or settings.default_shipping_method),
            tax_rate=to_decimal(tax_rate),
        )

    def _with_categories(self, items: Sequence[CartItem]) -> List[CartItem]:
        # fail fast on unknown products; fill the MOQ category from the catalog
        out: List[CartItem] = []
        for item in items:
            product = get_product(self.config, item.product_id)
            out.append(
                CartItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    category=item.category or product.category,
                )
            )
        return out

    def quote(self, request: OrderRequest, now: Optional[datetime] = None) -> OrderQuote:
        run_now = as_utc(now or self.clock())
        pricing_ctx = self._pricing_context(request)
        tier = pricing_ctx.customer_tier
        terms = NetTerms(request.net_terms)
        ctx = EngineContext(config=self.config, pricing=pricing_ctx, now=run_now)

        if not request.items:
            ctx.block("NO_ITEMS", "Order has no items.")
            return self._finish(ctx, request)

        items = self._with_categories(request.items)

        # 1) MOQ, per line
        moq = self.moq.validate_cart_moq(items, tier, now=run_now)
        for b in moq.breakdowns:
            if not b.valid:
                ctx.block(
                    "MOQ_NOT_MET",
                    b.message,
                    productId=b.product_id,
                    moq=b.moq,
                    quantity=b.current_quantity,
                )

        # 2) pricing
        pricing = self.calculator.calculate_cart_pricing(items, pricing_ctx, now=run_now)
        ctx.warnings.extend(pricing.warnings)

        # 3) payment terms
        decision = None
        if terms not in self.config.tiers[tier].net_terms:
            ctx.block(
                "NET_TERMS_NOT_AVAILABLE",
                f"{terms.value} is not available for {tier.value} customers",
                netTerms=terms.value,
                tier=tier.value,
            )
        else:
            decision = self.invoices.can_apply_net_terms(
                terms, pricing.total, request.credit_limit, request.credit_used
            )
            if not decision.allowed:
                ctx.block("NET_TERMS_REJECTED", decision.reason or "Net terms rejected", netTerms=terms.value)

        return self._finish(ctx, request, moq=moq, pricing=pricing, decision=decision)

    def _finish(
        self,
        ctx: EngineContext,
        request: OrderRequest,
        *,
        moq: Optional[CartMOQValidation] = None,
        pricing: Optional[CartItemPricing] = None,
        decision: Optional[NetTermsDecision] = None,
    ) -> OrderQuote:
        status = STATUS_BLOCKED if ctx.is_blocked else STATUS_OK
        logger.bind(
            tier=ctx.pricing.customer_tier.value,
            status=status,
            blocks=[b["code"] for b in ctx.blocks],
            warnings=len(ctx.warnings),
            total=str(pricing.total) if pricing else None,
        ).info("order.quoted")
        return OrderQuote(
            status=status,
            request=request,
            now=ctx.now,
            moq=moq,
            pricing=pricing,
            net_terms=decision,
            blocks=list(ctx.blocks),
            warnings=list(ctx.warnings),
        )

    def finalize_invoice(
        self,
        quote: OrderQuote,
        *,
        order_id: str,
        customer_id: str,
        customer_name: str,
        invoice_count: int = 0,
        po_number: Optional[str] = None,
        notes: Optional[str] = None,
        bill_to: Optional[BillTo] = None,
        now: Optional[datetime] = None,
    ) -> Invoice:
        """
        Draft invoice for an OK quote. Line prices already carry every
        discount, so the invoice adds tax and shipping only.
        """
        if quote.is_blocked or quote.pricing is None:
            raise QuoteBlocked(quote.blocks)

        line_items = []
        for i, calc in enumerate(quote.pricing.items, start=1):
            product = get_product(self.config, calc.product_id)
            line_items.append(
                InvoiceLineItem(
                    item_id=f"{order_id}-{i}",
                    product_id=calc.product_id,
                    product_name=product.name,
                    sku=product.sku,
                    quantity=calc.quantity,
                    unit_price=calc.final_unit_price,
                    line_total=calc.final_price,
                )
            )

        return self.invoices.create_invoice(
            order_id=order_id,
            customer_id=customer_id,
            customer_name=customer_name,
            line_items=line_items,
            net_terms=quote.request.net_terms,
            invoice_count=invoice_count,
            tax_rate=self._pricing_context(quote.request).tax_rate,
            shipping_cost=quote.pricing.estimated_shipping,
            po_number=po_number,
            notes=notes,
            bill_to=bill_to,
            now=now or quote.now,
        )
