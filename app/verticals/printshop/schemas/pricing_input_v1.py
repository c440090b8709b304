# app/verticals/printshop/schemas/pricing_input_v1.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, condecimal, constr

from ..domain.models import CustomerTier, NetTerms, ShippingMethod
from ..engine.context import CartItem
from ..engine.order_engine import OrderRequest


class PricingItemV1(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    product_id: constr(strip_whitespace=True, min_length=1)  # type: ignore
    quantity: PositiveInt
    category: Optional[str] = None


class PricingRequestV1(BaseModel):
    """
    Boundary model for an incoming quote request. Anything not declared here
    is rejected; zero or negative quantities and unknown tiers never reach
    the engine.
    """

    model_config = ConfigDict(extra="forbid")

    customer_tier: CustomerTier
    items: List[PricingItemV1] = Field(min_length=1)
    promotional_code: Optional[constr(strip_whitespace=True, min_length=1, max_length=64)] = None  # type: ignore
    net_terms: NetTerms = NetTerms.NET_0
    shipping_method: Optional[ShippingMethod] = None
    tax_rate: Optional[condecimal(ge=0, le=1)] = None  # type: ignore
    credit_limit: Optional[condecimal(ge=0)] = None  # type: ignore
    credit_used: Optional[condecimal(ge=0)] = None  # type: ignore

    def to_order_request(self) -> OrderRequest:
        return OrderRequest(
            customer_tier=self.customer_tier,
            items=tuple(
                CartItem(product_id=i.product_id, quantity=i.quantity, category=i.category)
                for i in self.items
            ),
            promotional_code=self.promotional_code,
            net_terms=self.net_terms,
            shipping_method=self.shipping_method,
            tax_rate=self.tax_rate,
            credit_limit=self.credit_limit,
            credit_used=self.credit_used,
        )
