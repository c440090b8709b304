from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from ..domain.models import ShippingMethod, ShippingPolicy

D = Decimal


def calc_shipping(
    subtotal: D,
    policy: ShippingPolicy,
    method: ShippingMethod,
    rates: Mapping[ShippingMethod, D],
) -> D:
    """
    Free when a positive threshold is configured and subtotal >= threshold;
    otherwise the method's base rate minus the tier's shipping discount.
    The threshold check wins over the discount.
    """
    threshold = policy.free_shipping_threshold
    if threshold is not None and threshold > 0 and subtotal >= threshold:
        return D("0")

    base = rates[ShippingMethod(method)]
    if policy.shipping_discount > 0:
        return base * (D("1") - policy.shipping_discount / D("100"))
    return base
