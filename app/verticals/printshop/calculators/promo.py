from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional

from ..domain.models import PromoCode, as_utc

D = Decimal


@dataclass(frozen=True)
class PromoValidation:
    valid: bool
    message: str
    discount: Optional[D] = None
    promo: Optional[PromoCode] = None


def validate_promo_code(
    promo_codes: Mapping[str, PromoCode],
    code: str,
    quantity: int,
    now: datetime,
) -> PromoValidation:
    """
    Fails closed: unknown, expired (now > expires_at) or below the minimum
    quantity are all invalid. Codes are matched case-insensitively.
    """
    promo = promo_codes.get((code or "").strip().upper())

    if promo is None:
        return PromoValidation(valid=False, message="Promotional code not found")

    if promo.expires_at is not None and as_utc(now) > as_utc(promo.expires_at):
        return PromoValidation(valid=False, message="Promotional code has expired", promo=promo)

    if quantity < promo.min_quantity:
        return PromoValidation(
            valid=False,
            message=f"Minimum order of {promo.min_quantity} units required for this code",
            promo=promo,
        )

    return PromoValidation(valid=True, message="Code applied", discount=promo.percentage, promo=promo)
