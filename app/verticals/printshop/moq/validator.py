from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence

from app.core.logging_config import logger

from ..domain.errors import ensure_quantity
from ..domain.models import CustomerTier, MOQRule, as_utc
from ..engine.context import CartItem

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class MOQValidation:
    valid: bool
    moq: int
    current_quantity: int
    message: str
    quantity_needed: Optional[int] = None
    suggestion: Optional[str] = None
    is_increment: bool = False
    next_valid_quantity: Optional[int] = None


@dataclass(frozen=True)
class MOQBreakdown:
    product_id: str
    moq: int
    current_quantity: int
    valid: bool
    message: str


@dataclass(frozen=True)
class CartMOQValidation:
    valid: bool
    breakdowns: List[MOQBreakdown] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def _ceil_to(quantity: int, increment: int) -> int:
    return -(-quantity // increment) * increment


class MOQValidator:
    """
    Gates an order line against the minimum-order-quantity rules.

    Rules are evaluated in the order they were configured. Several rules can
    match one line: the highest minimum wins, and the increment comes from
    the first matching rule that defines one.
    """

    def __init__(self, rules: Sequence[MOQRule], clock: Optional[Clock] = None):
        self.rules = tuple(rules)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def get_applicable_rules(
        self,
        product_id: str,
        tier: CustomerTier,
        category: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> List[MOQRule]:
        at = as_utc(now or self.clock())
        out: List[MOQRule] = []
        for rule in self.rules:
            if not rule.is_effective(at):
                continue
            if not rule.applies_to_tier(tier):
                continue
            if rule.product_id and rule.product_id != product_id:
                continue
            if rule.category and rule.category != category:
                continue
            out.append(rule)
        return out

    def get_effective_moq(
        self,
        product_id: str,
        tier: CustomerTier,
        category: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> int:
        rules = self.get_applicable_rules(product_id, tier, category, now=now)
        if not rules:
            return 1
        return max(r.minimum_quantity for r in rules)

    def get_increment_quantity(
        self,
        product_id: str,
        tier: CustomerTier,
        category: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[int]:
        for rule in self.get_applicable_rules(product_id, tier, category, now=now):
            if rule.increment_quantity:
                return rule.increment_quantity
        return None

    def validate_moq(
        self,
        quantity: int,
        product_id: str,
        tier: CustomerTier,
        category: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> MOQValidation:
        quantity = ensure_quantity(quantity)
        at = as_utc(now or self.clock())
        moq = self.get_effective_moq(product_id, tier, category, now=at)
        increment = self.get_increment_quantity(product_id, tier, category, now=at)

        if quantity < moq:
            return MOQValidation(
                valid=False,
                moq=moq,
                current_quantity=quantity,
                quantity_needed=moq - quantity,
                message=f"Minimum order quantity for this product is {moq} units",
                suggestion=f"Please increase your order to at least {moq} units",
            )

        if increment and quantity % increment != 0:
            next_valid = _ceil_to(quantity, increment)
            return MOQValidation(
                valid=False,
                moq=moq,
                current_quantity=quantity,
                is_increment=True,
                next_valid_quantity=next_valid,
                message=(
                    f"Orders must be in increments of {increment}. "
                    f"Current: {quantity}, Next valid: {next_valid}"
                ),
                suggestion=f"Please adjust your order quantity to {next_valid} units",
            )

        return MOQValidation(
            valid=True,
            moq=moq,
            current_quantity=quantity,
            message="Order quantity meets MOQ requirements",
        )

    def validate_cart_moq(
        self,
        items: Iterable[CartItem],
        tier: CustomerTier,
        *,
        now: Optional[datetime] = None,
    ) -> CartMOQValidation:
        at = as_utc(now or self.clock())
        breakdowns: List[MOQBreakdown] = []
        errors: List[str] = []

        # each line on its own; quantities are never summed across items
        for item in items:
            v = self.validate_moq(item.quantity, item.product_id, tier, item.category, now=at)
            breakdowns.append(
                MOQBreakdown(
                    product_id=item.product_id,
                    moq=v.moq,
                    current_quantity=v.current_quantity,
                    valid=v.valid,
                    message=v.message,
                )
            )
            if not v.valid:
                errors.append(f"{item.product_id}: {v.suggestion or v.message}")

        if errors:
            logger.bind(tier=CustomerTier(tier).value, errors=len(errors)).info("moq.cart_rejected")

        return CartMOQValidation(valid=not errors, breakdowns=breakdowns, errors=errors)
