from __future__ import annotations

from typing import Any, Dict, Optional


class PrintshopError(Exception):
    """Base class for caller bugs and configuration problems (not business outcomes)."""


class InvalidQuantity(PrintshopError, ValueError):
    def __init__(self, quantity: Any):
        self.quantity = quantity
        super().__init__(f"Quantity must be a positive whole number, got {quantity!r}")


class UnknownProduct(PrintshopError, LookupError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Unknown product: {product_id}")


class UnknownNetTerms(PrintshopError, LookupError):
    def __init__(self, net_terms: Any):
        self.net_terms = net_terms
        super().__init__(f"Net terms not configured: {net_terms!r}")


class InvalidPayment(PrintshopError, ValueError):
    pass


class InvoiceStateError(PrintshopError):
    pass


class ConfigError(PrintshopError, ValueError):
    """Raised when the pricing configuration cannot be loaded deterministically."""

    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = errors or []
        super().__init__(message)


class QuoteBlocked(PrintshopError):
    """
    Raised when a caller tries to finalize a quote that carries blocks.
    """

    def __init__(self, blocks: list[Dict[str, Any]]):
        self.blocks = blocks
        codes = ", ".join(str(b.get("code")) for b in blocks)
        super().__init__(f"Quote is blocked: {codes}")


def ensure_quantity(quantity: Any) -> int:
    """
    Boundary guard: quantities are positive integers. bool is rejected too.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity(quantity)
    if quantity < 1:
        raise InvalidQuantity(quantity)
    return quantity
