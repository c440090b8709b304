from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

import pytest

import app.verticals.printshop.rule_types  # noqa: F401 (register all rules)

from app.core.logging_config import setup_logging
from app.verticals.printshop.catalog.loader import load_pricing_config
from app.verticals.printshop.domain.models import CustomerTier, Product
from app.verticals.printshop.engine.context import EngineContext, PricingContext
from app.verticals.printshop.engine.line_state import load_line_state
from app.verticals.printshop.engine.price_calculator import PriceCalculator


@pytest.fixture
def fixed_now():
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def config():
    # The shipped YAML; also proves it passes schema + cross validation
    cfg = load_pricing_config()
    products = dict(cfg.products)
    products["test-035"] = Product(id="test-035", name="Test Sticker", base_price=Decimal("0.35"), sku="TST-035")
    return replace(cfg, products=products)


@pytest.fixture
def calculator(config, fixed_now):
    return PriceCalculator(config, clock=lambda: fixed_now)


@pytest.fixture
def wholesale_ctx():
    return PricingContext(customer_tier=CustomerTier.WHOLESALE, quantity=500)


@pytest.fixture
def retail_ctx():
    return PricingContext(customer_tier=CustomerTier.RETAIL, quantity=1)


@pytest.fixture
def ctx(config, wholesale_ctx, fixed_now):
    # Minimal ctx for unit-testing rules directly
    return EngineContext(config=config, pricing=wholesale_ctx, now=fixed_now)


@pytest.fixture
def line_state(config):
    # sticker-round-3in, base 0.25; tests override quantity where needed
    return load_line_state(config, "sticker-round-3in", 500)


@pytest.fixture(scope="session", autouse=True)
def _logging():
    setup_logging("WARNING")
