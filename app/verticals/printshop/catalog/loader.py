from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from jsonschema import ValidationError as SchemaValidationError
from jsonschema import validate

from app.config import get_settings
from app.core.logging_config import logger

from ..data_validators.common import merge_results
from ..data_validators.tiers import validate_pricing_config, validate_promo_codes
from ..domain.errors import ConfigError
from ..domain.models import (
    CustomerTier,
    DiscountScope,
    MOQRule,
    NetTerms,
    NetTermsConfig,
    PricingConfig,
    Product,
    PromoCode,
    ShippingMethod,
    ShippingPolicy,
    TierBenefits,
    VolumeDiscount,
)

D = Decimal

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "pricing_config.schema.json"

DEFAULT_SHIPPING_RATES = {
    ShippingMethod.STANDARD: D("9.99"),
    ShippingMethod.EXPEDITED: D("19.99"),
    ShippingMethod.PRIORITY: D("39.99"),
}


def _dec(v: Any, where: str) -> D:
    try:
        return D(str(v))
    except (InvalidOperation, ValueError) as e:
        raise ConfigError(f"{where}: not a decimal: {v!r}") from e


def _opt_dec(v: Any, where: str) -> Optional[D]:
    return None if v is None else _dec(v, where)


def _dt(v: Any, where: str) -> Optional[datetime]:
    if v is None:
        return None
    if isinstance(v, datetime):
        dt = v
    else:
        try:
            dt = datetime.fromisoformat(str(v))
        except ValueError as e:
            raise ConfigError(f"{where}: not an ISO-8601 timestamp: {v!r}") from e
    # naive timestamps are UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _volume_discount(raw: Dict[str, Any], where: str) -> VolumeDiscount:
    return VolumeDiscount(
        min_quantity=int(raw["minQuantity"]),
        max_quantity=raw.get("maxQuantity"),
        discount_percentage=_dec(raw["discountPercentage"], f"{where}.discountPercentage"),
        applies_to=DiscountScope(raw.get("appliesTo", DiscountScope.ALL_PRODUCTS.value)),
        product_ids=tuple(raw.get("productIds") or ()),
    )


def _tier(name: str, raw: Dict[str, Any]) -> TierBenefits:
    where = f"tiers.{name}"
    ship = raw.get("shipping") or {}
    return TierBenefits(
        tier=CustomerTier(name),
        name=str(raw["name"]),
        description=str(raw.get("description", "")),
        info=str(raw.get("info", "")),
        discount_percentage=_dec(raw["discountPercentage"], f"{where}.discountPercentage"),
        volume_discounts=tuple(
            _volume_discount(vd, f"{where}.volumeDiscounts[{i}]")
            for i, vd in enumerate(raw.get("volumeDiscounts") or [])
        ),
        min_order_quantity=int(raw["minOrderQuantity"]),
        bulk_order_discount=_dec(raw.get("bulkOrderDiscount", "0"), f"{where}.bulkOrderDiscount"),
        net_terms=tuple(NetTerms(t) for t in raw.get("netTerms") or ["net-0"]),
        credit_terms_available=bool(raw.get("creditTermsAvailable", False)),
        credit_limit=_opt_dec(raw.get("creditLimit"), f"{where}.creditLimit"),
        invoicing_support=bool(raw.get("invoicingSupport", False)),
        shipping=ShippingPolicy(
            free_shipping_threshold=_opt_dec(ship.get("freeShippingThreshold"), f"{where}.shipping.freeShippingThreshold"),
            shipping_discount=_dec(ship.get("shippingDiscount", "0"), f"{where}.shipping.shippingDiscount"),
            expedited_available=bool(ship.get("expeditedAvailable", False)),
            drop_shipping_support=bool(ship.get("dropShippingSupport", False)),
        ),
    )


def _moq_rule(raw: Dict[str, Any]) -> MOQRule:
    rid = str(raw["id"])
    return MOQRule(
        id=rid,
        tier=str(raw["tier"]),
        minimum_quantity=int(raw["minimumQuantity"]),
        product_id=raw.get("productId"),
        category=raw.get("category"),
        increment_quantity=raw.get("incrementQuantity"),
        active=bool(raw.get("active", True)),
        effective_from=_dt(raw.get("effectiveFrom"), f"moqRules.{rid}.effectiveFrom"),
        effective_until=_dt(raw.get("effectiveUntil"), f"moqRules.{rid}.effectiveUntil"),
        notes=raw.get("notes"),
    )


def _promo(raw: Dict[str, Any]) -> PromoCode:
    code = str(raw["code"]).strip()
    return PromoCode(
        code=code,
        percentage=_dec(raw["percentage"], f"promoCodes.{code}.percentage"),
        min_quantity=int(raw.get("minQuantity", 1)),
        description=str(raw.get("description", "")),
        expires_at=_dt(raw.get("expiresAt"), f"promoCodes.{code}.expiresAt"),
    )


def build_pricing_config(raw: Dict[str, Any]) -> PricingConfig:
    """
    Build and cross-validate a PricingConfig from an already parsed mapping.
    Raises ConfigError on any problem; nothing is half-loaded.
    """
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        validate(instance=raw, schema=schema)
    except SchemaValidationError as e:
        path = "/".join(str(p) for p in e.absolute_path)
        raise ConfigError(f"pricing config schema violation at '{path}': {e.message}") from e

    tiers = {CustomerTier(name): _tier(name, t) for name, t in (raw.get("tiers") or {}).items()}
    missing = [t.value for t in CustomerTier if t not in tiers]
    if missing:
        raise ConfigError(f"pricing config misses tiers: {missing}")

    products = {
        str(pid): Product(
            id=str(pid),
            name=str(p.get("name") or pid),
            base_price=_dec(p["basePrice"], f"products.{pid}.basePrice"),
            sku=str(p.get("sku", "")),
            category=p.get("category"),
        )
        for pid, p in (raw.get("products") or {}).items()
    }

    promo_list = [_promo(p) for p in raw.get("promoCodes") or []]

    net_terms = {
        NetTerms(term): NetTermsConfig(
            term=NetTerms(term),
            days=int(c["days"]),
            label=str(c["label"]),
            description=str(c.get("description", "")),
            minimum_order_amount=_dec(c.get("minimumOrderAmount", "0"), f"netTerms.{term}.minimumOrderAmount"),
            requires_approval=bool(c.get("requiresApproval", False)),
            credit_required=bool(c.get("creditRequired", False)),
        )
        for term, c in (raw.get("netTerms") or {}).items()
    }

    rates = dict(DEFAULT_SHIPPING_RATES)
    for method, amount in (raw.get("shippingRates") or {}).items():
        rates[ShippingMethod(method)] = _dec(amount, f"shippingRates.{method}")

    config = PricingConfig(
        tiers=tiers,
        products=products,
        promo_codes={p.code.upper(): p for p in promo_list},
        moq_rules=tuple(_moq_rule(r) for r in raw.get("moqRules") or []),
        net_terms=net_terms,
        shipping_rates=rates,
        version=str(raw.get("version") or "v1"),
    )

    result = merge_results(
        validate_promo_codes(promo_list),
        validate_pricing_config(config, check_promos=False),
    )
    if not result.ok:
        raise ConfigError(f"invalid pricing config: {result.summary()}", errors=result.errors)

    for w in result.warnings:
        logger.warning("pricing_config.warning", table=w.table, key=w.key, code=w.code, message=w.message)

    return config


def load_pricing_config(path: str | Path | None = None) -> PricingConfig:
    """
    Load the YAML pricing configuration. Without a path the configured
    `pricing_config_path` setting is used. Every call returns a fresh,
    immutable config; callers own and pass it around.
    """
    if path is None:
        path = get_settings().pricing_config_path

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"pricing config not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"pricing config is not valid YAML: {config_path}") from e

    config = build_pricing_config(raw)
    logger.info(
        "pricing_config.loaded",
        path=str(config_path),
        version=config.version,
        products=len(config.products),
        promo_codes=len(config.promo_codes),
        moq_rules=len(config.moq_rules),
    )
    return config
