from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Mapping, Optional

from app.core.logging_config import logger

from ..calculators.money import to_decimal
from ..domain.errors import UnknownNetTerms
from ..domain.models import NetTerms, NetTermsConfig
from .models import NetTermsDecision, PaymentEstimate

D = Decimal

TermsTable = Mapping[NetTerms, NetTermsConfig]

EARLY_PAYMENT_WINDOW_DAYS = 10


def get_terms_config(terms: TermsTable, net_terms: NetTerms) -> NetTermsConfig:
    try:
        return terms[NetTerms(net_terms)]
    except (KeyError, ValueError) as e:
        raise UnknownNetTerms(net_terms) from e


def calculate_due_date(terms: TermsTable, invoice_date: datetime, net_terms: NetTerms) -> datetime:
    return invoice_date + timedelta(days=get_terms_config(terms, net_terms).days)


def can_apply_net_terms(
    terms: TermsTable,
    net_terms: NetTerms,
    order_total: D,
    credit_limit: Optional[D] = None,
    credit_used: Optional[D] = None,
) -> NetTermsDecision:
    """
    Minimum order amount first, then available credit. The credit check only
    runs for terms that require credit and when the customer's limit is known.
    """
    cfg = get_terms_config(terms, net_terms)
    total = to_decimal(order_total)

    if cfg.minimum_order_amount > 0 and total < cfg.minimum_order_amount:
        reason = f"Minimum order of ${cfg.minimum_order_amount} required for {cfg.label}"
        logger.bind(net_terms=cfg.term.value, order_total=str(total)).info("net_terms.rejected_minimum")
        return NetTermsDecision(allowed=False, reason=reason)

    if cfg.credit_required and credit_limit is not None:
        available = to_decimal(credit_limit) - to_decimal(credit_used or 0)
        if available < total:
            reason = f"Insufficient credit available. Required: ${total}, Available: ${available}"
            logger.bind(
                net_terms=cfg.term.value,
                order_total=str(total),
                available=str(available),
            ).info("net_terms.rejected_credit")
            return NetTermsDecision(allowed=False, reason=reason)

    return NetTermsDecision(allowed=True)


def get_payment_terms_display(terms: TermsTable, net_terms: NetTerms) -> str:
    cfg = get_terms_config(terms, net_terms)
    return f"{cfg.label} - {cfg.description}"


def estimate_payment_date(
    terms: TermsTable,
    invoice_date: datetime,
    net_terms: NetTerms,
    early_payment_discount: Optional[D] = None,
) -> PaymentEstimate:
    due_date = calculate_due_date(terms, invoice_date, net_terms)
    if not early_payment_discount:
        return PaymentEstimate(due_date=due_date)
    # 2/10 net 30 style
    return PaymentEstimate(
        due_date=due_date,
        discount_deadline=invoice_date + timedelta(days=EARLY_PAYMENT_WINDOW_DAYS),
        discount_percentage=to_decimal(early_payment_discount),
    )
