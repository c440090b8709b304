from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence
import uuid

from app.config import get_settings
from app.core.logging_config import logger

from ..calculators.money import to_decimal
from ..domain.errors import InvalidPayment, InvoiceStateError
from ..domain.models import NetTerms, PricingConfig, as_utc
from . import net_terms as terms_mod
from .models import (
    BillTo,
    Invoice,
    InvoiceLineItem,
    InvoiceStatus,
    InvoiceTotals,
    NetTermsDecision,
    Payment,
    PaymentEstimate,
    PaymentMethod,
    PaymentStatus,
)

D = Decimal

Clock = Callable[[], datetime]

ONE_DAY = timedelta(days=1)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------
# Status
# -----------------------------


def get_days_overdue(due_date: datetime, now: Optional[datetime] = None) -> int:
    """Whole days past due, floored. Negative before the due date."""
    at = as_utc(now or _utc_now())
    return (at - as_utc(due_date)) // ONE_DAY


def get_invoice_status(
    due_date: datetime,
    amount_remaining: D,
    amount_paid: D,
    now: Optional[datetime] = None,
) -> PaymentStatus:
    if amount_remaining <= 0:
        return PaymentStatus.PAID
    # overdue outranks partial
    if get_days_overdue(due_date, now) > 0:
        return PaymentStatus.OVERDUE
    if amount_paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


# -----------------------------
# Totals & numbering
# -----------------------------


def calculate_invoice_totals(
    line_items: Iterable[InvoiceLineItem],
    discount_percentage: D = D("0"),
    tax_rate: D = D("0.08"),
    shipping_cost: D = D("0"),
) -> InvoiceTotals:
    """
    Discount applies to the subtotal, tax to the discounted subtotal.
    Shipping is added last and is not taxed.
    """
    subtotal = sum((item.line_total for item in line_items), D("0"))
    discount_amount = subtotal * to_decimal(discount_percentage) / D("100")
    after_discount = subtotal - discount_amount
    tax_amount = after_discount * to_decimal(tax_rate)
    return InvoiceTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        subtotal_after_discount=after_discount,
        tax_amount=tax_amount,
        total=after_discount + tax_amount + to_decimal(shipping_cost),
    )


def generate_invoice_number(invoice_count: int, now: Optional[datetime] = None, prefix: str = "INV") -> str:
    at = now or _utc_now()
    return f"{prefix}-{at:%Y%m}-{invoice_count + 1:05d}"


# -----------------------------
# Lifecycle (every function returns a new Invoice)
# -----------------------------


def ensure_open(invoice: Invoice, action: str) -> None:
    if invoice.status == InvoiceStatus.CANCELLED:
        raise InvoiceStateError(f"Cannot {action} cancelled invoice {invoice.invoice_number}")


def record_payment(
    invoice: Invoice,
    amount: D,
    method: PaymentMethod,
    reference: str,
    date: Optional[datetime] = None,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Invoice:
    """
    Append a payment and recompute the balance. Overpayment is accepted;
    the remaining amount never goes below zero.
    """
    ensure_open(invoice, "record a payment on")
    amount = to_decimal(amount)
    if amount <= 0:
        raise InvalidPayment(f"Payment amount must be positive, got {amount}")

    at = now or _utc_now()
    paid_on = date or at
    payment = Payment(
        id=f"PAY-{invoice.invoice_number}-{len(invoice.payments) + 1:03d}",
        invoice_id=invoice.id,
        amount=amount,
        date=paid_on,
        method=PaymentMethod(method),
        reference=reference,
        recorded_at=at,
        note=note,
    )

    amount_paid = invoice.amount_paid + amount
    amount_remaining = max(D("0"), invoice.total - amount_paid)

    logger.bind(
        invoice_number=invoice.invoice_number,
        amount=str(amount),
        amount_remaining=str(amount_remaining),
    ).info("invoice.payment_recorded")

    return replace(
        invoice,
        amount_paid=amount_paid,
        amount_remaining=amount_remaining,
        payment_status=get_invoice_status(invoice.due_date, amount_remaining, amount_paid, at),
        payments=invoice.payments + (payment,),
        last_payment_date=paid_on,
        status=InvoiceStatus.PAID if amount_remaining == 0 else InvoiceStatus.PARTIALLY_PAID,
    )


def mark_sent(invoice: Invoice, now: Optional[datetime] = None) -> Invoice:
    ensure_open(invoice, "send")
    status = InvoiceStatus.SENT if invoice.status == InvoiceStatus.DRAFT else invoice.status
    return replace(invoice, status=status, sent_at=now or _utc_now())


def mark_viewed(invoice: Invoice, now: Optional[datetime] = None) -> Invoice:
    ensure_open(invoice, "view")
    status = InvoiceStatus.VIEWED if invoice.status == InvoiceStatus.SENT else invoice.status
    return replace(invoice, status=status, viewed_at=invoice.viewed_at or now or _utc_now())


def cancel_invoice(invoice: Invoice) -> Invoice:
    if invoice.status == InvoiceStatus.CANCELLED:
        return invoice
    if invoice.amount_paid > 0:
        raise InvoiceStateError(
            f"Invoice {invoice.invoice_number} has payments recorded and cannot be cancelled"
        )
    logger.bind(invoice_number=invoice.invoice_number).info("invoice.cancelled")
    return replace(invoice, status=InvoiceStatus.CANCELLED, payment_status=PaymentStatus.CANCELLED)


def mark_overdue_if_due(invoice: Invoice, now: Optional[datetime] = None) -> Invoice:
    if invoice.status in (InvoiceStatus.CANCELLED, InvoiceStatus.PAID):
        return invoice
    if invoice.amount_remaining <= 0:
        return invoice
    if get_days_overdue(invoice.due_date, now) <= 0:
        return invoice
    return replace(invoice, status=InvoiceStatus.OVERDUE, payment_status=PaymentStatus.OVERDUE)


# -----------------------------
# Engine bound to a pricing config
# -----------------------------


class InvoiceEngine:
    """
    Net-terms aware invoice factory. Holds the configured net terms and a
    clock; the lifecycle helpers above stay plain functions.
    """

    def __init__(self, config: PricingConfig, clock: Optional[Clock] = None):
        self.config = config
        self.clock = clock or _utc_now

    def calculate_due_date(self, invoice_date: datetime, net_terms: NetTerms) -> datetime:
        return terms_mod.calculate_due_date(self.config.net_terms, invoice_date, net_terms)

    def can_apply_net_terms(
        self,
        net_terms: NetTerms,
        order_total: D,
        credit_limit: Optional[D] = None,
        credit_used: Optional[D] = None,
    ) -> NetTermsDecision:
        return terms_mod.can_apply_net_terms(
            self.config.net_terms, net_terms, order_total, credit_limit, credit_used
        )

    def get_payment_terms_display(self, net_terms: NetTerms) -> str:
        return terms_mod.get_payment_terms_display(self.config.net_terms, net_terms)

    def estimate_payment_date(
        self,
        invoice_date: datetime,
        net_terms: NetTerms,
        early_payment_discount: Optional[D] = None,
    ) -> PaymentEstimate:
        return terms_mod.estimate_payment_date(
            self.config.net_terms, invoice_date, net_terms, early_payment_discount
        )

    def create_invoice(
        self,
        *,
        order_id: str,
        customer_id: str,
        customer_name: str,
        line_items: Sequence[InvoiceLineItem],
        net_terms: NetTerms,
        invoice_count: int = 0,
        discount_percentage: D = D("0"),
        tax_rate: Optional[D] = None,
        shipping_cost: D = D("0"),
        po_number: Optional[str] = None,
        notes: Optional[str] = None,
        bill_to: Optional[BillTo] = None,
        invoice_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Invoice:
        settings = get_settings()
        at = now or self.clock()
        rate = settings.default_tax_rate if tax_rate is None else to_decimal(tax_rate)
        terms = NetTerms(net_terms)

        totals = calculate_invoice_totals(line_items, discount_percentage, rate, shipping_cost)
        invoice_number = generate_invoice_number(invoice_count, at, settings.invoice_number_prefix)

        invoice = Invoice(
            id=invoice_id or f"inv_{uuid.uuid4().hex}",
            invoice_number=invoice_number,
            order_id=order_id,
            customer_id=customer_id,
            customer_name=customer_name,
            invoice_date=at,
            due_date=self.calculate_due_date(at, terms),
            net_terms=terms,
            line_items=tuple(line_items),
            subtotal=totals.subtotal,
            discount_percentage=to_decimal(discount_percentage),
            discount_amount=totals.discount_amount,
            tax_rate=rate,
            tax_amount=totals.tax_amount,
            shipping_cost=to_decimal(shipping_cost),
            total=totals.total,
            amount_remaining=totals.total,
            po_number=po_number,
            notes=notes,
            bill_to=bill_to,
            created_at=at,
        )

        logger.bind(
            invoice_number=invoice_number,
            order_id=order_id,
            net_terms=terms.value,
            total=str(totals.total),
        ).info("invoice.created")
        return invoice
