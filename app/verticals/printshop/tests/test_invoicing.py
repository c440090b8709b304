from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest

from app.verticals.printshop.domain.errors import InvalidPayment, InvoiceStateError
from app.verticals.printshop.domain.models import NetTerms
from app.verticals.printshop.invoicing.engine import (
    InvoiceEngine,
    calculate_invoice_totals,
    cancel_invoice,
    generate_invoice_number,
    get_days_overdue,
    get_invoice_status,
    mark_overdue_if_due,
    mark_sent,
    mark_viewed,
    record_payment,
)
from app.verticals.printshop.invoicing.models import (
    InvoiceLineItem,
    InvoiceStatus,
    PaymentMethod,
    PaymentStatus,
    ReminderType,
)
from app.verticals.printshop.invoicing.reminders import (
    next_reminder_type,
    record_reminder_sent,
    should_send_reminder,
)

D = Decimal


def _item(total: str, item_id: str = "i1") -> InvoiceLineItem:
    return InvoiceLineItem(
        item_id=item_id,
        product_id="sticker-round-3in",
        product_name="Round Sticker 3in",
        sku="STK-R3",
        quantity=1000,
        unit_price=D(total) / 1000,
        line_total=D(total),
    )


@pytest.fixture
def engine(config, fixed_now):
    return InvoiceEngine(config, clock=lambda: fixed_now)


@pytest.fixture
def invoice(engine):
    # total exactly 1000: no tax, no shipping
    return engine.create_invoice(
        order_id="ord-1",
        customer_id="cust-1",
        customer_name="Acme Corp",
        line_items=[_item("1000")],
        net_terms=NetTerms.NET_30,
        tax_rate=D("0"),
    )


def test_create_invoice(invoice, fixed_now):
    assert invoice.invoice_number == "INV-202501-00001"
    assert invoice.status == InvoiceStatus.DRAFT
    assert invoice.payment_status == PaymentStatus.UNPAID
    assert invoice.total == D("1000")
    assert invoice.amount_remaining == D("1000")
    assert invoice.due_date == fixed_now + timedelta(days=30)


def test_due_date_is_deterministic(engine, fixed_now):
    assert engine.calculate_due_date(fixed_now, NetTerms.NET_15) == fixed_now + timedelta(days=15)
    assert engine.calculate_due_date(fixed_now, NetTerms.NET_0) == fixed_now


def test_days_overdue_floors_and_is_monotone(fixed_now):
    due = fixed_now
    assert get_days_overdue(due, fixed_now + timedelta(hours=36)) == 1
    assert get_days_overdue(due, fixed_now + timedelta(hours=12)) == 0
    assert get_days_overdue(due, fixed_now - timedelta(hours=12)) == -1

    samples = [get_days_overdue(due, fixed_now + timedelta(hours=h)) for h in range(-72, 200, 7)]
    assert samples == sorted(samples)


def test_naive_timestamps_are_utc(fixed_now):
    naive_due = fixed_now.replace(tzinfo=None)
    assert get_days_overdue(naive_due, fixed_now + timedelta(days=3)) == 3


def test_status_precedence(fixed_now):
    past_due = fixed_now - timedelta(days=5)
    future_due = fixed_now + timedelta(days=5)

    assert get_invoice_status(past_due, D("0"), D("1000"), fixed_now) == PaymentStatus.PAID
    assert get_invoice_status(past_due, D("500"), D("500"), fixed_now) == PaymentStatus.OVERDUE
    assert get_invoice_status(future_due, D("500"), D("500"), fixed_now) == PaymentStatus.PARTIAL
    assert get_invoice_status(future_due, D("1000"), D("0"), fixed_now) == PaymentStatus.UNPAID
    # due today is not overdue yet
    assert get_invoice_status(fixed_now, D("1000"), D("0"), fixed_now) == PaymentStatus.UNPAID


def test_invoice_totals_shipping_not_taxed():
    t = calculate_invoice_totals(
        [_item("100", "a"), _item("50", "b")],
        discount_percentage=D("10"),
        tax_rate=D("0.08"),
        shipping_cost=D("9.99"),
    )

    assert t.subtotal == D("150")
    assert t.discount_amount == D("15")
    assert t.subtotal_after_discount == D("135")
    assert t.tax_amount == D("10.80")
    assert t.total == D("155.79")


def test_invoice_totals_default_tax():
    assert calculate_invoice_totals([_item("100")]).total == D("108")


def test_invoice_number_format(fixed_now):
    assert generate_invoice_number(0, fixed_now) == "INV-202501-00001"
    assert generate_invoice_number(41, fixed_now, prefix="PS") == "PS-202501-00042"


def test_partial_payment_conserves_total(invoice, fixed_now):
    paid = record_payment(invoice, D("400"), PaymentMethod.ACH, "ach-1", now=fixed_now)

    assert paid.amount_paid + paid.amount_remaining == paid.total
    assert paid.amount_remaining == D("600")
    assert paid.status == InvoiceStatus.PARTIALLY_PAID
    assert paid.payment_status == PaymentStatus.PARTIAL
    assert len(paid.payments) == 1
    assert paid.payments[0].invoice_id == invoice.id
    # the original value is untouched
    assert invoice.amount_paid == D("0")
    assert invoice.payments == ()


def test_payment_sequence_conserves_total_until_clamp(invoice, fixed_now):
    assert invoice.total == D("1000")

    current = invoice
    for n, amount in enumerate((D("300"), D("300")), start=1):
        current = record_payment(current, amount, PaymentMethod.ACH, f"ach-{n}", now=fixed_now)
        assert current.amount_paid + current.amount_remaining == current.total
        assert current.status == InvoiceStatus.PARTIALLY_PAID

    assert current.amount_remaining == D("400")

    current = record_payment(current, D("400.01"), PaymentMethod.ACH, "ach-3", now=fixed_now)

    assert current.amount_paid == D("1000.01")
    assert current.amount_remaining == D("0")
    assert current.status == InvoiceStatus.PAID
    assert [p.id for p in current.payments] == [
        f"PAY-{invoice.invoice_number}-001",
        f"PAY-{invoice.invoice_number}-002",
        f"PAY-{invoice.invoice_number}-003",
    ]


def test_overpayment_clamps_to_zero(invoice, fixed_now):
    paid = record_payment(invoice, D("1000.01"), PaymentMethod.CHECK, "chk-42", now=fixed_now)

    assert paid.amount_remaining == D("0")
    assert paid.amount_paid == D("1000.01")
    assert paid.status == InvoiceStatus.PAID
    assert paid.payment_status == PaymentStatus.PAID


def test_payment_after_due_date_is_overdue_partial(invoice):
    late = invoice.due_date + timedelta(days=3)
    paid = record_payment(invoice, D("100"), PaymentMethod.CASH, "cash", now=late)

    assert paid.payment_status == PaymentStatus.OVERDUE
    assert paid.status == InvoiceStatus.PARTIALLY_PAID
    assert paid.last_payment_date == late


@pytest.mark.parametrize("amount", [D("0"), D("-5")])
def test_non_positive_payment_rejected(invoice, amount):
    with pytest.raises(InvalidPayment):
        record_payment(invoice, amount, PaymentMethod.CASH, "x")


def test_cancelled_invoice_cannot_be_paid(invoice):
    cancelled = cancel_invoice(invoice)

    assert cancelled.status == InvoiceStatus.CANCELLED
    assert cancelled.payment_status == PaymentStatus.CANCELLED
    with pytest.raises(InvoiceStateError):
        record_payment(cancelled, D("10"), PaymentMethod.CASH, "x")


def test_invoice_with_payments_cannot_be_cancelled(invoice, fixed_now):
    paid = record_payment(invoice, D("10"), PaymentMethod.CASH, "x", now=fixed_now)
    with pytest.raises(InvoiceStateError):
        cancel_invoice(paid)


def test_send_and_view_lifecycle(invoice, fixed_now):
    sent = mark_sent(invoice, fixed_now)
    viewed = mark_viewed(sent, fixed_now + timedelta(hours=1))

    assert sent.status == InvoiceStatus.SENT
    assert viewed.status == InvoiceStatus.VIEWED
    assert viewed.viewed_at == fixed_now + timedelta(hours=1)


def test_mark_overdue_if_due(invoice):
    assert mark_overdue_if_due(invoice, invoice.due_date) is invoice

    overdue = mark_overdue_if_due(invoice, invoice.due_date + timedelta(days=2))
    assert overdue.status == InvoiceStatus.OVERDUE
    assert overdue.payment_status == PaymentStatus.OVERDUE


@pytest.mark.parametrize(
    "sent, days, expected",
    [
        (0, 0, False),
        (0, 1, True),
        (1, 6, False),
        (1, 7, True),
        (2, 14, True),
        (3, 29, False),
        (3, 30, True),
        (4, 90, False),
    ],
)
def test_reminder_schedule(invoice, sent, days, expected):
    inv = replace(invoice, reminders_sent=sent)
    assert should_send_reminder(inv, invoice.due_date + timedelta(days=days)) is expected


def test_no_reminder_before_due_or_when_paid(invoice, fixed_now):
    assert should_send_reminder(invoice, invoice.due_date - timedelta(days=1)) is False

    paid = record_payment(invoice, D("1000"), PaymentMethod.ACH, "ach", now=fixed_now)
    assert should_send_reminder(paid, paid.due_date + timedelta(days=40)) is False


def test_record_reminder_advances_type(invoice, fixed_now):
    assert next_reminder_type(invoice) == ReminderType.INITIAL

    once = record_reminder_sent(invoice, fixed_now)
    assert once.reminders_sent == 1
    assert once.last_reminder_at == fixed_now
    assert next_reminder_type(once) == ReminderType.FIRST_FOLLOW_UP
    assert next_reminder_type(replace(once, reminders_sent=4)) is None


def test_net_terms_minimum_order(engine):
    low = engine.can_apply_net_terms(NetTerms.NET_30, D("999.99"))
    ok = engine.can_apply_net_terms(NetTerms.NET_30, D("1000"))

    assert low.allowed is False
    assert low.reason == "Minimum order of $1000 required for Net 30"
    assert ok.allowed is True


def test_net_terms_credit_check(engine):
    short = engine.can_apply_net_terms(NetTerms.NET_30, D("1000"), D("25000"), D("24500"))
    assert short.allowed is False
    assert short.reason == "Insufficient credit available. Required: $1000, Available: $500"

    assert engine.can_apply_net_terms(NetTerms.NET_30, D("1000"), D("25000"), D("24000")).allowed is True
    # no known limit: no credit check
    assert engine.can_apply_net_terms(NetTerms.NET_60, D("6000")).allowed is True
    assert engine.can_apply_net_terms(NetTerms.NET_0, D("1")).allowed is True


def test_payment_terms_display_and_estimate(engine, fixed_now):
    assert engine.get_payment_terms_display(NetTerms.NET_30) == "Net 30 - Payment due within 30 days of invoice date"

    est = engine.estimate_payment_date(fixed_now, NetTerms.NET_30, D("2"))
    assert est.due_date == fixed_now + timedelta(days=30)
    assert est.discount_deadline == fixed_now + timedelta(days=10)
    assert est.discount_percentage == D("2")

    assert engine.estimate_payment_date(fixed_now, NetTerms.NET_30).discount_deadline is None
