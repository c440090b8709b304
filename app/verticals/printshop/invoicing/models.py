from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from ..domain.models import NetTerms

D = Decimal


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    PARTIALLY_PAID = "partially-paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CHECK = "check"
    BANK_TRANSFER = "bank-transfer"
    CREDIT_CARD = "credit-card"
    ACH = "ach"
    CASH = "cash"


class ReminderType(str, Enum):
    INITIAL = "initial"
    FIRST_FOLLOW_UP = "first-follow-up"
    SECOND_FOLLOW_UP = "second-follow-up"
    FINAL_NOTICE = "final-notice"


@dataclass(frozen=True)
class BillTo:
    name: str
    company: Optional[str] = None
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class InvoiceLineItem:
    item_id: str
    product_id: str
    product_name: str
    sku: str
    quantity: int
    unit_price: D
    line_total: D
    description: Optional[str] = None


@dataclass(frozen=True)
class Payment:
    id: str
    invoice_id: str
    amount: D
    date: datetime
    method: PaymentMethod
    reference: str
    recorded_at: datetime
    note: Optional[str] = None


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: D
    discount_amount: D
    subtotal_after_discount: D
    tax_amount: D
    total: D


@dataclass(frozen=True)
class Invoice:
    """
    Immutable invoice snapshot. Lifecycle functions return a new Invoice;
    nothing is ever deleted, cancellation is a status.
    """

    id: str
    invoice_number: str
    order_id: str
    customer_id: str
    customer_name: str
    invoice_date: datetime
    due_date: datetime
    net_terms: NetTerms
    line_items: Tuple[InvoiceLineItem, ...]
    subtotal: D
    discount_percentage: D
    discount_amount: D
    tax_rate: D
    tax_amount: D
    shipping_cost: D
    total: D
    status: InvoiceStatus = InvoiceStatus.DRAFT
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    amount_paid: D = D("0")
    amount_remaining: D = D("0")
    payments: Tuple[Payment, ...] = ()
    reminders_sent: int = 0
    last_reminder_at: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    po_number: Optional[str] = None
    notes: Optional[str] = None
    bill_to: Optional[BillTo] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class NetTermsDecision:
    allowed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class PaymentEstimate:
    due_date: datetime
    discount_deadline: Optional[datetime] = None
    discount_percentage: Optional[D] = None
