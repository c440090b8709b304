from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from app.core.logging_config import logger

from .engine import ensure_open, get_days_overdue
from .models import Invoice, InvoiceStatus, PaymentStatus, ReminderType

# (reminder, minimum days past due), indexed by reminders already sent
REMINDER_SCHEDULE = (
    (ReminderType.INITIAL, 1),
    (ReminderType.FIRST_FOLLOW_UP, 7),
    (ReminderType.SECOND_FOLLOW_UP, 14),
    (ReminderType.FINAL_NOTICE, 30),
)


def next_reminder_type(invoice: Invoice) -> Optional[ReminderType]:
    if invoice.reminders_sent >= len(REMINDER_SCHEDULE):
        return None
    return REMINDER_SCHEDULE[invoice.reminders_sent][0]


def should_send_reminder(invoice: Invoice, now: Optional[datetime] = None) -> bool:
    if invoice.payment_status == PaymentStatus.PAID:
        return False
    if invoice.status == InvoiceStatus.CANCELLED:
        return False

    days = get_days_overdue(invoice.due_date, now)
    if days < 0:
        return False

    if invoice.reminders_sent >= len(REMINDER_SCHEDULE):
        return False
    _, min_days = REMINDER_SCHEDULE[invoice.reminders_sent]
    return days >= min_days


def record_reminder_sent(invoice: Invoice, now: Optional[datetime] = None) -> Invoice:
    ensure_open(invoice, "remind about")
    at = now or datetime.now(timezone.utc)
    logger.bind(
        invoice_number=invoice.invoice_number,
        reminder=getattr(next_reminder_type(invoice), "value", None),
    ).info("invoice.reminder_sent")
    return replace(invoice, reminders_sent=invoice.reminders_sent + 1, last_reminder_at=at)
