from __future__ import annotations

from typing import Optional, Tuple

from app.config import Settings, get_settings

from ..explain.formatter import format_money, format_steps_bullets_text
from .models import Invoice, InvoiceStatus


def _date(dt) -> str:
    return f"{dt:%Y-%m-%d}"


def render_invoice_email(
    invoice: Invoice,
    terms_label: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> Tuple[str, str]:
    """
    Returns (subject, body_text). Sending is the caller's business.

    - Subject names the invoice and the company.
    - Body: header facts, then one bullet per line item, then notes.
    - Overdue invoices get a [PAYMENT OVERDUE] subject prefix.
    """
    s = settings or get_settings()

    subject = f"Invoice {invoice.invoice_number} from {s.company_name}"
    if invoice.status == InvoiceStatus.OVERDUE:
        subject = f"[PAYMENT OVERDUE] {subject}"

    amount_due = invoice.amount_remaining if invoice.amount_paid > 0 else invoice.total

    parts = [
        f"Dear {invoice.customer_name},",
        "",
        "Please find your invoice attached:",
        "",
        f"Invoice Number: {invoice.invoice_number}",
    ]
    if invoice.po_number:
        parts.append(f"PO Number: {invoice.po_number}")
    parts.extend(
        [
            f"Invoice Date: {_date(invoice.invoice_date)}",
            f"Due Date: {_date(invoice.due_date)}",
            f"Total Amount Due: {format_money(amount_due)}",
            f"Payment Terms: {terms_label or invoice.net_terms.value}",
            "",
        ]
    )

    if invoice.line_items:
        parts.append("ITEMS")
        parts.append("-----")
        parts.append(
            format_steps_bullets_text(
                f"{li.product_name} ({li.sku}) x {li.quantity}: {format_money(li.line_total)}"
                for li in invoice.line_items
            )
        )
        parts.append("")

    if invoice.notes:
        parts.append(invoice.notes)
        parts.append("")

    parts.append("Thank you for your business!")
    parts.append("")
    parts.append(s.company_name)
    for contact in (s.company_phone, s.company_email):
        if contact:
            parts.append(contact)

    body = "\n".join(parts).rstrip() + "\n"
    return subject, body
