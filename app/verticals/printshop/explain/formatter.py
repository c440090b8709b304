from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List

from ..calculators.money import qmoney


def _clean_step(s: str) -> str:
    return str(s).replace("\r", "").replace("\n", " ").replace("\t", " ").strip()


def format_money(amount: Decimal, currency_symbol: str = "$") -> str:
    q = qmoney(amount)
    return f"{currency_symbol}{q:,.2f}"


def format_pct(value: Decimal) -> str:
    # 15.00 -> "15", 23.50 -> "23.5"
    v = Decimal(value).normalize()
    return f"{v:f}"


def format_steps_bullets(steps: Iterable[str], bullet: str = "•") -> List[str]:
    items = [_clean_step(s) for s in steps if str(s).strip()]
    return [f"{bullet} {s}" for s in items]


def format_steps_bullets_text(steps: Iterable[str], bullet: str = "•") -> str:
    return "\n".join(format_steps_bullets(steps, bullet=bullet))


def format_notices_header(title: str, notices: list[dict], bullet: str = "•") -> str:
    """
    Title + bullet list for blocks/warnings on top of a quote or mail.
    """
    if not notices:
        return ""
    lines = [title]
    for n in notices:
        msg = _clean_step(n.get("message") or "")
        code = _clean_step(n.get("code") or "")
        if code and msg:
            lines.append(f"{bullet} [{code}] {msg}")
        elif msg:
            lines.append(f"{bullet} {msg}")
        elif code:
            lines.append(f"{bullet} [{code}]")
    return "\n".join(lines)
