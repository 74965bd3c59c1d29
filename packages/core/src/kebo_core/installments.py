"""Installment schedules for contracts.

A schedule starts from the sale date, read as a local calendar date. An
optional down payment is due on the sale date itself; then one installment
per month follows, due on a fixed day of the month. When that day does not
exist in a month (31 in April, 30 in February) the last day of the month is
used instead; a due date never rolls into the following month.
"""

import calendar
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any, Optional

import structlog

from .config import get_settings
from .models import InstallmentLine
from .normalization import parse_calendar_date, parse_decimal_amount

logger = structlog.get_logger()

DEFAULT_DUE_DAY = 10


def _to_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def add_months(start: date, months: int) -> tuple[int, int]:
    """Year and month ``months`` after ``start``, with year carry."""
    index = start.year * 12 + (start.month - 1) + months
    return index // 12, index % 12 + 1


def clamp_due_date(year: int, month: int, due_day: int) -> date:
    """``due_day`` of the given month, clamped to the month's real length."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(max(1, due_day), last_day))


def generate_schedule(
    sale_date: Any,
    count: Any,
    installment_amount: Any,
    payment_method: str,
    due_day: Any = DEFAULT_DUE_DAY,
    down_payment: Any = None,
    down_payment_label: Optional[str] = None,
) -> list[InstallmentLine]:
    """
    Build the payment schedule of a financed sale.

    Args:
        sale_date: Sale date (date, datetime or ``YYYY-MM-DD`` string).
        count: Number of monthly installments; negative counts as zero.
        installment_amount: Amount of each monthly installment.
        payment_method: Label of the monthly installments (BOLETO, PIX...).
        due_day: Day of the month the installments fall due, 1 to 31.
        down_payment: Optional down payment due on the sale date.
        down_payment_label: Payment label of the down payment line;
            defaults to the configured ``down_payment_label``.

    Returns:
        Lines in generation order with consecutive sequences starting at 1.
        An unreadable sale date yields an empty schedule. Installments that
        would fall after year 9999 are dropped.

    Example:
        Sale on 2024-01-31, two installments due on day 31:
        2024-02-29, 2024-03-31.
    """
    start = parse_calendar_date(sale_date)
    if start is None:
        logger.warning("schedule_skipped", reason="unreadable_sale_date", sale_date=repr(sale_date))
        return []

    months = max(0, _to_int(count, 0))
    day = _to_int(due_day, DEFAULT_DUE_DAY)
    amount = parse_decimal_amount(installment_amount)
    entry = parse_decimal_amount(down_payment)

    lines: list[InstallmentLine] = []
    sequence = 1

    if entry > 0:
        lines.append(
            InstallmentLine(
                sequence=sequence,
                due_date=start,
                amount=entry,
                payment_method=down_payment_label or get_settings().down_payment_label,
                is_down_payment=True,
            )
        )
        sequence += 1

    for offset in range(1, months + 1):
        year, month = add_months(start, offset)
        if year > date.max.year:
            logger.warning("schedule_truncated", reason="year_out_of_range", generated=offset - 1)
            break
        lines.append(
            InstallmentLine(
                sequence=sequence,
                due_date=clamp_due_date(year, month, day),
                amount=amount,
                payment_method=payment_method,
            )
        )
        sequence += 1

    logger.debug(
        "schedule_generated",
        sale_date=start.isoformat(),
        installments=months,
        has_down_payment=entry > 0,
    )
    return lines


def schedule_total(lines: Iterable[InstallmentLine]) -> Decimal:
    """Sum of every line, down payment included."""
    return sum((line.amount for line in lines), Decimal("0"))


def render_schedule_text(lines: Iterable[InstallmentLine], currency_symbol: Optional[str] = None) -> str:
    symbol = currency_symbol or get_settings().currency_symbol
    return "\n".join(line.describe(symbol) for line in lines)


__all__ = [
    "DEFAULT_DUE_DAY",
    "add_months",
    "clamp_due_date",
    "generate_schedule",
    "schedule_total",
    "render_schedule_text",
]
