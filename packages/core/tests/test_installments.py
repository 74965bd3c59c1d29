"""Tests for installment schedule generation."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from kebo_core.config import get_settings
from kebo_core.installments import (
    add_months,
    clamp_due_date,
    generate_schedule,
    render_schedule_text,
    schedule_total,
)


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestMonthArithmetic:
    """Tests for month carry and day clamping."""

    def test_add_months_carries_year(self):
        assert add_months(date(2024, 11, 15), 1) == (2024, 12)
        assert add_months(date(2024, 11, 15), 2) == (2025, 1)
        assert add_months(date(2024, 1, 31), 25) == (2026, 2)

    def test_clamp_to_short_months(self):
        assert clamp_due_date(2024, 2, 31) == date(2024, 2, 29)
        assert clamp_due_date(2023, 2, 31) == date(2023, 2, 28)
        assert clamp_due_date(2024, 4, 31) == date(2024, 4, 30)

    def test_clamp_low_day(self):
        assert clamp_due_date(2024, 5, 0) == date(2024, 5, 1)


class TestGenerateSchedule:
    """Tests for generate_schedule."""

    def test_leap_february_clamp(self):
        """Day 31 after a January 31 sale lands on Feb 29, not in March."""
        lines = generate_schedule("2024-01-31", 1, "715,00", "BOLETO", 31)

        assert len(lines) == 1
        assert lines[0].due_date == date(2024, 2, 29)
        assert lines[0].sequence == 1

    def test_down_payment_first(self):
        lines = generate_schedule(
            "2024-01-15", 2, Decimal("715"), "BOLETO", 10, down_payment="2.000,00"
        )

        entry, first, second = lines
        assert entry.sequence == 1
        assert entry.is_down_payment
        assert entry.due_date == date(2024, 1, 15)
        assert entry.amount == Decimal("2000")
        assert entry.payment_method == "ENTRADA"

        assert first.sequence == 2
        assert first.due_date == date(2024, 2, 10)
        assert first.payment_method == "BOLETO"
        assert not first.is_down_payment
        assert second.sequence == 3
        assert second.due_date == date(2024, 3, 10)

    def test_zero_down_payment_is_ignored(self):
        lines = generate_schedule("2024-01-15", 1, 100, "PIX", 10, down_payment=0)
        assert [line.sequence for line in lines] == [1]
        assert not lines[0].is_down_payment

    def test_custom_down_payment_label(self):
        lines = generate_schedule("2024-01-15", 0, 100, "PIX", 10, down_payment=50, down_payment_label="SINAL")
        assert lines[0].payment_method == "SINAL"

    def test_down_payment_label_from_settings(self, monkeypatch, fresh_settings):
        monkeypatch.setenv("KEBO_DOWN_PAYMENT_LABEL", "SINAL")

        lines = generate_schedule("2024-01-15", 1, 100, "PIX", 10, down_payment=50)

        assert lines[0].payment_method == "SINAL"
        assert lines[1].payment_method == "PIX"

    def test_stops_at_last_representable_year(self):
        assert generate_schedule(date(9999, 12, 1), 1, 100, "PIX", 10) == []

        lines = generate_schedule(date(9999, 11, 1), 3, 100, "PIX", 10, down_payment=10)
        assert [line.due_date for line in lines] == [date(9999, 11, 1), date(9999, 12, 10)]

    def test_year_rollover(self):
        lines = generate_schedule(date(2024, 11, 20), 3, 100, "PIX", 5)
        assert [line.due_date for line in lines] == [
            date(2024, 12, 5),
            date(2025, 1, 5),
            date(2025, 2, 5),
        ]

    def test_thirty_day_months(self):
        lines = generate_schedule("2024-03-31", 2, 100, "BOLETO", 31)
        assert [line.due_date for line in lines] == [date(2024, 4, 30), date(2024, 5, 31)]

    def test_local_datetime_is_not_shifted(self):
        lines = generate_schedule(datetime(2024, 1, 31, 23, 59), 0, 0, "PIX", 10, down_payment=1)
        assert lines[0].due_date == date(2024, 1, 31)

    def test_empty_schedule(self):
        assert generate_schedule("2024-01-15", 0, 100, "PIX", 10) == []

    @pytest.mark.parametrize("count", [-3, None, "abc"])
    def test_invalid_counts_behave_as_zero(self, count):
        assert generate_schedule("2024-01-15", count, 100, "PIX", 10) == []

    def test_unreadable_sale_date(self):
        assert generate_schedule("not a date", 3, 100, "PIX", 10, down_payment=10) == []

    def test_string_count(self):
        assert len(generate_schedule("2024-01-15", "12", 100, "BOLETO", 10)) == 12

    def test_pure(self):
        args = ("2024-01-31", 6, "715,00", "BOLETO", 31)
        assert generate_schedule(*args, down_payment=500) == generate_schedule(*args, down_payment=500)


class TestScheduleHelpers:
    """Tests for totals and the text rendering."""

    def test_total(self):
        lines = generate_schedule("2024-01-15", 3, "715,00", "BOLETO", 10, down_payment=2000)
        assert schedule_total(lines) == Decimal("4145")

    def test_render_text(self):
        lines = generate_schedule("2024-01-15", 1, "715,00", "BOLETO", 10, down_payment=2000)
        assert render_schedule_text(lines) == (
            "1 - 15/01/2024 - R$ 2.000,00 - ENTRADA\n"
            "2 - 10/02/2024 - R$ 715,00 - BOLETO"
        )

    def test_render_uses_configured_symbol(self, monkeypatch, fresh_settings):
        monkeypatch.setenv("KEBO_CURRENCY_SYMBOL", "BRL")
        lines = generate_schedule("2024-01-15", 1, "715,00", "BOLETO", 10)

        assert render_schedule_text(lines) == "1 - 10/02/2024 - BRL 715,00 - BOLETO"
        assert render_schedule_text(lines, "US$") == "1 - 10/02/2024 - US$ 715,00 - BOLETO"

    def test_render_empty(self):
        assert render_schedule_text([]) == ""
