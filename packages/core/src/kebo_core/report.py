"""Period financial report.

FinancialReportBuilder runs the whole pipeline for one period and seller
filter: boundary mapping, date and seller filters, totals, expense groups,
per-seller sale detail with customer and vehicle data, and the monthly
series. Every step is logged so a report can be traced back to its inputs.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Callable, Optional, TypeVar

import structlog

from .aggregation import (
    DateRange,
    filter_expenses,
    filter_sales,
    group_by_category,
    monthly_series,
    revenue_by_day,
    sales_by_seller,
    seller_filter_active,
    split_by_kind,
    summarize,
    totals_by_seller,
)
from .config import KeboSettings, get_settings
from .data_mapper import MappingResult, map_expenses, map_sales
from .models import ExpenseRecord, FinancialReport, SaleRecord
from .reconciler import SaleReconciler
from .reference_index import ReferenceIndex

logger = structlog.get_logger()

RecordT = TypeVar("RecordT")


class FinancialReportBuilder:
    """
    Build FinancialReport objects for a period.

    Records without a readable date cannot be placed in any period. They
    are left out of every figure, counted, and reported as warnings instead
    of failing the report.
    """

    def __init__(self, settings: Optional[KeboSettings] = None):
        self.settings = settings or get_settings()

    def _log_step(self, step: str, **values: Any) -> None:
        logger.info("report_step", step=step, **values)

    def _records(
        self,
        items: Iterable[Any],
        model: type[RecordT],
        mapper: Callable[[Iterable[Any]], MappingResult[RecordT]],
        warnings: list[str],
        label: str,
    ) -> list[RecordT]:
        records: list[RecordT] = []
        raw: list[Mapping[str, Any]] = []
        for item in items:
            if isinstance(item, model):
                records.append(item)
            else:
                raw.append(item)
        if raw:
            mapped = mapper(raw)
            records.extend(mapped.records)
            if mapped.skipped:
                warnings.append(f"{mapped.skipped} {label} record(s) could not be read and were skipped")
        return records

    def build(
        self,
        sales: Iterable[Any],
        expenses: Iterable[Any],
        index: Optional[ReferenceIndex] = None,
        date_range: Optional[DateRange] = None,
        seller: Optional[str] = None,
    ) -> FinancialReport:
        """
        Compute the report for a period.

        Args:
            sales: Sales as SaleRecord or raw documents.
            expenses: Expenses as ExpenseRecord or raw documents.
            index: Reference data for the per-seller detail; empty if None.
            date_range: Inclusive period; None means every dated record.
            seller: Seller filter for sales; None or the "all" sentinel
                means every seller. Expenses are never filtered by seller.

        Returns:
            FinancialReport with every section filled.
        """
        settings = self.settings
        warnings: list[str] = []
        date_range = date_range or DateRange()
        index = index or ReferenceIndex.empty()

        sale_records = self._records(sales, SaleRecord, map_sales, warnings, "sale")
        expense_records = self._records(expenses, ExpenseRecord, map_expenses, warnings, "expense")

        undated_sales = sum(1 for s in sale_records if s.sale_date is None)
        undated_expenses = sum(1 for e in expense_records if e.expense_date is None)
        if undated_sales:
            warnings.append(f"{undated_sales} sale(s) without a readable date were left out")
            logger.warning("undated_records_excluded", record_type="sale", count=undated_sales)
        if undated_expenses:
            warnings.append(f"{undated_expenses} expense(s) without a readable date were left out")
            logger.warning("undated_records_excluded", record_type="expense", count=undated_expenses)

        sentinel = settings.all_sellers_sentinel
        period_sales = filter_sales(sale_records, date_range, seller, sentinel)
        period_expenses = filter_expenses(expense_records, date_range)
        self._log_step(
            "filter",
            date_from=date_range.start.isoformat() if date_range.start else None,
            date_to=date_range.end.isoformat() if date_range.end else None,
            seller=seller,
            sales=len(period_sales),
            expenses=len(period_expenses),
        )

        summary = summarize(period_sales, period_expenses)
        self._log_step(
            "summary",
            total_revenue=str(summary.total_revenue),
            total_expenses=str(summary.total_expenses),
            net_profit=str(summary.net_profit),
        )

        shop, general = split_by_kind(period_expenses)
        shop_groups = group_by_category(shop, settings.default_category)
        general_groups = group_by_category(general, settings.default_category)
        self._log_step("expense_groups", shop=len(shop_groups), general=len(general_groups))

        reconciler = SaleReconciler(index, placeholder=settings.placeholder)
        per_seller = sales_by_seller(reconciler.enrich_all(period_sales))
        self._log_step("sales_by_seller", sellers=len(per_seller))

        report = FinancialReport(
            date_from=date_range.start,
            date_to=date_range.end,
            seller_filter=seller if seller_filter_active(seller, sentinel) else None,
            summary=summary,
            revenue_by_day=revenue_by_day(period_sales),
            seller_totals=totals_by_seller(period_sales, settings.placeholder),
            shop_expenses_by_category=shop_groups,
            general_expenses_by_category=general_groups,
            sales_by_seller=per_seller,
            monthly=monthly_series(period_sales, period_expenses),
            undated_sales=undated_sales,
            undated_expenses=undated_expenses,
            warnings=warnings,
        )
        logger.info(
            "report_built",
            sales=summary.sale_count,
            expenses=summary.expense_count,
            warnings=len(warnings),
        )
        return report


def build_financial_report(
    sales: Iterable[Any],
    expenses: Iterable[Any],
    index: Optional[ReferenceIndex] = None,
    date_range: Optional[DateRange] = None,
    seller: Optional[str] = None,
) -> FinancialReport:
    """Build a report with the process settings."""
    return FinancialReportBuilder().build(sales, expenses, index, date_range, seller)


__all__ = [
    "FinancialReportBuilder",
    "build_financial_report",
]
