"""Period filters and financial aggregates over sales and expenses.

All functions here are pure reductions: the same input always produces the
same output, and amounts are summed as Decimal so repeated runs never drift.
Records without a readable date never pass a date filter; callers report
them separately (see ``kebo_core.report``).
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from .models import (
    CategoryGroup,
    DailyRevenue,
    EnrichedSaleView,
    ExpenseKind,
    ExpenseRecord,
    FinancialSummary,
    FleetProfitSummary,
    MonthlyPoint,
    SaleRecord,
    SellerSales,
    SellerTotal,
    VehicleProfile,
    VehicleProfit,
)
from .normalization import PLACEHOLDER, normalize_name, normalize_vehicle_key, parse_calendar_date

ALL_SELLERS = "__ALL__"
DEFAULT_CATEGORY = "Other"

_ZERO = Decimal("0")


# =============================================================================
# DATE RANGE
# =============================================================================

@dataclass(frozen=True, init=False)
class DateRange:
    """Inclusive calendar-date range; either bound may be open.

    Bounds may be given as ``date``, ``datetime`` (the time of day is
    dropped) or any string ``parse_calendar_date`` understands.
    """

    start: Optional[date]
    end: Optional[date]

    def __init__(self, start: Any = None, end: Any = None):
        object.__setattr__(self, "start", parse_calendar_date(start))
        object.__setattr__(self, "end", parse_calendar_date(end))

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, day: Optional[date]) -> bool:
        """True for a dated value inside the range. Undated values never match."""
        if day is None:
            return False
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


def _in_range(day: Optional[date], date_range: Optional[DateRange]) -> bool:
    if date_range is None:
        return day is not None
    return date_range.contains(day)


def _sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, _ZERO)


def _month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


# =============================================================================
# FILTERS
# =============================================================================

def seller_filter_active(seller: Optional[str], all_sentinel: str = ALL_SELLERS) -> bool:
    return bool(seller) and seller != all_sentinel


def filter_sales(
    sales: Iterable[SaleRecord],
    date_range: Optional[DateRange] = None,
    seller: Optional[str] = None,
    all_sentinel: str = ALL_SELLERS,
) -> list[SaleRecord]:
    """Dated sales inside the range, optionally from one seller only.

    Args:
        sales: Sales to filter.
        date_range: Inclusive range; None means any date.
        seller: Exact seller name; None or the "all" sentinel disables it.
        all_sentinel: Seller value meaning "every seller".
    """
    by_seller = seller_filter_active(seller, all_sentinel)
    return [
        s for s in sales
        if _in_range(s.sale_date, date_range) and (not by_seller or s.seller == seller)
    ]


def filter_expenses(
    expenses: Iterable[ExpenseRecord],
    date_range: Optional[DateRange] = None,
) -> list[ExpenseRecord]:
    """Dated expenses inside the range."""
    return [e for e in expenses if _in_range(e.expense_date, date_range)]


def split_by_kind(expenses: Iterable[ExpenseRecord]) -> tuple[list[ExpenseRecord], list[ExpenseRecord]]:
    """Separate shop expenses from general ones, keeping order."""
    shop: list[ExpenseRecord] = []
    general: list[ExpenseRecord] = []
    for expense in expenses:
        (shop if expense.kind is ExpenseKind.SHOP else general).append(expense)
    return shop, general


def search_expenses(
    expenses: Iterable[ExpenseRecord],
    query: Optional[str],
    vehicle_labels: Optional[Mapping[str, str]] = None,
) -> list[ExpenseRecord]:
    """Case-insensitive search on description, category and vehicle label.

    Args:
        expenses: Expenses to search.
        query: Text to look for; blank returns every expense.
        vehicle_labels: Vehicle id -> display label, for linked expenses.
    """
    needle = (query or "").strip().lower()
    rows = list(expenses)
    if not needle:
        return rows
    labels = vehicle_labels or {}

    def haystack(expense: ExpenseRecord) -> str:
        parts = [expense.description, expense.category or ""]
        if expense.vehicle_id:
            parts.append(labels.get(expense.vehicle_id, ""))
        if expense.vehicle is not None:
            parts.extend(p or "" for p in (expense.vehicle.model, expense.vehicle.plate, expense.vehicle.chassis))
        return " ".join(parts).lower()

    return [e for e in rows if needle in haystack(e)]


# =============================================================================
# AGGREGATES
# =============================================================================

def revenue_by_day(sales: Iterable[SaleRecord]) -> list[DailyRevenue]:
    """Sale totals per calendar day, oldest day first."""
    totals: dict[date, Decimal] = defaultdict(Decimal)
    for sale in sales:
        if sale.sale_date is None:
            continue
        totals[sale.sale_date] += sale.amount
    return [DailyRevenue(day=day, total=totals[day]) for day in sorted(totals)]


def totals_by_seller(sales: Iterable[SaleRecord], placeholder: str = PLACEHOLDER) -> list[SellerTotal]:
    """Count and sum per seller, highest sum first; ties keep encounter order.

    Sales without a seller are grouped under ``placeholder``.
    """
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for sale in sales:
        key = sale.seller or placeholder
        totals[key] = totals.get(key, _ZERO) + sale.amount
        counts[key] = counts.get(key, 0) + 1
    rows = [SellerTotal(seller=s, total=totals[s], count=counts[s]) for s in totals]
    return sorted(rows, key=lambda row: row.total, reverse=True)


def group_by_category(
    rows: Iterable[ExpenseRecord],
    default_category: str = DEFAULT_CATEGORY,
) -> list[CategoryGroup]:
    """Group expenses by category label, highest sum first.

    Rows with an empty category land in the ``default_category`` bucket.
    Ties keep the order in which categories were first seen.
    """
    groups: dict[str, list[ExpenseRecord]] = {}
    for row in rows:
        key = (row.category or "").strip() or default_category
        groups.setdefault(key, []).append(row)
    result = [
        CategoryGroup(category=key, rows=members, total=_sum(r.amount for r in members))
        for key, members in groups.items()
    ]
    return sorted(result, key=lambda group: group.total, reverse=True)


def summarize(sales: Iterable[SaleRecord], expenses: Iterable[ExpenseRecord]) -> FinancialSummary:
    """Revenue, shop/general expense subtotals and net profit."""
    sale_list = list(sales)
    shop, general = split_by_kind(expenses)
    return FinancialSummary(
        total_revenue=_sum(s.amount for s in sale_list),
        shop_expenses=_sum(e.amount for e in shop),
        general_expenses=_sum(e.amount for e in general),
        sale_count=len(sale_list),
        expense_count=len(shop) + len(general),
    )


def list_sellers(sales: Iterable[SaleRecord], placeholder: str = PLACEHOLDER) -> list[str]:
    """Distinct seller names, alphabetical, without the placeholder."""
    names = {s.seller for s in sales if s.seller and s.seller != placeholder}
    return sorted(names, key=lambda name: (normalize_name(name), name))


def sales_by_seller(views: Iterable[EnrichedSaleView]) -> list[SellerSales]:
    """Enriched sales grouped per seller (first-seen order), newest sale first."""
    grouped: dict[str, list[EnrichedSaleView]] = {}
    for view in views:
        grouped.setdefault(view.seller, []).append(view)
    result = []
    for seller, members in grouped.items():
        ordered = sorted(members, key=lambda v: v.sale_date or date.min, reverse=True)
        result.append(
            SellerSales(seller=seller, subtotal=_sum(v.amount for v in ordered), sales=ordered)
        )
    return result


def monthly_series(
    sales: Iterable[SaleRecord],
    expenses: Iterable[ExpenseRecord],
) -> list[MonthlyPoint]:
    """Revenue and expenses per ``YYYY-MM`` month, oldest month first."""
    revenue: dict[str, Decimal] = defaultdict(Decimal)
    spent: dict[str, Decimal] = defaultdict(Decimal)
    for sale in sales:
        if sale.sale_date is not None:
            revenue[_month_key(sale.sale_date)] += sale.amount
    for expense in expenses:
        if expense.expense_date is not None:
            spent[_month_key(expense.expense_date)] += expense.amount
    months = sorted(set(revenue) | set(spent))
    return [
        MonthlyPoint(month=m, revenue=revenue.get(m, _ZERO), expenses=spent.get(m, _ZERO))
        for m in months
    ]


# =============================================================================
# PER-VEHICLE PROFIT
# =============================================================================

def vehicle_label(vehicle: VehicleProfile, placeholder: str = PLACEHOLDER) -> str:
    """``"brand model"``, else plate, else chassis, else the placeholder."""
    name = " ".join(p for p in (vehicle.brand, vehicle.model) if p)
    return name or vehicle.plate or vehicle.chassis or placeholder


def sold_vehicles(
    vehicles: Iterable[VehicleProfile],
    sales: Iterable[SaleRecord],
    date_range: Optional[DateRange] = None,
    seller: Optional[str] = None,
    all_sentinel: str = ALL_SELLERS,
) -> list[VehicleProfile]:
    """Vehicles with a sale matching the filters, by chassis or plate.

    With no date bound and no seller filter every vehicle is returned.
    """
    vehicle_list = list(vehicles)
    range_open = date_range is None or date_range.is_open
    if range_open and not seller_filter_active(seller, all_sentinel):
        return vehicle_list

    matching = filter_sales(sales, date_range, seller, all_sentinel)
    chassis_keys = {normalize_vehicle_key(s.vehicle_chassis) for s in matching} - {""}
    plate_keys = {normalize_vehicle_key(s.vehicle_plate) for s in matching} - {""}
    return [
        v for v in vehicle_list
        if (v.chassis_key and v.chassis_key in chassis_keys)
        or (v.plate_key and v.plate_key in plate_keys)
    ]


def vehicle_profitability(
    vehicles: Iterable[VehicleProfile],
    expenses: Iterable[ExpenseRecord],
    date_range: Optional[DateRange] = None,
) -> FleetProfitSummary:
    """Per-vehicle profit and store totals for a period.

    Each vehicle's profit is its list price minus the expenses linked to it
    (within the range) and its supplier cost. Store totals also subtract
    the expenses with no vehicle id.
    """
    vehicle_list = list(vehicles)
    in_period = filter_expenses(expenses, date_range)

    linked: dict[str, Decimal] = defaultdict(Decimal)
    unlinked = _ZERO
    for expense in in_period:
        if expense.vehicle_id:
            linked[expense.vehicle_id] += expense.amount
        else:
            unlinked += expense.amount

    rows = [
        VehicleProfit(
            vehicle_id=v.id,
            label=vehicle_label(v),
            sale_price=v.list_price,
            linked_expenses=linked.get(v.id, _ZERO) if v.id else _ZERO,
            supplier_cost=v.supplier_cost,
        )
        for v in vehicle_list
    ]

    return FleetProfitSummary(
        vehicles=rows,
        total_sales=_sum(r.sale_price for r in rows),
        total_linked_expenses=_sum(r.linked_expenses for r in rows),
        total_unlinked_expenses=unlinked,
        total_supplier_costs=_sum(r.supplier_cost for r in rows),
    )


__all__ = [
    "ALL_SELLERS",
    "DEFAULT_CATEGORY",
    "DateRange",
    "filter_sales",
    "filter_expenses",
    "split_by_kind",
    "search_expenses",
    "revenue_by_day",
    "totals_by_seller",
    "group_by_category",
    "summarize",
    "list_sellers",
    "sales_by_seller",
    "monthly_series",
    "vehicle_label",
    "sold_vehicles",
    "vehicle_profitability",
    "seller_filter_active",
]
