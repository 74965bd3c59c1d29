"""Data models for kebo-core.

- Canonical sale and expense records (records.py)
- Customer, legacy contract and vehicle reference profiles (reference.py)
- Enriched sale views, installment lines and aggregate results (views.py)
"""

from kebo_core.models.records import (
    ExpenseKind,
    ExpenseRecord,
    SaleRecord,
    VehicleSummary,
    clean_optional_text,
    resolve_expense_kind,
)
from kebo_core.models.reference import (
    ContactOverride,
    CustomerProfile,
    LegacyContractProfile,
    PartyProfile,
    VehicleProfile,
)
from kebo_core.models.views import (
    CategoryGroup,
    ClientInfo,
    DailyRevenue,
    EnrichedSaleView,
    FinancialReport,
    FinancialSummary,
    FleetProfitSummary,
    InstallmentLine,
    MonthlyPoint,
    PaymentInfo,
    SellerSales,
    SellerTotal,
    VehicleInfo,
    VehicleProfit,
)

__all__ = [
    # Records
    "ExpenseKind",
    "ExpenseRecord",
    "SaleRecord",
    "VehicleSummary",
    "clean_optional_text",
    "resolve_expense_kind",
    # Reference data
    "ContactOverride",
    "CustomerProfile",
    "LegacyContractProfile",
    "PartyProfile",
    "VehicleProfile",
    # Views and aggregates
    "CategoryGroup",
    "ClientInfo",
    "DailyRevenue",
    "EnrichedSaleView",
    "FinancialReport",
    "FinancialSummary",
    "FleetProfitSummary",
    "InstallmentLine",
    "MonthlyPoint",
    "PaymentInfo",
    "SellerSales",
    "SellerTotal",
    "VehicleInfo",
    "VehicleProfit",
]
