"""Derived, never-persisted views and aggregate results.

Everything here is produced fresh by a pure function call and handed to the
report and contract renderers as plain data (``model_dump()`` ready).
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from kebo_core.config import get_settings
from kebo_core.models.records import ExpenseRecord
from kebo_core.normalization import PLACEHOLDER, format_br_date, format_brl


# =============================================================================
# ENRICHED SALE
# =============================================================================

class ClientInfo(BaseModel):
    """Buyer data after merging the sale with customer/contract records."""

    model_config = {"frozen": True}

    name: str = PLACEHOLDER
    tax_id: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    district: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None


class VehicleInfo(BaseModel):
    """Vehicle data after merging the sale with the inventory record."""

    model_config = {"frozen": True}

    brand: Optional[str] = None
    model: str = PLACEHOLDER
    year: Optional[str] = None
    chassis: Optional[str] = None
    plate: Optional[str] = None
    color: Optional[str] = None
    renavam: Optional[str] = None
    odometer: Optional[str] = None
    photo_url: Optional[str] = None

    @property
    def label(self) -> str:
        """Brand and model for report cells, e.g. ``"Honda CG 160"``."""
        parts = [p for p in (self.brand, self.model) if p and p != PLACEHOLDER]
        return " ".join(parts) or PLACEHOLDER


class PaymentInfo(BaseModel):
    """Negotiation data, taken from the sale record only."""

    model_config = {"frozen": True}

    method: Optional[str] = None
    down_payment: Optional[Decimal] = None
    details: Optional[str] = None
    notes: Optional[str] = None


class EnrichedSaleView(BaseModel):
    """A sale merged with its best matching customer and vehicle records."""

    model_config = {"frozen": True}

    sale_id: str
    sale_date: Optional[date] = None
    amount: Decimal = Decimal("0")
    seller: str = PLACEHOLDER
    client: ClientInfo = Field(default_factory=ClientInfo)
    vehicle: VehicleInfo = Field(default_factory=VehicleInfo)
    payment: PaymentInfo = Field(default_factory=PaymentInfo)
    customer_source: Optional[str] = Field(
        default=None,
        description="Name of the matching strategy that found the customer",
    )
    vehicle_source: Optional[str] = Field(
        default=None,
        description="Name of the matching strategy that found the vehicle",
    )


# =============================================================================
# INSTALLMENTS
# =============================================================================

class InstallmentLine(BaseModel):
    """One row of a payment schedule."""

    model_config = {"frozen": True}

    sequence: int = Field(ge=1, description="1-based position in the schedule")
    due_date: date
    amount: Decimal
    payment_method: str
    is_down_payment: bool = False

    @computed_field
    @property
    def due_date_br(self) -> str:
        """Due date as ``DD/MM/YYYY``, the format used in contracts."""
        return format_br_date(self.due_date)

    def describe(self, currency_symbol: Optional[str] = None) -> str:
        """Single text line, e.g. ``"2 - 10/02/2024 - R$ 715,00 - BOLETO"``."""
        symbol = currency_symbol or get_settings().currency_symbol
        return (
            f"{self.sequence} - {self.due_date_br} - "
            f"{format_brl(self.amount, symbol)} - {self.payment_method}"
        )


# =============================================================================
# AGGREGATES
# =============================================================================

class DailyRevenue(BaseModel):
    model_config = {"frozen": True}

    day: date
    total: Decimal


class SellerTotal(BaseModel):
    model_config = {"frozen": True}

    seller: str
    total: Decimal
    count: int


class CategoryGroup(BaseModel):
    """Expenses sharing a category label, with their sum."""

    model_config = {"frozen": True}

    category: str
    rows: list[ExpenseRecord] = Field(default_factory=list)
    total: Decimal = Decimal("0")


class FinancialSummary(BaseModel):
    """Scalar figures of a filtered period."""

    model_config = {"frozen": True}

    total_revenue: Decimal = Decimal("0")
    shop_expenses: Decimal = Decimal("0")
    general_expenses: Decimal = Decimal("0")
    sale_count: int = 0
    expense_count: int = 0

    @computed_field
    @property
    def total_expenses(self) -> Decimal:
        return self.shop_expenses + self.general_expenses

    @computed_field
    @property
    def net_profit(self) -> Decimal:
        return self.total_revenue - self.total_expenses


class MonthlyPoint(BaseModel):
    """Revenue and expenses of one ``YYYY-MM`` month."""

    model_config = {"frozen": True}

    month: str
    revenue: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.revenue - self.expenses


class SellerSales(BaseModel):
    """A seller's enriched sales, newest first, with their subtotal."""

    model_config = {"frozen": True}

    seller: str
    subtotal: Decimal = Decimal("0")
    sales: list[EnrichedSaleView] = Field(default_factory=list)


class VehicleProfit(BaseModel):
    """Result of one vehicle: price minus linked expenses and supplier cost."""

    model_config = {"frozen": True}

    vehicle_id: Optional[str] = None
    label: str = PLACEHOLDER
    sale_price: Decimal = Decimal("0")
    linked_expenses: Decimal = Decimal("0")
    supplier_cost: Decimal = Decimal("0")

    @computed_field
    @property
    def profit(self) -> Decimal:
        return self.sale_price - self.linked_expenses - self.supplier_cost


class FleetProfitSummary(BaseModel):
    """Per-vehicle results plus store-wide totals."""

    model_config = {"frozen": True}

    vehicles: list[VehicleProfit] = Field(default_factory=list)
    total_sales: Decimal = Decimal("0")
    total_linked_expenses: Decimal = Decimal("0")
    total_unlinked_expenses: Decimal = Decimal("0")
    total_supplier_costs: Decimal = Decimal("0")

    @computed_field
    @property
    def total_expenses(self) -> Decimal:
        return self.total_linked_expenses + self.total_unlinked_expenses

    @computed_field
    @property
    def net_profit(self) -> Decimal:
        return self.total_sales - self.total_expenses - self.total_supplier_costs


class FinancialReport(BaseModel):
    """Everything the period report renders, computed in one pass."""

    model_config = {"frozen": True}

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    seller_filter: Optional[str] = None
    summary: FinancialSummary = Field(default_factory=FinancialSummary)
    revenue_by_day: list[DailyRevenue] = Field(default_factory=list)
    seller_totals: list[SellerTotal] = Field(default_factory=list)
    shop_expenses_by_category: list[CategoryGroup] = Field(default_factory=list)
    general_expenses_by_category: list[CategoryGroup] = Field(default_factory=list)
    sales_by_seller: list[SellerSales] = Field(default_factory=list)
    monthly: list[MonthlyPoint] = Field(default_factory=list)
    undated_sales: int = 0
    undated_expenses: int = 0
    warnings: list[str] = Field(default_factory=list)
