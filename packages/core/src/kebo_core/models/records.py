"""Canonical transaction records: sales and expenses.

These are the only shapes the reconciliation and aggregation code sees.
Raw documents with their variant field names are mapped into them by
``kebo_core.data_mapper``. Dates and amounts are coerced on construction,
so a record built from loose input is still safe to aggregate.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from kebo_core.normalization import (
    is_empty,
    parse_calendar_date,
    parse_decimal_amount,
)


def clean_optional_text(value: Any) -> Optional[str]:
    """Coerce a loose field value into a stripped string, or None when blank."""
    if is_empty(value):
        return None
    return str(value).strip()


class ExpenseKind(str, Enum):
    """Shop-level overhead versus general expenses."""

    SHOP = "shop"
    GENERAL = "general"


_KIND_ALIASES = {
    "shop": ExpenseKind.SHOP,
    "loja": ExpenseKind.SHOP,
    "general": ExpenseKind.GENERAL,
    "geral": ExpenseKind.GENERAL,
}


def resolve_expense_kind(
    kind: Any = None,
    category: Optional[str] = None,
    has_vehicle_link: bool = False,
) -> ExpenseKind:
    """Classify an expense.

    An explicit kind ("loja"/"shop", "geral"/"general") wins. Otherwise a
    category starting with "loja" is shop overhead, an expense tied to a
    vehicle is a shop expense, and anything else is general.
    """
    if isinstance(kind, ExpenseKind):
        return kind
    if isinstance(kind, str):
        explicit = _KIND_ALIASES.get(kind.strip().lower())
        if explicit is not None:
            return explicit
    if category and category.strip().lower().startswith("loja"):
        return ExpenseKind.SHOP
    if has_vehicle_link:
        return ExpenseKind.SHOP
    return ExpenseKind.GENERAL


class VehicleSummary(BaseModel):
    """Denormalized vehicle data embedded in an expense document."""

    model_config = {"frozen": True}

    model: Optional[str] = None
    plate: Optional[str] = None
    chassis: Optional[str] = None

    @field_validator("model", "plate", "chassis", mode="before")
    @classmethod
    def clean_text(cls, v):
        return clean_optional_text(v)

    @property
    def is_empty(self) -> bool:
        return not (self.model or self.plate or self.chassis)


class SaleRecord(BaseModel):
    """One completed sale, as recorded at the time of the transaction.

    The sale record is the legal record of truth: any field filled here
    takes precedence over reference data during reconciliation.
    """

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "id": "v-001",
                    "sale_date": "2024-03-15",
                    "amount": "18900.00",
                    "seller": "Carlos",
                    "buyer_name": "João da Silva",
                    "buyer_tax_id": "123.456.789-09",
                    "vehicle_model": "CG 160 Fan",
                    "vehicle_plate": "ABC1D23",
                }
            ]
        },
    }

    id: str = Field(default="", description="Document identifier of the sale")
    sale_date: Optional[date] = Field(
        default=None,
        description="Calendar date of the sale; None when the source date is unreadable",
    )
    amount: Decimal = Field(default=Decimal("0"), description="Sale price")
    seller: Optional[str] = Field(default=None, description="Name of the responsible seller")
    buyer_name: str = Field(default="", description="Buyer name as typed on the sale")

    buyer_tax_id: Optional[str] = None
    buyer_phone: Optional[str] = None
    buyer_address: Optional[str] = None
    buyer_district: Optional[str] = None
    buyer_city: Optional[str] = None
    buyer_state: Optional[str] = None

    vehicle_brand: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_year: Optional[str] = None
    vehicle_chassis: Optional[str] = None
    vehicle_plate: Optional[str] = None
    vehicle_color: Optional[str] = None
    vehicle_renavam: Optional[str] = None

    payment_method: Optional[str] = None
    down_payment: Optional[Decimal] = None
    payment_details: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("sale_date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        """Read any supported date representation as a calendar date."""
        return parse_calendar_date(v)

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        """Read numbers and Brazilian formatted strings as Decimal."""
        return parse_decimal_amount(v)

    @field_validator("down_payment", mode="before")
    @classmethod
    def coerce_down_payment(cls, v):
        if is_empty(v):
            return None
        return parse_decimal_amount(v)

    @field_validator("seller", mode="before")
    @classmethod
    def coerce_seller(cls, v):
        return clean_optional_text(v)

    @field_validator("id", "buyer_name", mode="before")
    @classmethod
    def coerce_required_text(cls, v):
        return clean_optional_text(v) or ""

    @field_validator(
        "buyer_tax_id",
        "buyer_phone",
        "buyer_address",
        "buyer_district",
        "buyer_city",
        "buyer_state",
        "vehicle_brand",
        "vehicle_model",
        "vehicle_year",
        "vehicle_chassis",
        "vehicle_plate",
        "vehicle_color",
        "vehicle_renavam",
        "payment_method",
        "payment_details",
        "notes",
        mode="before",
    )
    @classmethod
    def coerce_optional_text(cls, v):
        return clean_optional_text(v)

    @property
    def is_dated(self) -> bool:
        return self.sale_date is not None


class ExpenseRecord(BaseModel):
    """One outgoing payment, optionally tied to a vehicle in stock."""

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "id": "d-001",
                    "expense_date": "2024-03-02",
                    "amount": "300.00",
                    "category": "Oficina",
                    "kind": "shop",
                    "description": "Troca de kit relação",
                    "vehicle_id": "m1",
                }
            ]
        },
    }

    id: str = Field(default="", description="Document identifier of the expense")
    expense_date: Optional[date] = Field(
        default=None,
        description="Calendar date of the expense; None when unreadable",
    )
    amount: Decimal = Field(default=Decimal("0"), description="Amount paid")
    category: Optional[str] = Field(default=None, description="Free-text category label")
    kind: ExpenseKind = Field(
        default=ExpenseKind.GENERAL,
        description="Shop overhead or general expense; derived when not given",
    )
    description: str = Field(default="", description="Free-text description")
    vehicle_id: Optional[str] = Field(default=None, description="Linked vehicle document id")
    vehicle: Optional[VehicleSummary] = Field(
        default=None,
        description="Vehicle data copied into the expense document",
    )

    @model_validator(mode="before")
    @classmethod
    def derive_kind(cls, data: Any) -> Any:
        """Fill ``kind`` from category and vehicle link when it is not explicit."""
        if not isinstance(data, dict):
            return data
        vehicle = data.get("vehicle")
        if isinstance(vehicle, VehicleSummary):
            vehicle_linked = not vehicle.is_empty
        elif isinstance(vehicle, dict):
            vehicle_linked = any(not is_empty(v) for v in vehicle.values())
        else:
            vehicle_linked = False
        linked = not is_empty(data.get("vehicle_id")) or vehicle_linked
        category = data.get("category")
        return {
            **data,
            "kind": resolve_expense_kind(
                data.get("kind"),
                category if isinstance(category, str) else None,
                linked,
            ),
        }

    @field_validator("expense_date", mode="before")
    @classmethod
    def coerce_date(cls, v):
        return parse_calendar_date(v)

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        return parse_decimal_amount(v)

    @field_validator("category", "vehicle_id", mode="before")
    @classmethod
    def coerce_optional_text(cls, v):
        return clean_optional_text(v)

    @field_validator("id", "description", mode="before")
    @classmethod
    def coerce_required_text(cls, v):
        return clean_optional_text(v) or ""

    @computed_field
    @property
    def has_vehicle_link(self) -> bool:
        """True when the expense is tied to a vehicle by id or embedded data."""
        return bool(self.vehicle_id) or (self.vehicle is not None and not self.vehicle.is_empty)
