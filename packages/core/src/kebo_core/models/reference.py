"""Reference data: customers, legacy contracts and vehicles in stock.

Reference profiles only ever fill gaps in a sale record. They are keyed by
normalized tax id and name (parties) or by chassis, plate and renavam
(vehicles); see ``kebo_core.reference_index``.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from kebo_core.models.records import clean_optional_text
from kebo_core.normalization import (
    first_non_empty,
    normalize_name,
    normalize_tax_id,
    normalize_vehicle_key,
    parse_decimal_amount,
)


class ContactOverride(BaseModel):
    """Preferred contact name/phone stored next to a party's registry data."""

    model_config = {"frozen": True}

    name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("name", "phone", mode="before")
    @classmethod
    def clean_text(cls, v):
        return clean_optional_text(v)


class PartyProfile(BaseModel):
    """Fields shared by customer registrations and legacy contracts.

    Own name and phone come first; the nested contact fills in what is
    missing. Customer registrations reverse that order.
    """

    model_config = {"frozen": True}

    name: Optional[str] = Field(default=None, description="Registered name")
    tax_id: Optional[str] = Field(default=None, description="CPF/CNPJ as typed")
    phone: Optional[str] = None
    address: Optional[str] = None
    district: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    preferred_contact: Optional[ContactOverride] = None

    @field_validator("name", "tax_id", "phone", "address", "district", "city", "state", mode="before")
    @classmethod
    def clean_text(cls, v):
        return clean_optional_text(v)

    @property
    def display_name(self) -> Optional[str]:
        override = self.preferred_contact.name if self.preferred_contact else None
        return first_non_empty(self.name, override)

    @property
    def contact_phone(self) -> Optional[str]:
        override = self.preferred_contact.phone if self.preferred_contact else None
        return first_non_empty(self.phone, override)

    @property
    def tax_id_key(self) -> str:
        return normalize_tax_id(self.tax_id)

    @property
    def name_key(self) -> str:
        return normalize_name(self.display_name)


class CustomerProfile(PartyProfile):
    """A registered customer. The preferred contact overrides name and phone."""

    email: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def clean_email(cls, v):
        return clean_optional_text(v)

    @property
    def display_name(self) -> Optional[str]:
        override = self.preferred_contact.name if self.preferred_contact else None
        return first_non_empty(override, self.name)

    @property
    def contact_phone(self) -> Optional[str]:
        override = self.preferred_contact.phone if self.preferred_contact else None
        return first_non_empty(override, self.phone)


class LegacyContractProfile(PartyProfile):
    """Buyer data from an older contract.

    Used only when no customer registration matches. Here the contract's
    own fields come first and the nested contact fills in.
    """


class VehicleProfile(BaseModel):
    """A vehicle registered in the store's inventory."""

    model_config = {"frozen": True}

    id: Optional[str] = Field(default=None, description="Inventory document id")
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[str] = None
    chassis: Optional[str] = None
    plate: Optional[str] = None
    color: Optional[str] = None
    renavam: Optional[str] = None
    odometer: Optional[str] = Field(default=None, description="Odometer reading (km)")
    photo_url: Optional[str] = None
    list_price: Decimal = Field(default=Decimal("0"), description="Asking/sale price")
    supplier_cost: Decimal = Field(default=Decimal("0"), description="Price paid to the supplier")
    registered_by: Optional[str] = None

    @field_validator(
        "id",
        "brand",
        "model",
        "year",
        "chassis",
        "plate",
        "color",
        "renavam",
        "odometer",
        "photo_url",
        "registered_by",
        mode="before",
    )
    @classmethod
    def clean_text(cls, v):
        return clean_optional_text(v)

    @field_validator("list_price", "supplier_cost", mode="before")
    @classmethod
    def coerce_amount(cls, v):
        return parse_decimal_amount(v)

    @computed_field
    @property
    def chassis_key(self) -> str:
        return normalize_vehicle_key(self.chassis)

    @computed_field
    @property
    def plate_key(self) -> str:
        return normalize_vehicle_key(self.plate)

    @computed_field
    @property
    def renavam_key(self) -> str:
        return normalize_vehicle_key(self.renavam)

    @property
    def has_any_key(self) -> bool:
        return bool(self.chassis_key or self.plate_key or self.renavam_key)
