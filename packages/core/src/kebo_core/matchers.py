"""Lookup strategies for finding a sale's customer and vehicle.

Each strategy answers one question ("is there a customer with this tax
id?", "is there a vehicle with this plate?") against a ReferenceIndex.
The reconciler tries them in a fixed order and keeps the first hit, so the
precedence between strategies is the order of the tuples at the bottom of
this module:

    customers: tax id (customers) -> tax id (contracts)
               -> name (customers) -> name (contracts)
               -> fuzzy name scan (customers)
    vehicles:  chassis -> plate -> renavam

Strategies follow the ``CustomerMatcher`` / ``VehicleMatcher`` protocols
structurally; any object with a ``name`` and a matching ``match`` method can
be plugged into a SaleReconciler.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Protocol, runtime_checkable

from .models import CustomerProfile, PartyProfile, SaleRecord, VehicleProfile
from .normalization import names_match, normalize_name, normalize_tax_id, normalize_vehicle_key
from .reference_index import ReferenceIndex


# =============================================================================
# PROTOCOLS
# =============================================================================

@runtime_checkable
class CustomerMatcher(Protocol):
    """Finds buyer data for a sale, or returns None."""

    @property
    def name(self) -> str: ...

    def match(self, sale: SaleRecord, index: ReferenceIndex) -> Optional[PartyProfile]: ...


@runtime_checkable
class VehicleMatcher(Protocol):
    """Finds the inventory vehicle of a sale, or returns None."""

    @property
    def name(self) -> str: ...

    def match(self, sale: SaleRecord, index: ReferenceIndex) -> Optional[VehicleProfile]: ...


# =============================================================================
# CUSTOMER STRATEGIES
# =============================================================================

class PartySource(str, Enum):
    """Which reference collection a party strategy reads."""

    CUSTOMERS = "customers"
    CONTRACTS = "contracts"


def _tax_id_table(index: ReferenceIndex, source: PartySource) -> Mapping[str, PartyProfile]:
    if source is PartySource.CUSTOMERS:
        return index.customers_by_tax_id
    return index.contracts_by_tax_id


def _name_table(index: ReferenceIndex, source: PartySource) -> Mapping[str, PartyProfile]:
    if source is PartySource.CUSTOMERS:
        return index.customers_by_name
    return index.contracts_by_name


@dataclass(frozen=True)
class TaxIdMatcher:
    """Exact match on the digits of the buyer's CPF/CNPJ."""

    source: PartySource = PartySource.CUSTOMERS

    @property
    def name(self) -> str:
        return f"tax_id:{self.source.value}"

    def match(self, sale: SaleRecord, index: ReferenceIndex) -> Optional[PartyProfile]:
        key = normalize_tax_id(sale.buyer_tax_id)
        if not key:
            return None
        return _tax_id_table(index, self.source).get(key)


@dataclass(frozen=True)
class ExactNameMatcher:
    """Exact match on the normalized buyer name."""

    source: PartySource = PartySource.CUSTOMERS

    @property
    def name(self) -> str:
        return f"name:{self.source.value}"

    def match(self, sale: SaleRecord, index: ReferenceIndex) -> Optional[PartyProfile]:
        key = normalize_name(sale.buyer_name)
        if not key:
            return None
        return _name_table(index, self.source).get(key)


@dataclass(frozen=True)
class FuzzyNameMatcher:
    """First customer, in collection order, whose name loosely matches.

    See ``names_match``: equal, prefix or substring in either direction.
    No scoring; the first candidate wins.
    """

    @property
    def name(self) -> str:
        return "fuzzy_name:customers"

    def match(self, sale: SaleRecord, index: ReferenceIndex) -> Optional[CustomerProfile]:
        if not normalize_name(sale.buyer_name):
            return None
        for candidate in index.customers:
            if names_match(candidate.display_name, sale.buyer_name):
                return candidate
        return None


# =============================================================================
# VEHICLE STRATEGIES
# =============================================================================

class VehicleKey(str, Enum):
    """Vehicle identifiers, in lookup precedence order."""

    CHASSIS = "chassis"
    PLATE = "plate"
    RENAVAM = "renavam"


@dataclass(frozen=True)
class VehicleKeyMatcher:
    """Exact match on one normalized vehicle identifier."""

    key: VehicleKey

    @property
    def name(self) -> str:
        return self.key.value

    def match(self, sale: SaleRecord, index: ReferenceIndex) -> Optional[VehicleProfile]:
        if self.key is VehicleKey.CHASSIS:
            raw, table = sale.vehicle_chassis, index.vehicles_by_chassis
        elif self.key is VehicleKey.PLATE:
            raw, table = sale.vehicle_plate, index.vehicles_by_plate
        else:
            raw, table = sale.vehicle_renavam, index.vehicles_by_renavam
        normalized = normalize_vehicle_key(raw)
        if not normalized:
            return None
        return table.get(normalized)


# =============================================================================
# DEFAULT ORDER
# =============================================================================

DEFAULT_CUSTOMER_MATCHERS: tuple[CustomerMatcher, ...] = (
    TaxIdMatcher(PartySource.CUSTOMERS),
    TaxIdMatcher(PartySource.CONTRACTS),
    ExactNameMatcher(PartySource.CUSTOMERS),
    ExactNameMatcher(PartySource.CONTRACTS),
    FuzzyNameMatcher(),
)

DEFAULT_VEHICLE_MATCHERS: tuple[VehicleMatcher, ...] = (
    VehicleKeyMatcher(VehicleKey.CHASSIS),
    VehicleKeyMatcher(VehicleKey.PLATE),
    VehicleKeyMatcher(VehicleKey.RENAVAM),
)


__all__ = [
    "CustomerMatcher",
    "VehicleMatcher",
    "PartySource",
    "TaxIdMatcher",
    "ExactNameMatcher",
    "FuzzyNameMatcher",
    "VehicleKey",
    "VehicleKeyMatcher",
    "DEFAULT_CUSTOMER_MATCHERS",
    "DEFAULT_VEHICLE_MATCHERS",
]
