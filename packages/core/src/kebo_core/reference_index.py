"""Lookup structures over customers, legacy contracts and vehicles.

``build_reference_index`` runs once per report over freshly fetched
collections and returns an immutable ReferenceIndex that is passed to every
reconciliation call. Nothing is cached between builds.

Key rules:
    - customers: last record wins for a repeated tax id or name
    - contracts: first record wins (older data is fallback only)
    - vehicles: one pass fills the chassis, plate and renavam indexes;
      a vehicle missing one of those keys is left out of that index only
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, TypeVar

import structlog

from .data_mapper import map_contract, map_customer, map_vehicle
from .exceptions import RecordMappingError
from .models import CustomerProfile, LegacyContractProfile, VehicleProfile

logger = structlog.get_logger()

ProfileT = TypeVar("ProfileT")


def _empty_table() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class ReferenceIndex:
    """Read-only lookup tables keyed by normalized identifiers."""

    customers_by_tax_id: Mapping[str, CustomerProfile] = field(default_factory=_empty_table)
    customers_by_name: Mapping[str, CustomerProfile] = field(default_factory=_empty_table)
    contracts_by_tax_id: Mapping[str, LegacyContractProfile] = field(default_factory=_empty_table)
    contracts_by_name: Mapping[str, LegacyContractProfile] = field(default_factory=_empty_table)
    vehicles_by_chassis: Mapping[str, VehicleProfile] = field(default_factory=_empty_table)
    vehicles_by_plate: Mapping[str, VehicleProfile] = field(default_factory=_empty_table)
    vehicles_by_renavam: Mapping[str, VehicleProfile] = field(default_factory=_empty_table)
    # Collection order is kept for the fuzzy name scan
    customers: tuple[CustomerProfile, ...] = ()
    contracts: tuple[LegacyContractProfile, ...] = ()
    vehicles: tuple[VehicleProfile, ...] = ()
    skipped: int = field(default=0, compare=False)

    @classmethod
    def empty(cls) -> "ReferenceIndex":
        return cls()


def _coerce(
    items: Iterable[Any],
    model: type[ProfileT],
    mapper: Callable[[Any], ProfileT],
    record_type: str,
    has_key: Callable[[ProfileT], bool],
) -> tuple[list[ProfileT], int]:
    accepted: list[ProfileT] = []
    skipped = 0
    for position, item in enumerate(items or ()):
        try:
            profile = item if isinstance(item, model) else mapper(item)
            if not has_key(profile):
                raise RecordMappingError(
                    f"{record_type.capitalize()} has no usable lookup key",
                    record_type=record_type,
                )
        except RecordMappingError as exc:
            skipped += 1
            logger.warning(
                "reference_record_skipped",
                record_type=record_type,
                position=position,
                reason=exc.message,
            )
            continue
        accepted.append(profile)
    return accepted, skipped


def _party_has_key(profile: CustomerProfile | LegacyContractProfile) -> bool:
    return bool(profile.tax_id_key or profile.name_key)


def build_reference_index(
    customers: Iterable[Any] = (),
    contracts: Iterable[Any] = (),
    vehicles: Iterable[Any] = (),
) -> ReferenceIndex:
    """Build the lookup index from the three reference collections.

    Each collection may hold canonical profiles or raw documents; raw
    documents go through ``kebo_core.data_mapper``. A record that cannot be
    mapped, or that has no tax id, name or vehicle key at all, is skipped
    and logged; the rest of the index is built normally.

    Args:
        customers: Customer registrations.
        contracts: Legacy contracts, used as a fallback source of buyer data.
        vehicles: Inventory vehicles.

    Returns:
        An immutable ReferenceIndex.
    """
    customer_list, skipped_customers = _coerce(
        customers, CustomerProfile, map_customer, "customer", _party_has_key
    )
    contract_list, skipped_contracts = _coerce(
        contracts, LegacyContractProfile, map_contract, "contract", _party_has_key
    )
    vehicle_list, skipped_vehicles = _coerce(
        vehicles, VehicleProfile, map_vehicle, "vehicle", lambda v: v.has_any_key
    )

    customers_by_tax_id: dict[str, CustomerProfile] = {}
    customers_by_name: dict[str, CustomerProfile] = {}
    for customer in customer_list:
        if customer.tax_id_key:
            customers_by_tax_id[customer.tax_id_key] = customer
        if customer.name_key:
            customers_by_name[customer.name_key] = customer

    contracts_by_tax_id: dict[str, LegacyContractProfile] = {}
    contracts_by_name: dict[str, LegacyContractProfile] = {}
    for contract in contract_list:
        if contract.tax_id_key:
            contracts_by_tax_id.setdefault(contract.tax_id_key, contract)
        if contract.name_key:
            contracts_by_name.setdefault(contract.name_key, contract)

    by_chassis: dict[str, VehicleProfile] = {}
    by_plate: dict[str, VehicleProfile] = {}
    by_renavam: dict[str, VehicleProfile] = {}
    for vehicle in vehicle_list:
        if vehicle.chassis_key:
            by_chassis[vehicle.chassis_key] = vehicle
        if vehicle.plate_key:
            by_plate[vehicle.plate_key] = vehicle
        if vehicle.renavam_key:
            by_renavam[vehicle.renavam_key] = vehicle

    skipped = skipped_customers + skipped_contracts + skipped_vehicles
    logger.info(
        "reference_index_built",
        customers=len(customer_list),
        contracts=len(contract_list),
        vehicles=len(vehicle_list),
        skipped=skipped,
    )

    return ReferenceIndex(
        customers_by_tax_id=MappingProxyType(customers_by_tax_id),
        customers_by_name=MappingProxyType(customers_by_name),
        contracts_by_tax_id=MappingProxyType(contracts_by_tax_id),
        contracts_by_name=MappingProxyType(contracts_by_name),
        vehicles_by_chassis=MappingProxyType(by_chassis),
        vehicles_by_plate=MappingProxyType(by_plate),
        vehicles_by_renavam=MappingProxyType(by_renavam),
        customers=tuple(customer_list),
        contracts=tuple(contract_list),
        vehicles=tuple(vehicle_list),
        skipped=skipped,
    )


__all__ = [
    "ReferenceIndex",
    "build_reference_index",
]
