"""Merge a sale record with its customer and vehicle reference data.

The sale record is the legal record of what was sold and to whom, so a
field filled on the sale is never replaced by reference data, even when the
reference record looks more complete. Reference data only fills gaps, and
a placeholder fills whatever is still missing.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

import structlog

from .matchers import (
    DEFAULT_CUSTOMER_MATCHERS,
    DEFAULT_VEHICLE_MATCHERS,
    CustomerMatcher,
    VehicleMatcher,
)
from .models import (
    ClientInfo,
    EnrichedSaleView,
    PartyProfile,
    PaymentInfo,
    SaleRecord,
    VehicleInfo,
    VehicleProfile,
)
from .normalization import PLACEHOLDER, first_non_empty
from .reference_index import ReferenceIndex

logger = structlog.get_logger()


@dataclass(frozen=True)
class CustomerMatch:
    """Buyer data found for a sale and the strategy that found it."""
    profile: PartyProfile
    strategy: str


@dataclass(frozen=True)
class VehicleMatch:
    """Inventory vehicle found for a sale and the strategy that found it."""
    profile: VehicleProfile
    strategy: str


class SaleReconciler:
    """
    Resolve and merge reference data for sales against one ReferenceIndex.

    Matching strategies are tried in the order given; the first one that
    returns a profile wins. The defaults implement the store's precedence
    (tax id before name, customers before contracts, exact before fuzzy;
    chassis before plate before renavam).
    """

    def __init__(
        self,
        index: ReferenceIndex,
        customer_matchers: Sequence[CustomerMatcher] = DEFAULT_CUSTOMER_MATCHERS,
        vehicle_matchers: Sequence[VehicleMatcher] = DEFAULT_VEHICLE_MATCHERS,
        placeholder: str = PLACEHOLDER,
    ):
        self.index = index
        self.customer_matchers = tuple(customer_matchers)
        self.vehicle_matchers = tuple(vehicle_matchers)
        self.placeholder = placeholder

    def match_customer(self, sale: SaleRecord) -> Optional[CustomerMatch]:
        for matcher in self.customer_matchers:
            profile = matcher.match(sale, self.index)
            if profile is not None:
                return CustomerMatch(profile=profile, strategy=matcher.name)
        return None

    def match_vehicle(self, sale: SaleRecord) -> Optional[VehicleMatch]:
        for matcher in self.vehicle_matchers:
            profile = matcher.match(sale, self.index)
            if profile is not None:
                return VehicleMatch(profile=profile, strategy=matcher.name)
        return None

    def enrich(self, sale: SaleRecord) -> EnrichedSaleView:
        """Build the enriched view of one sale."""
        customer = self.match_customer(sale)
        vehicle = self.match_vehicle(sale)
        party = customer.profile if customer else None
        stock = vehicle.profile if vehicle else None

        client = ClientInfo(
            name=first_non_empty(sale.buyer_name, party.display_name if party else None)
            or self.placeholder,
            tax_id=first_non_empty(sale.buyer_tax_id, party.tax_id if party else None),
            phone=first_non_empty(sale.buyer_phone, party.contact_phone if party else None),
            address=first_non_empty(sale.buyer_address, party.address if party else None),
            district=first_non_empty(sale.buyer_district, party.district if party else None),
            city=first_non_empty(sale.buyer_city, party.city if party else None),
            state=first_non_empty(sale.buyer_state, party.state if party else None),
        )

        vehicle_info = VehicleInfo(
            brand=first_non_empty(sale.vehicle_brand, stock.brand if stock else None),
            model=first_non_empty(sale.vehicle_model, stock.model if stock else None)
            or self.placeholder,
            year=first_non_empty(sale.vehicle_year, stock.year if stock else None),
            chassis=first_non_empty(sale.vehicle_chassis, stock.chassis if stock else None),
            plate=first_non_empty(sale.vehicle_plate, stock.plate if stock else None),
            color=first_non_empty(sale.vehicle_color, stock.color if stock else None),
            renavam=first_non_empty(sale.vehicle_renavam, stock.renavam if stock else None),
            odometer=stock.odometer if stock else None,
            photo_url=stock.photo_url if stock else None,
        )

        logger.debug(
            "sale_reconciled",
            sale_id=sale.id,
            customer_source=customer.strategy if customer else None,
            vehicle_source=vehicle.strategy if vehicle else None,
        )

        return EnrichedSaleView(
            sale_id=sale.id,
            sale_date=sale.sale_date,
            amount=sale.amount,
            seller=first_non_empty(sale.seller) or self.placeholder,
            client=client,
            vehicle=vehicle_info,
            payment=PaymentInfo(
                method=sale.payment_method,
                down_payment=sale.down_payment,
                details=sale.payment_details,
                notes=sale.notes,
            ),
            customer_source=customer.strategy if customer else None,
            vehicle_source=vehicle.strategy if vehicle else None,
        )

    def enrich_all(self, sales: Iterable[SaleRecord]) -> list[EnrichedSaleView]:
        return [self.enrich(sale) for sale in sales]


def resolve_customer(sale: SaleRecord, index: ReferenceIndex) -> Optional[PartyProfile]:
    """Best buyer data for a sale using the default strategy order, or None."""
    match = SaleReconciler(index).match_customer(sale)
    return match.profile if match else None


def resolve_vehicle(sale: SaleRecord, index: ReferenceIndex) -> Optional[VehicleProfile]:
    """Inventory vehicle of a sale by chassis, plate, then renavam, or None."""
    match = SaleReconciler(index).match_vehicle(sale)
    return match.profile if match else None


def build_enriched_view(
    sale: SaleRecord,
    index: ReferenceIndex,
    placeholder: str = PLACEHOLDER,
) -> EnrichedSaleView:
    """Merge one sale with its reference data using the default strategies."""
    return SaleReconciler(index, placeholder=placeholder).enrich(sale)


__all__ = [
    "CustomerMatch",
    "VehicleMatch",
    "SaleReconciler",
    "resolve_customer",
    "resolve_vehicle",
    "build_enriched_view",
]
