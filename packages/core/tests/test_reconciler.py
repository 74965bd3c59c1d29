"""Tests for matching sales to reference data and building enriched views."""

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from kebo_core.matchers import (
    CustomerMatcher,
    ExactNameMatcher,
    FuzzyNameMatcher,
    PartySource,
    TaxIdMatcher,
    VehicleKey,
    VehicleKeyMatcher,
    VehicleMatcher,
)
from kebo_core.models import (
    ContactOverride,
    CustomerProfile,
    LegacyContractProfile,
    PartyProfile,
    SaleRecord,
    VehicleProfile,
)
from kebo_core.normalization import PLACEHOLDER
from kebo_core.reconciler import (
    SaleReconciler,
    build_enriched_view,
    resolve_customer,
    resolve_vehicle,
)
from kebo_core.reference_index import ReferenceIndex, build_reference_index


@pytest.fixture
def stock_vehicle() -> VehicleProfile:
    """An inventory vehicle with every identifier and a photo."""
    return VehicleProfile(
        id="m1",
        brand="Honda",
        model="CG 160 Titan",
        year="2023",
        chassis="9C2KC1670AR000001",
        plate="ABC1D23",
        color="Vermelha",
        renavam="01234567890",
        odometer="1500",
        photo_url="https://img/m1.jpg",
    )


@pytest.fixture
def index(stock_vehicle: VehicleProfile) -> ReferenceIndex:
    return build_reference_index(
        customers=[
            CustomerProfile(
                name="João   DA Silva",
                tax_id="123.456.789-09",
                phone="1111",
                city="São Paulo",
            ),
            CustomerProfile(name="Ana Paula Ribeiro", tax_id="999", phone="9999"),
        ],
        contracts=[
            LegacyContractProfile(name="Pedro Alves", tax_id="555.555.555-55", city="Campinas"),
        ],
        vehicles=[stock_vehicle],
    )


class TestResolveCustomer:
    """Tests for the customer matching order."""

    def test_tax_id_beats_name(self):
        by_tax = CustomerProfile(name="Maria Souza", tax_id="111.222.333-44")
        by_name = CustomerProfile(name="Maria", tax_id="000")
        index = build_reference_index(customers=[by_tax, by_name])
        sale = SaleRecord(id="v1", buyer_name="Maria", buyer_tax_id="11122233344")

        assert resolve_customer(sale, index) is by_tax

    def test_exact_name_ignores_accents_case_and_spaces(self, index: ReferenceIndex):
        sale = SaleRecord(id="v1", buyer_name="joao da silva")
        match = SaleReconciler(index).match_customer(sale)

        assert match is not None
        assert match.strategy == "name:customers"
        assert match.profile.phone == "1111"

    def test_customers_before_contracts(self):
        customer = CustomerProfile(name="Pedro", tax_id="555")
        contract = LegacyContractProfile(name="Pedro", tax_id="555")
        index = build_reference_index(customers=[customer], contracts=[contract])

        assert resolve_customer(SaleRecord(id="v1", buyer_tax_id="555"), index) is customer

    def test_contract_fallback(self, index: ReferenceIndex):
        sale = SaleRecord(id="v1", buyer_tax_id="55555555555")
        match = SaleReconciler(index).match_customer(sale)

        assert match.strategy == "tax_id:contracts"
        assert match.profile.city == "Campinas"

    def test_fuzzy_name_fallback(self, index: ReferenceIndex):
        sale = SaleRecord(id="v1", buyer_name="Ana Paula")
        match = SaleReconciler(index).match_customer(sale)

        assert match.strategy == "fuzzy_name:customers"
        assert match.profile.tax_id == "999"

    def test_no_match(self, index: ReferenceIndex):
        assert resolve_customer(SaleRecord(id="v1", buyer_name="Roberto"), index) is None

    def test_empty_sale_name_never_matches(self, index: ReferenceIndex):
        assert resolve_customer(SaleRecord(id="v1", buyer_name=""), index) is None


class TestResolveVehicle:
    """Tests for the vehicle matching order."""

    def test_chassis(self, index: ReferenceIndex, stock_vehicle: VehicleProfile):
        sale = SaleRecord(id="v1", vehicle_chassis="9c2kc1670ar000001")
        assert resolve_vehicle(sale, index) is stock_vehicle

    def test_plate_when_chassis_missing(self, index: ReferenceIndex):
        match = SaleReconciler(index).match_vehicle(SaleRecord(id="v1", vehicle_plate="abc-1d23"))
        assert match.strategy == "plate"

    def test_renavam_last(self, index: ReferenceIndex):
        match = SaleReconciler(index).match_vehicle(SaleRecord(id="v1", vehicle_renavam="01234567890"))
        assert match.strategy == "renavam"

    def test_unknown_chassis_falls_through_to_plate(self, index: ReferenceIndex):
        sale = SaleRecord(id="v1", vehicle_chassis="OTHER", vehicle_plate="ABC1D23")
        assert SaleReconciler(index).match_vehicle(sale).strategy == "plate"

    def test_no_keys(self, index: ReferenceIndex):
        assert resolve_vehicle(SaleRecord(id="v1"), index) is None


class TestBuildEnrichedView:
    """Tests for merging sale and reference data."""

    def test_sale_fields_win_over_reference(self, index: ReferenceIndex):
        """The sale's chassis text is kept even though the stock record matched."""
        sale = SaleRecord(
            id="v1",
            buyer_name="João da Silva",
            buyer_phone="2222",
            vehicle_chassis="9c2kc1670ar000001",
            vehicle_color="Preta",
        )

        view = build_enriched_view(sale, index)

        assert view.vehicle.chassis == "9c2kc1670ar000001"
        assert view.vehicle.color == "Preta"
        assert view.client.name == "João da Silva"
        assert view.client.phone == "2222"

    def test_sale_chassis_kept_when_plate_matches_other_chassis(self):
        stock = VehicleProfile(chassis="STOCK-CHASSIS", plate="ABC1D23", model="Biz")
        index = build_reference_index(vehicles=[stock])
        sale = SaleRecord(id="v1", vehicle_chassis="SALE-CHASSIS", vehicle_plate="ABC1D23")

        view = build_enriched_view(sale, index)

        assert view.vehicle_source == "plate"
        assert view.vehicle.chassis == "SALE-CHASSIS"
        assert view.vehicle.model == "Biz"

    def test_reference_fills_gaps(self, index: ReferenceIndex):
        sale = SaleRecord(id="v1", buyer_tax_id="12345678909", vehicle_plate="ABC1D23")

        view = build_enriched_view(sale, index)

        assert view.client.name == "João   DA Silva"
        assert view.client.city == "São Paulo"
        assert view.vehicle.model == "CG 160 Titan"
        assert view.vehicle.odometer == "1500"
        assert view.vehicle.photo_url == "https://img/m1.jpg"
        assert view.customer_source == "tax_id:customers"
        assert view.vehicle_source == "plate"

    def test_preferred_contact_fills_phone(self):
        customer = CustomerProfile(
            name="Maria", tax_id="1", phone="1111", preferred_contact=ContactOverride(phone="2222")
        )
        index = build_reference_index(customers=[customer])

        view = build_enriched_view(SaleRecord(id="v1", buyer_tax_id="1"), index)

        assert view.client.phone == "2222"

    def test_placeholders_without_any_data(self):
        view = build_enriched_view(SaleRecord(id="v1"), ReferenceIndex.empty())

        assert view.client.name == PLACEHOLDER
        assert view.vehicle.model == PLACEHOLDER
        assert view.seller == PLACEHOLDER
        assert view.client.tax_id is None
        assert view.vehicle.plate is None
        assert view.customer_source is None

    def test_custom_placeholder(self):
        view = build_enriched_view(SaleRecord(id="v1"), ReferenceIndex.empty(), placeholder="N/D")
        assert view.client.name == "N/D"
        assert view.seller == "N/D"
        assert view.vehicle.model == "N/D"

    def test_payment_comes_from_sale(self, index: ReferenceIndex):
        sale = SaleRecord(
            id="v1",
            sale_date="2024-03-15",
            amount="18.900,00",
            payment_method="BOLETO",
            down_payment="2.000,00",
        )

        view = build_enriched_view(sale, index)

        assert view.sale_date == date(2024, 3, 15)
        assert view.amount == Decimal("18900")
        assert view.payment.method == "BOLETO"
        assert view.payment.down_payment == Decimal("2000")

    def test_idempotent(self, index: ReferenceIndex):
        sale = SaleRecord(id="v1", buyer_name="Ana", vehicle_plate="ABC1D23")
        assert build_enriched_view(sale, index) == build_enriched_view(sale, index)


class TestMatcherProtocols:
    """Tests for plugging strategies into the reconciler."""

    def test_builtin_strategies_satisfy_protocols(self):
        assert isinstance(TaxIdMatcher(), CustomerMatcher)
        assert isinstance(ExactNameMatcher(PartySource.CONTRACTS), CustomerMatcher)
        assert isinstance(FuzzyNameMatcher(), CustomerMatcher)
        assert isinstance(VehicleKeyMatcher(VehicleKey.PLATE), VehicleMatcher)

    def test_custom_order(self, index: ReferenceIndex):
        """With only the fuzzy strategy, an exact tax id is not consulted."""
        reconciler = SaleReconciler(index, customer_matchers=[FuzzyNameMatcher()])
        sale = SaleRecord(id="v1", buyer_name="Ana", buyer_tax_id="12345678909")

        match = reconciler.match_customer(sale)

        assert match.strategy == "fuzzy_name:customers"
        assert match.profile.tax_id == "999"

    def test_custom_matcher(self, index: ReferenceIndex):
        class SellerAsCustomer:
            name = "seller"

            def match(self, sale: SaleRecord, index: ReferenceIndex) -> Optional[PartyProfile]:
                return CustomerProfile(name=sale.seller)

        reconciler = SaleReconciler(index, customer_matchers=[SellerAsCustomer()])
        view = reconciler.enrich(SaleRecord(id="v1", seller="Carlos"))

        assert view.client.name == "Carlos"
        assert view.customer_source == "seller"

    def test_enrich_all_keeps_order(self, index: ReferenceIndex):
        sales = [SaleRecord(id="a"), SaleRecord(id="b"), SaleRecord(id="c")]
        views = SaleReconciler(index).enrich_all(sales)
        assert [v.sale_id for v in views] == ["a", "b", "c"]
