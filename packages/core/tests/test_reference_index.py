"""Tests for building the reference lookup index."""

import pytest

from kebo_core.models import CustomerProfile, LegacyContractProfile, VehicleProfile
from kebo_core.reference_index import ReferenceIndex, build_reference_index


class TestCustomerIndex:
    """Tests for customer lookup tables."""

    def test_keys_are_normalized(self):
        index = build_reference_index(
            customers=[CustomerProfile(name="João   DA Silva", tax_id="123.456.789-09")]
        )

        assert "12345678909" in index.customers_by_tax_id
        assert "joao da silva" in index.customers_by_name

    def test_last_customer_wins(self):
        first = CustomerProfile(name="Maria", tax_id="111", phone="1")
        second = CustomerProfile(name="Maria", tax_id="111", phone="2")

        index = build_reference_index(customers=[first, second])

        assert index.customers_by_tax_id["111"] is second
        assert index.customers_by_name["maria"] is second
        assert index.customers == (first, second)

    def test_accepts_raw_documents(self):
        index = build_reference_index(customers=[{"nome": "Ana", "cpf": "222"}])
        assert index.customers_by_tax_id["222"].name == "Ana"

    def test_override_name_is_indexed(self):
        index = build_reference_index(
            customers=[{"nome": "Maria Souza", "extras": {"nome": "Maria Lima"}}]
        )
        assert "maria lima" in index.customers_by_name
        assert "maria souza" not in index.customers_by_name


class TestContractIndex:
    """Tests for legacy contract lookup tables."""

    def test_first_contract_wins(self):
        first = LegacyContractProfile(name="Pedro", tax_id="555", city="Campinas")
        second = LegacyContractProfile(name="Pedro", tax_id="555", city="Santos")

        index = build_reference_index(contracts=[first, second])

        assert index.contracts_by_tax_id["555"] is first
        assert index.contracts_by_name["pedro"] is first


class TestVehicleIndex:
    """Tests for vehicle lookup tables."""

    def test_single_pass_fills_all_keys(self):
        vehicle = VehicleProfile(id="m1", chassis="9c2-001", plate="abc1d23", renavam="123")
        index = build_reference_index(vehicles=[vehicle])

        assert index.vehicles_by_chassis["9C2001"] is vehicle
        assert index.vehicles_by_plate["ABC1D23"] is vehicle
        assert index.vehicles_by_renavam["123"] is vehicle

    def test_missing_key_only_skips_that_table(self):
        vehicle = VehicleProfile(id="m2", chassis="CH2")
        index = build_reference_index(vehicles=[vehicle])

        assert index.vehicles_by_chassis["CH2"] is vehicle
        assert len(index.vehicles_by_plate) == 0
        assert len(index.vehicles_by_renavam) == 0

    def test_raw_inventory_documents(self):
        index = build_reference_index(
            vehicles=[{"id": "m1", "adicionais": {"modelo": "CG 160", "placa": "abc1d23", "chassi": "9C2001"}}]
        )

        assert index.vehicles_by_plate["ABC1D23"].model == "CG 160"
        assert index.vehicles_by_chassis["9C2001"].id == "m1"
        assert index.skipped == 0


class TestSkippedRecords:
    """Tests for records that cannot be indexed."""

    def test_keyless_and_unreadable_records_are_skipped(self):
        index = build_reference_index(
            customers=[CustomerProfile(), {"nome": "Ana"}, "garbage"],
            vehicles=[VehicleProfile(model="CG 160"), VehicleProfile(plate="ABC1D23")],
        )

        assert len(index.customers) == 1
        assert len(index.vehicles) == 1
        assert index.skipped == 3

    def test_empty_inputs(self):
        index = build_reference_index()
        assert index == ReferenceIndex.empty()
        assert index.customers == ()


class TestImmutability:
    """The index is read-only once built."""

    def test_tables_are_read_only(self):
        index = build_reference_index(customers=[CustomerProfile(name="Ana", tax_id="1")])
        with pytest.raises(TypeError):
            index.customers_by_tax_id["2"] = CustomerProfile(name="Bia")

    def test_default_tables_are_empty_and_independent(self):
        first = ReferenceIndex()
        second = ReferenceIndex()

        assert len(first.vehicles_by_plate) == 0
        assert dict(first.customers_by_tax_id) == {}
        assert first.customers_by_name is not second.customers_by_name
        with pytest.raises(TypeError):
            first.vehicles_by_plate["X"] = VehicleProfile(plate="X")

    def test_fields_are_frozen(self):
        index = ReferenceIndex.empty()
        with pytest.raises(AttributeError):
            index.customers = ()
