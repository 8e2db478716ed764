"""Tests for the reconciliation engine: dirtiness, commit, and editing."""

from decimal import Decimal

import pytest
from checkout.cart.lines import AppointmentKind, AppointmentRef, Scope, ServiceProductLine
from checkout.cart.reconciliation import ReconciliationEngine, TemporaryKind
from checkout.errors import IntegrationError
from protean.exceptions import ValidationError

REF = AppointmentRef(kind=AppointmentKind.GROOMING, id="appt-001")


@pytest.fixture()
def engine(store, directory):
    cart = store.create_cart("cust-001")
    engine = ReconciliationEngine(store, str(cart.id), directory=directory)
    engine.load()
    return engine


class TestDirtiness:
    def test_fresh_engine_is_clean(self, engine):
        assert not engine.is_any_dirty

    def test_adding_a_product_dirties_products_only(self, engine):
        engine.add_product("Shampoo", 50, quantity=2)
        assert engine.is_dirty(Scope.PRODUCTS)
        assert not engine.is_dirty(Scope.APPOINTMENTS)

    def test_commit_then_clean(self, engine):
        engine.add_product("Shampoo", 50, quantity=2)
        engine.commit(Scope.PRODUCTS)
        assert not engine.is_dirty(Scope.PRODUCTS)

    def test_commit_all_flushes_both_scopes(self, engine, directory):
        engine.add_product("Shampoo", 50)
        engine.add_appointment(directory.fetch_appointment(REF.kind, REF.id))
        assert engine.commit_all() == [Scope.PRODUCTS, Scope.APPOINTMENTS]
        assert not engine.is_any_dirty

    def test_price_edit_after_commit_is_dirty(self, engine):
        line = engine.add_product("Shampoo", 50)
        engine.commit(Scope.PRODUCTS)
        engine.set_price(engine.products[0].id, 45)
        assert engine.is_dirty(Scope.PRODUCTS)
        assert line.unit_price == Decimal("50.00")

    def test_discard_restores_original(self, engine):
        engine.add_product("Shampoo", 50)
        engine.commit(Scope.PRODUCTS)
        engine.set_quantity(engine.products[0].id, 7)
        engine.discard()
        assert engine.products[0].quantity == 1
        assert not engine.is_any_dirty


class TestEditing:
    def test_same_catalogue_product_bumps_quantity(self, engine):
        engine.add_product("Shampoo", 50, product_id="prod-1")
        engine.add_product("Shampoo", 50, product_id="prod-1")
        assert len(engine.products) == 1
        assert engine.products[0].quantity == 2

    def test_quantity_zero_removes_line(self, engine):
        line = engine.add_product("Shampoo", 50)
        engine.set_quantity(line.id, 0)
        assert engine.products == ()

    def test_decrement_to_zero_removes_line(self, engine):
        line = engine.add_product("Shampoo", 50)
        engine.change_quantity(line.id, -1)
        assert all(p.quantity > 0 for p in engine.products)
        assert engine.products == ()

    def test_negative_price_is_rejected(self, engine):
        line = engine.add_product("Shampoo", 50)
        with pytest.raises(ValidationError):
            engine.set_price(line.id, -1)

    def test_unknown_line(self, engine):
        with pytest.raises(ValidationError):
            engine.remove("missing")

    def test_duplicate_appointment_is_rejected(self, engine, directory):
        record = directory.fetch_appointment(REF.kind, REF.id)
        engine.add_appointment(record)
        with pytest.raises(ValidationError):
            engine.add_appointment(record)

    def test_temporary_product_requires_name(self, engine):
        with pytest.raises(ValidationError):
            engine.add_temporary_item(TemporaryKind.PRODUCT, {"name": " ", "price": 10})

    def test_temporary_service_product_round_trip(self, engine):
        created = engine.add_temporary_item(
            TemporaryKind.SERVICE_PRODUCT, {"pet_name": "Bamba", "breed": "Shih Tzu", "price": 90}
        )
        engine.commit(Scope.APPOINTMENTS)
        engine.load()

        (reloaded,) = engine.appointments
        assert isinstance(reloaded, ServiceProductLine)
        assert reloaded.label == created.label
        assert reloaded.quantity == 1
        assert reloaded.price == Decimal("90.00")


class TestSubtotal:
    def test_subtotal(self, engine, directory):
        engine.add_product("Shampoo", 50, quantity=2)
        engine.add_appointment(directory.fetch_appointment(REF.kind, REF.id))
        assert engine.subtotal == Decimal("220.00")

    def test_has_billable_line(self, engine):
        assert not engine.has_billable_line()
        engine.add_product("Shampoo", 50)
        assert engine.has_billable_line()

    def test_loaded_appointment_gets_pet_name(self, engine, directory):
        engine.add_appointment(directory.fetch_appointment(REF.kind, REF.id))
        engine.commit(Scope.APPOINTMENTS)
        assert engine.appointment_lines[0].pet_name == "Rexi"


class TestSingleAppointmentWriteThrough:
    def _engine(self, store, directory):
        cart = store.create_cart("cust-001")
        engine = ReconciliationEngine(store, str(cart.id), directory=directory, single_appointment=REF)
        engine.load()
        engine.add_appointment(directory.fetch_appointment(REF.kind, REF.id))
        engine.commit(Scope.APPOINTMENTS)
        directory.price_writes.clear()
        return engine

    def test_price_edit_is_written_to_appointment(self, store, directory):
        engine = self._engine(store, directory)
        engine.set_price(engine.appointment_lines[0].id, 150)
        engine.commit(Scope.APPOINTMENTS)

        assert directory.price_writes == [(REF.kind, REF.id, 150.0)]
        assert directory.fetch_appointment(REF.kind, REF.id).price == 150.0

    def test_unchanged_price_is_not_written(self, store, directory):
        engine = self._engine(store, directory)
        engine.add_temporary_item(TemporaryKind.SERVICE_PRODUCT, {"pet_name": "Bamba", "price": 10})
        engine.commit(Scope.APPOINTMENTS)
        assert directory.price_writes == []

    def test_multi_appointment_cart_does_not_write_through(self, store, directory):
        from checkout.directory.port import AppointmentRecord

        engine = self._engine(store, directory)
        directory.add_appointment(
            AppointmentRecord(id="appt-002", kind=AppointmentKind.DAYCARE, customer_id="cust-001", price=60.0)
        )
        engine.add_appointment(directory.fetch_appointment(AppointmentKind.DAYCARE, "appt-002"))
        engine.set_price(engine.appointment_lines[0].id, 150)
        engine.commit(Scope.APPOINTMENTS)
        assert directory.price_writes == []

    def test_missing_appointment_record_is_an_integration_error(self, store, directory):
        engine = self._engine(store, directory)
        directory.appointments.clear()
        engine.set_price(engine.appointment_lines[0].id, 150)
        with pytest.raises(IntegrationError):
            engine.commit(Scope.APPOINTMENTS)
