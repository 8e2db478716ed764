"""Tests for working-copy line items and the service-product label convention."""

from decimal import Decimal

from checkout.cart.lines import (
    AppointmentKind,
    AppointmentLine,
    AppointmentRef,
    ProductLine,
    ServiceProductLine,
    appointments_line_name,
    is_service_label,
    is_temporary_id,
    line_total,
    lines_differ,
    new_service_product,
    parse_service_label,
    service_label,
    service_product_from_row,
    to_money,
    with_price,
)


def _product(**overrides):
    values = {"id": "line-1", "name": "Shampoo", "quantity": 2, "unit_price": Decimal("50.00")}
    values.update(overrides)
    return ProductLine(**values)


def _appointment(**overrides):
    values = {
        "id": "line-2",
        "ref": AppointmentRef(kind=AppointmentKind.GROOMING, id="appt-001"),
        "price": Decimal("120.00"),
    }
    values.update(overrides)
    return AppointmentLine(**values)


class TestMoney:
    def test_floats_are_quantized_to_cents(self):
        assert to_money(19.999) == Decimal("20.00")

    def test_strings_are_parsed(self):
        assert to_money("220") == Decimal("220.00")

    def test_empty_is_zero(self):
        assert to_money(None) == Decimal("0.00")
        assert to_money("") == Decimal("0.00")


class TestServiceLabel:
    def test_pet_and_breed(self):
        assert service_label("Rexi", "Poodle") == "מספרה: Rexi (Poodle)"

    def test_breed_only(self):
        assert service_label(None, "Poodle") == "מספרה: Poodle"

    def test_neither_uses_default_customer_name(self):
        assert service_label(None, None) == "מספרה: לקוח"

    def test_parse_pet_and_breed(self):
        assert parse_service_label("מספרה: Rexi (Poodle)") == ("Rexi", "Poodle")

    def test_parse_single_name_has_no_breed(self):
        assert parse_service_label("מספרה: Rex") == ("Rex", "")

    def test_pet_only_product_has_no_breed(self):
        line = new_service_product("Rex", None, 80)
        assert line.label == "מספרה: Rex"
        assert line.pet_name == "Rex"
        assert line.breed == ""

    def test_parse_tolerates_missing_space_after_prefix(self):
        assert parse_service_label("מספרה:Rexi (Poodle)") == ("Rexi", "Poodle")

    def test_is_service_label(self):
        assert is_service_label("מספרה: Rexi (Poodle)")
        assert not is_service_label("Shampoo")
        assert not is_service_label(None)

    def test_new_service_product_has_temporary_id(self):
        line = new_service_product("Rexi", "Poodle", 80)
        assert is_temporary_id(line.id)
        assert line.label == "מספרה: Rexi (Poodle)"
        assert line.price == Decimal("80.00")
        assert line.quantity == 1

    def test_stored_row_rehydrates_to_same_line(self):
        created = new_service_product("Rexi", "Poodle", 80)
        reloaded = service_product_from_row("row-9", created.label, 80.0)

        assert reloaded.label == created.label
        assert reloaded.pet_name == created.pet_name
        assert reloaded.breed == created.breed
        assert reloaded.price == created.price
        assert reloaded.quantity == 1


class TestLinesDiffer:
    def test_identical_products(self):
        assert not lines_differ(_product(), _product())

    def test_quantity_change(self):
        assert lines_differ(_product(), _product(quantity=3))

    def test_price_change(self):
        assert lines_differ(_product(), _product(unit_price=Decimal("45.00")))

    def test_name_change(self):
        assert lines_differ(_product(), _product(name="Conditioner"))

    def test_appointment_price_change(self):
        assert lines_differ(_appointment(), _appointment(price=Decimal("100.00")))

    def test_appointment_pet_name_is_not_compared(self):
        assert not lines_differ(_appointment(), _appointment(pet_name="Rexi"))

    def test_different_shapes_always_differ(self):
        service = ServiceProductLine(id="line-2", pet_name="Rexi", breed="", price=Decimal("120.00"), label="x")
        assert lines_differ(_appointment(), service)


class TestTotals:
    def test_product_total(self):
        assert line_total(_product()) == Decimal("100.00")

    def test_appointment_total(self):
        assert line_total(_appointment()) == Decimal("120.00")

    def test_with_price_product(self):
        assert with_price(_product(), Decimal("10.00")).unit_price == Decimal("10.00")

    def test_with_price_appointment(self):
        assert with_price(_appointment(), Decimal("99.00")).price == Decimal("99.00")


class TestAppointmentsLineName:
    def test_uses_pet_names(self):
        lines = [_appointment(pet_name="Rexi"), new_service_product("Bamba", None, 50)]
        assert appointments_line_name(lines) == "תספורת - Rexi, Bamba"

    def test_falls_back_to_count(self):
        assert appointments_line_name([_appointment(), _appointment(id="line-3")]) == "תספורת (2)"
