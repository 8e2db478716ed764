"""Shared BDD fixtures and step definitions for the checkout workflow."""

from decimal import Decimal

import pytest
from checkout.cart.lines import AppointmentKind
from checkout.payment.methods import PaymentCategory, PaymentMethod
from checkout.workflow.session import CheckoutSession
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def outcome():
    """Container for the result of the last operator action."""
    return {"result": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a checkout is opened for customer "{customer_id}"'), target_fixture="session")
def opened_session(customer_id, store, gateway, messenger, directory, settings):
    session = CheckoutSession(customer_id, store=store)
    assert session.open().ok
    return session


@given(parsers.cfparse('the cart holds {quantity:d} of "{name}" at {price:d}'))
def cart_holds_product(session, quantity, name, price):
    assert session.edit(lambda engine: engine.add_product(name, price, quantity=quantity)).ok


@given(parsers.cfparse('the cart holds grooming appointment "{appointment_id}"'))
def cart_holds_appointment(session, directory, appointment_id):
    record = directory.fetch_appointment(AppointmentKind.GROOMING, appointment_id)
    assert session.edit(lambda engine: engine.add_appointment(record)).ok


@given(parsers.cfparse('the operator pays by "{method}" with amount "{amount}"'))
@when(parsers.cfparse('the operator pays by "{method}" with amount "{amount}"'))
def pays_manually(session, outcome, method, amount):
    assert session.continue_from_review().ok
    assert session.choose_category(PaymentCategory.BANK_TRANSFER).ok
    assert session.choose_method(PaymentMethod(method)).ok
    outcome["result"] = session.confirm_manual_payment(amount)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart subtotal is {amount:d}"))
def cart_subtotal(session, amount):
    assert session.subtotal == Decimal(amount)


@then("the checkout succeeds")
def checkout_succeeds(outcome):
    assert outcome["result"].ok, outcome["result"].error
    assert outcome["result"].order_id is not None


@then("the cart has no paid order")
def no_paid_order(session, store):
    assert store.paid_order_for_cart(session.cart_id) is None
