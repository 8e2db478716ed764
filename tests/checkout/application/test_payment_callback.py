"""Tests for the gateway payment-received callback command."""

import json

import pytest
from checkout.cart.lines import Scope
from checkout.cart.reconciliation import ReconciliationEngine
from checkout.order.finalizer import OrderFinalizer
from checkout.payment.callback import CallbackRejected, ProcessPaymentCallback
from checkout.payment.methods import PaymentMethod
from checkout.payment.payment import Payment, PaymentStatus
from protean import current_domain


@pytest.fixture()
def cart_id(store, directory):
    cart = store.create_cart("cust-001")
    engine = ReconciliationEngine(store, str(cart.id), directory=directory)
    engine.load()
    engine.add_product("Shampoo", 50, quantity=2)
    engine.commit(Scope.PRODUCTS)
    return str(cart.id)


def _form(cart_id=None, **overrides):
    form = {"Response": "000123", "Sum": "100", "record_id": "cust-001"}
    if cart_id:
        form["mymore"] = json.dumps({"cart_id": cart_id})
    form.update(overrides)
    return form


def _process(form):
    return current_domain.process(ProcessPaymentCallback.from_form(form), asynchronous=False)


class TestFromForm:
    def test_reads_cart_from_mymore(self):
        command = ProcessPaymentCallback.from_form(_form("cart-1"))
        assert command.cart_id == "cart-1"
        assert command.transaction_id == "000123"
        assert command.customer_id == "cust-001"

    def test_confirmation_code_fallback(self):
        command = ProcessPaymentCallback.from_form({"ConfirmationCode": "abc"})
        assert command.transaction_id == "abc"

    def test_bad_mymore_is_ignored(self):
        assert ProcessPaymentCallback.from_form({"Response": "1", "mymore": "{oops"}).cart_id is None


class TestProcessPaymentCallback:
    @pytest.mark.parametrize("response", ["", "ERR"])
    def test_invalid_transaction(self, response):
        with pytest.raises(CallbackRejected):
            _process({"Response": response})

    def test_missing_customer(self):
        with pytest.raises(CallbackRejected):
            _process({"Response": "000123"})

    def test_settles_cart(self, cart_id, store):
        outcome = _process(_form(cart_id))

        assert outcome.status == "paid"
        order = store.paid_order_for_cart(cart_id)
        assert str(order.id) == outcome.order_id
        assert order.total == 100.0
        assert not store.get_cart(cart_id).is_active

    def test_records_paid_payment_with_transaction(self, cart_id):
        outcome = _process(_form(cart_id))

        payments = current_domain.repository_for(Payment)._dao.query.filter(order_id=outcome.order_id).all().items
        assert len(payments) == 1
        assert payments[0].status == PaymentStatus.PAID.value
        assert payments[0].metadata_dict["transaction_id"] == "000123"

    def test_customer_taken_from_cart(self, cart_id, store):
        form = _form(cart_id)
        del form["record_id"]

        assert _process(form).status == "paid"
        assert store.paid_order_for_cart(cart_id).customer_id == "cust-001"

    def test_settles_pending_link_order(self, cart_id, store, gateway, directory):
        pending = OrderFinalizer(store, gateway, directory).finalize(cart_id, PaymentMethod.PAYMENT_PAGE)

        outcome = _process(_form(cart_id))

        assert outcome.order_id == str(pending.order.id)
        assert len(store.orders_for_cart(cart_id)) == 1
        assert store.paid_order_for_cart(cart_id) is not None

    def test_duplicate_callback_is_acknowledged(self, cart_id):
        first = _process(_form(cart_id))
        second = _process(_form(cart_id))

        assert second.status == "already_paid"
        assert second.order_id == first.order_id

    def test_without_cart(self):
        assert _process(_form()).status == "no_cart"
