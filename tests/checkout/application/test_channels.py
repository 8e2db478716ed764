"""Tests for the payment channel adapters."""

import json

import pytest
from checkout.cart.lines import AppointmentKind, AppointmentRef
from checkout.cart.reconciliation import ReconciliationEngine
from checkout.channels import build_channels
from checkout.channels.base import ChannelContext
from checkout.channels.payment_link import build_payment_link
from checkout.channels.recipients import CustomRecipient, RecipientSelection, resolve_recipients
from checkout.directory.port import SavedCard
from checkout.errors import CartAlreadyPaid, IntegrationError
from checkout.order.finalizer import OrderFinalizer
from checkout.order.order import OrderStatus
from checkout.payment.methods import PaymentMethod
from protean.exceptions import ValidationError

REF = AppointmentRef(kind=AppointmentKind.GROOMING, id="appt-001")


@pytest.fixture()
def channels(gateway, messenger, directory, settings):
    return build_channels(gateway, messenger, directory, settings)


@pytest.fixture()
def context(store, gateway, directory):
    cart = store.create_cart("cust-001")
    engine = ReconciliationEngine(store, str(cart.id), directory=directory)
    engine.load()
    engine.add_product("Shampoo", 50, quantity=2)
    engine.add_appointment(directory.fetch_appointment(REF.kind, REF.id))
    return ChannelContext(
        cart_id=str(cart.id),
        customer_id="cust-001",
        engine=engine,
        store=store,
        finalizer=OrderFinalizer(store, gateway, directory),
    )


class TestRecipients:
    def test_empty_selection(self, directory):
        with pytest.raises(ValidationError):
            resolve_recipients(RecipientSelection(), "cust-001", directory)

    def test_owner_phone_is_normalized(self, directory):
        (recipient,) = resolve_recipients(RecipientSelection(include_owner=True), "cust-001", directory)
        assert recipient.phone == "0501234567"
        assert recipient.name == "Dana Levi"

    def test_contacts_are_scoped_to_customer(self, directory):
        with pytest.raises(ValidationError):
            resolve_recipients(RecipientSelection(contact_ids=("contact-1",)), "cust-999", directory)

    def test_incomplete_custom_recipient(self, directory):
        selection = RecipientSelection(custom=(CustomRecipient(phone="0521111111"),))
        with pytest.raises(ValidationError):
            resolve_recipients(selection, "cust-001", directory)

    def test_blank_custom_rows_are_ignored(self, directory):
        selection = RecipientSelection(include_owner=True, custom=(CustomRecipient(),))
        assert len(resolve_recipients(selection, "cust-001", directory)) == 1

    def test_duplicate_phones_collapse(self, directory):
        selection = RecipientSelection(
            include_owner=True,
            contact_ids=("contact-1",),
            custom=(CustomRecipient(phone="050 123 4567", name="Dana again"),),
        )
        phones = [r.phone for r in resolve_recipients(selection, "cust-001", directory)]
        assert phones == ["0501234567", "0527654321"]


class TestManual:
    def test_requires_positive_amount(self, channels, context):
        with pytest.raises(ValidationError):
            channels.manual.confirm(context, PaymentMethod.CASH, "0")

    def test_rejects_garbage_amount(self, channels, context):
        with pytest.raises(ValidationError):
            channels.manual.confirm(context, PaymentMethod.CASH, "abc")

    def test_rejects_non_manual_method(self, channels, context):
        with pytest.raises(ValidationError):
            channels.manual.confirm(context, PaymentMethod.BIT, "220")

    def test_confirm_finalizes_paid(self, channels, context):
        result = channels.manual.confirm(context, PaymentMethod.BANK_TRANSFER, "220")
        assert result.finalized.order.is_paid
        assert result.finalized.payment.amount == 220.0


class TestWallet:
    def test_request_sends_message_and_leaves_pending_order(self, channels, context, messenger):
        result = channels.wallet.request(context, PaymentMethod.BIT, RecipientSelection(include_owner=True))

        assert result.awaiting_payment
        assert result.finalized.order.status == OrderStatus.PENDING.value
        (message,) = messenger.sent_messages
        assert message["template_id"] == "payment_request"
        assert message["fields"]["gateway"] == "bit"
        assert message["fields"]["amount"] == "220.00"

    def test_validation_happens_before_sending(self, channels, context, messenger):
        with pytest.raises(ValidationError):
            channels.wallet.request(context, PaymentMethod.BIT, RecipientSelection())
        assert messenger.sent_messages == []

    def test_delivery_failure(self, channels, context, messenger, store):
        messenger.configure(should_succeed=False, failure_reason="Flow not found")
        with pytest.raises(IntegrationError, match="Flow not found"):
            channels.wallet.request(context, PaymentMethod.PAYBOX, RecipientSelection(include_owner=True))
        assert store.find_order_for_cart(context.cart_id) is None

    def test_mark_received_settles_pending_order(self, channels, context):
        requested = channels.wallet.request(context, PaymentMethod.BIT, RecipientSelection(include_owner=True))
        received = channels.wallet.mark_received(context, PaymentMethod.BIT, "220")

        assert received.finalized.order.id == requested.finalized.order.id
        assert received.finalized.order.is_paid
        assert received.finalized.payment.metadata_dict["requested_via"] == "bit"

    def test_mark_received_requires_amount(self, channels, context):
        with pytest.raises(ValidationError):
            channels.wallet.mark_received(context, PaymentMethod.BIT, "")


class TestHostedPage:
    def test_open_builds_payload(self, channels, context, gateway, settings):
        session = channels.hosted_page.open(context)

        assert gateway.calls_to("handshake")[0]["amount"] == 220.0
        payload = session.payload
        assert payload["thtk"] == session.token
        assert payload["sum"] == 220.0
        assert payload["currency"] == 1
        assert payload["phone"] == "0501234567"
        assert payload["email"] == "dana@example.com"
        assert payload["record_id"] == "cust-001"
        assert json.loads(payload["mymore"])["cart_id"] == context.cart_id
        assert payload["notify_url_address"] == settings.callback_url
        purchase = json.loads(payload["json_purchase_data"])
        assert [item["name"] for item in purchase] == ["Shampoo", "תספורת - Rexi"]

    def test_handshake_failure(self, channels, context, gateway):
        gateway.configure(handshake_succeeds=False, failure_reason="Terminal locked")
        with pytest.raises(IntegrationError, match="Terminal locked"):
            channels.hosted_page.open(context)

    def test_success_finalizes(self, channels, context):
        session = channels.hosted_page.open(context)
        result = channels.hosted_page.succeed(context, session, transaction_id="txn-9")
        assert result.finalized.order.is_paid
        assert result.finalized.payment.metadata_dict["transaction_id"] == "txn-9"

    def test_open_on_paid_cart_is_blocked(self, channels, context):
        channels.manual.confirm(context, PaymentMethod.CASH, "220")
        with pytest.raises(CartAlreadyPaid):
            channels.hosted_page.open(context)


class TestSavedCard:
    def test_unavailable_without_card(self, channels, context):
        assert not channels.saved_card.is_available(context)
        with pytest.raises(ValidationError):
            channels.saved_card.charge(context)

    def test_charge_uses_total_by_default(self, channels, context, directory, gateway):
        directory.add_saved_card(SavedCard(customer_id="cust-001", token="tok-1", cvv="123", last4="4242"))
        assert channels.saved_card.is_available(context)

        result = channels.saved_card.charge(context)

        call = gateway.calls_to("charge")[0]
        assert call["token"] == "tok-1"
        assert call["amount"] == 220.0
        assert result.finalized.order.is_paid
        assert result.finalized.payment.metadata_dict["card_last4"] == "4242"

    def test_explicit_amount_adds_adjustment_line(self, channels, context, directory, gateway):
        directory.add_saved_card(SavedCard(customer_id="cust-001", token="tok-1"))
        channels.saved_card.charge(context, amount="250")
        items = gateway.calls_to("charge")[0]["items"]
        assert items[-1] == {"name": "התאמת סכום", "type": "I", "unit_price": 30.0, "units_number": 1}

    def test_decline_surfaces_provider_message(self, channels, context, directory, gateway, store):
        directory.add_saved_card(SavedCard(customer_id="cust-001", token="tok-1"))
        gateway.configure(charge_succeeds=False, failure_reason="Insufficient funds (051)")

        with pytest.raises(IntegrationError) as exc_info:
            channels.saved_card.charge(context)

        assert exc_info.value.message == "Insufficient funds (051)"
        assert store.find_order_for_cart(context.cart_id) is None


class TestPaymentLink:
    def test_link_format(self):
        link = build_payment_link("https://pay.example.com/", "cart-1", True)
        assert link == "https://pay.example.com/payment?cartId=cart-1&shouldCreateInvoice=true"

    def test_send(self, channels, context, messenger):
        result = channels.payment_link.send(context, RecipientSelection(contact_ids=("contact-1",)))

        assert result.awaiting_payment
        assert result.link == f"https://pay.example.com/payment?cartId={context.cart_id}&shouldCreateInvoice=false"
        (message,) = messenger.sent_messages
        assert message["template_id"] == "payment_link"
        assert message["phone"] == "0527654321"
        assert message["fields"]["link"] == result.link

    def test_partial_delivery_is_enough(self, channels, context, messenger):
        messenger.configure(failing_phones={"0501234567"})
        result = channels.payment_link.send(
            context, RecipientSelection(include_owner=True, contact_ids=("contact-1",))
        )
        assert result.delivered_to == ("0527654321",)
