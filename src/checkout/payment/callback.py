"""Gateway "payment received" callback — command and handler.

The hosted page notifies this endpoint after a successful charge. The form
carries the transaction id (``Response`` or ``ConfirmationCode``), the
amount charged (``Sum``), the customer id (``record_id``) and a JSON blob
(``mymore``) with the cart id that was sent along when the page was opened.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import Identifier, String

from checkout.cart.lines import to_money
from checkout.cart.store import CartStore
from checkout.domain import checkout
from checkout.errors import CartAlreadyPaid, CheckoutError
from checkout.order.finalizer import OrderFinalizer
from checkout.order.order import Order
from checkout.payment.methods import PaymentCategory, PaymentMethod

logger = structlog.get_logger(__name__)

FAILED_TRANSACTION = "ERR"


class CallbackRejected(CheckoutError):
    """The callback cannot be acted on."""


@checkout.command(part_of="Order")
class ProcessPaymentCallback:
    """Settle a cart from the gateway's payment-received notification."""

    transaction_id = String(max_length=255)
    amount = String(max_length=50)
    customer_id = Identifier()
    cart_id = Identifier()

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> "ProcessPaymentCallback":
        extra: dict = {}
        if form.get("mymore"):
            try:
                extra = json.loads(form["mymore"])
            except ValueError:
                logger.warning("payment_callback_bad_mymore", mymore=form["mymore"])

        return cls(
            transaction_id=form.get("Response") or form.get("ConfirmationCode") or None,
            amount=form.get("Sum") or None,
            customer_id=form.get("record_id") or extra.get("customer_id") or None,
            cart_id=extra.get("cart_id") or None,
        )


@dataclass(frozen=True)
class CallbackOutcome:
    status: str
    order_id: str | None = None


@checkout.command_handler(part_of=Order)
class PaymentCallbackHandler:
    @handle(ProcessPaymentCallback)
    def process_callback(self, command):
        if not command.transaction_id or command.transaction_id == FAILED_TRANSACTION:
            raise CallbackRejected("Invalid transaction ID")

        store = CartStore()
        cart_id = str(command.cart_id) if command.cart_id else None
        customer_id = command.customer_id
        if customer_id is None and cart_id:
            customer_id = store.get_cart(cart_id).customer_id
        if customer_id is None:
            raise CallbackRejected("Missing customer information")

        if not cart_id:
            logger.warning("payment_callback_without_cart", customer_id=customer_id, transaction_id=command.transaction_id)
            return CallbackOutcome(status="no_cart")

        try:
            result = OrderFinalizer(store).finalize(
                cart_id,
                PaymentMethod.CALLBACK,
                amount=to_money(command.amount) if command.amount else None,
                category=PaymentCategory.CREDIT,
                metadata={"transaction_id": command.transaction_id},
            )
        except CartAlreadyPaid as exc:
            logger.info("payment_callback_duplicate", cart_id=cart_id, order_id=exc.order_id)
            return CallbackOutcome(status="already_paid", order_id=exc.order_id)

        logger.info("payment_callback_settled", cart_id=cart_id, order_id=str(result.order.id))
        return CallbackOutcome(status="paid", order_id=str(result.order.id))
