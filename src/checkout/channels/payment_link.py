"""Shareable payment link.

The link points at the public payment page for the cart. Sending it leaves
a pending order that the page settles; the session polls for that.
"""

from urllib.parse import urlencode

import structlog

from checkout.channels.base import ChannelAdapter, ChannelContext, ChannelResult
from checkout.channels.recipients import RecipientSelection, deliver, resolve_recipients
from checkout.config import CheckoutSettings
from checkout.directory.port import Directory
from checkout.messaging.port import MessagingPort
from checkout.payment.methods import PaymentMethod

logger = structlog.get_logger(__name__)

PAYMENT_LINK_TEMPLATE = "payment_link"


def build_payment_link(base_url: str, cart_id: str, create_invoice: bool) -> str:
    query = urlencode({"cartId": cart_id, "shouldCreateInvoice": "true" if create_invoice else "false"})
    return f"{base_url.rstrip('/')}/payment?{query}"


class PaymentLinkChannel(ChannelAdapter):
    methods = (PaymentMethod.PAYMENT_PAGE,)

    def __init__(self, messenger: MessagingPort, directory: Directory, settings: CheckoutSettings) -> None:
        self.messenger = messenger
        self.directory = directory
        self.settings = settings

    def send(self, context: ChannelContext, selection: RecipientSelection) -> ChannelResult:
        recipients = resolve_recipients(selection, context.customer_id, self.directory)
        self.ensure_not_paid(context)
        context.engine.commit_all()
        amount = self.payable_total(context)

        link = build_payment_link(self.settings.payment_link_base_url, context.cart_id, context.receipt_requested)
        delivered = deliver(
            self.messenger,
            recipients,
            PAYMENT_LINK_TEMPLATE,
            {"cart_id": context.cart_id, "link": link, "amount": str(amount)},
        )
        logger.info("payment_link_sent", cart_id=context.cart_id, delivered=len(delivered))

        finalized = context.finalizer.finalize(
            context.cart_id,
            PaymentMethod.PAYMENT_PAGE,
            amount=amount,
            engine=context.engine,
            settle=False,
            metadata={"link": link, "recipients": list(delivered)},
        )
        return ChannelResult(finalized=finalized, awaiting_payment=True, delivered_to=delivered, link=link)
