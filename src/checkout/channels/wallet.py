"""Push-wallet requests (bit / paybox).

The request is delivered through the messaging integration and leaves a
pending order behind. The customer pays in their wallet app; staff then
either wait for the status to change or mark the amount as received, which
settles the pending order exactly like a cash payment.
"""

import structlog

from checkout.channels.base import ChannelAdapter, ChannelContext, ChannelResult
from checkout.channels.manual import ManualChannel
from checkout.channels.recipients import RecipientSelection, deliver, resolve_recipients
from checkout.directory.port import Directory
from checkout.messaging.port import MessagingPort
from checkout.payment.methods import PaymentMethod

logger = structlog.get_logger(__name__)

PAYMENT_REQUEST_TEMPLATE = "payment_request"


class WalletChannel(ChannelAdapter):
    methods = (PaymentMethod.BIT, PaymentMethod.PAYBOX)

    def __init__(self, messenger: MessagingPort, directory: Directory, manual: ManualChannel) -> None:
        self.messenger = messenger
        self.directory = directory
        self.manual = manual

    def request(
        self,
        context: ChannelContext,
        method: PaymentMethod,
        selection: RecipientSelection,
    ) -> ChannelResult:
        recipients = resolve_recipients(selection, context.customer_id, self.directory)
        self.ensure_not_paid(context)
        context.engine.commit_all()
        amount = self.payable_total(context)

        customer = self.directory.fetch_customer(context.customer_id) if context.customer_id else None
        delivered = deliver(
            self.messenger,
            recipients,
            PAYMENT_REQUEST_TEMPLATE,
            {
                "cart_id": context.cart_id,
                "gateway": method.value,
                "amount": str(amount),
                "customer_name": customer.name if customer else "",
            },
        )
        logger.info("wallet_request_sent", cart_id=context.cart_id, gateway=method.value, delivered=len(delivered))

        result = context.finalizer.finalize(
            context.cart_id,
            method,
            amount=amount,
            engine=context.engine,
            settle=False,
            metadata={"recipients": list(delivered)},
        )
        return ChannelResult(finalized=result, awaiting_payment=True, delivered_to=delivered)

    def mark_received(self, context: ChannelContext, method: PaymentMethod, received_amount) -> ChannelResult:
        """Staff saw the money arrive; settle through the cash path."""
        return self.manual.confirm(
            context,
            PaymentMethod.CASH,
            received_amount,
            metadata={"requested_via": method.value},
        )
