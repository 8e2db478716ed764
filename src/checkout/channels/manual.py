"""Bank transfer and cash — the operator types in what was received."""

from protean.exceptions import ValidationError

from checkout.channels.base import ChannelAdapter, ChannelContext, ChannelResult, parse_amount
from checkout.payment.methods import PaymentMethod


class ManualChannel(ChannelAdapter):
    methods = tuple(method for method in PaymentMethod if method.takes_manual_amount)

    def confirm(
        self,
        context: ChannelContext,
        method: PaymentMethod,
        received_amount,
        metadata: dict | None = None,
    ) -> ChannelResult:
        """Finalize as paid with the received amount. No external call is made."""
        if not method.takes_manual_amount:
            raise ValidationError({"method": [f"{method.value} does not take a received amount"]})
        amount = parse_amount(received_amount, field="received_amount")
        result = context.finalizer.finalize(
            context.cart_id,
            method,
            amount=amount,
            receipt_requested=context.receipt_requested,
            engine=context.engine,
            metadata=metadata,
        )
        return ChannelResult(finalized=result, warning=result.warning)
