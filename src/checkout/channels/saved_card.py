"""Charge a card token stored for the customer."""

import structlog
from protean.exceptions import ValidationError

from checkout.channels.base import ChannelAdapter, ChannelContext, ChannelResult, parse_amount
from checkout.directory.port import Directory
from checkout.errors import IntegrationError
from checkout.gateway.port import PaymentGateway
from checkout.payment.items import charge_items
from checkout.payment.methods import PaymentMethod

logger = structlog.get_logger(__name__)


class SavedCardChannel(ChannelAdapter):
    methods = (PaymentMethod.SAVED_CARD,)

    def __init__(self, gateway: PaymentGateway, directory: Directory) -> None:
        self.gateway = gateway
        self.directory = directory

    def is_available(self, context: ChannelContext) -> bool:
        if context.customer_id is None:
            return False
        return self.directory.find_saved_card(context.customer_id) is not None

    def charge(self, context: ChannelContext, amount=None) -> ChannelResult:
        """Charge ``amount`` (the cart total when omitted) and finalize on success."""
        card = self.directory.find_saved_card(context.customer_id) if context.customer_id else None
        if card is None:
            raise ValidationError({"saved_card": ["No saved card on file for this customer"]})

        self.ensure_not_paid(context)
        context.engine.commit_all()
        charged = parse_amount(amount) if amount is not None else self.payable_total(context)

        items = charge_items(context.engine.products, context.engine.appointments, amount=charged)
        result = self.gateway.charge(card.token, card.cvv, float(charged), items)
        if not result.success:
            logger.warning("saved_card_charge_failed", cart_id=context.cart_id, error=result.error)
            raise IntegrationError(result.error or "Charge failed", provider="gateway")

        logger.info("saved_card_charged", cart_id=context.cart_id, transaction_id=result.transaction_id)
        finalized = context.finalizer.finalize(
            context.cart_id,
            PaymentMethod.SAVED_CARD,
            amount=charged,
            receipt_requested=context.receipt_requested,
            engine=context.engine,
            metadata={"transaction_id": result.transaction_id, "card_last4": card.last4},
        )
        return ChannelResult(finalized=finalized, warning=finalized.warning)
