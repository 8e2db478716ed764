"""Hosted card page embedded in the checkout.

Opening the page performs a gateway handshake sized to the cart total and
builds the payload the embedded surface is loaded with. The surface reports
back through a success or error callback; nothing is charged until it does,
so an error or an operator cancel just drops the pending page.
"""

import json
from dataclasses import dataclass
from decimal import Decimal

import structlog

from checkout.channels.base import ChannelAdapter, ChannelContext, ChannelResult
from checkout.channels.recipients import normalize_phone
from checkout.config import CheckoutSettings
from checkout.directory.port import Directory
from checkout.errors import IntegrationError
from checkout.gateway.port import PaymentGateway
from checkout.payment.items import charge_items
from checkout.payment.methods import PaymentCategory, PaymentMethod

logger = structlog.get_logger(__name__)

CREDIT_TYPE_REGULAR = 1


@dataclass(frozen=True)
class HostedPageSession:
    cart_id: str
    token: str
    amount: Decimal
    payload: dict


class HostedPageChannel(ChannelAdapter):
    methods = (PaymentMethod.HOSTED_PAGE,)

    def __init__(self, gateway: PaymentGateway, directory: Directory, settings: CheckoutSettings) -> None:
        self.gateway = gateway
        self.directory = directory
        self.settings = settings

    def open(self, context: ChannelContext) -> HostedPageSession:
        self.ensure_not_paid(context)
        context.engine.commit_all()
        amount = self.payable_total(context)

        handshake = self.gateway.handshake(float(amount))
        if not handshake.success or not handshake.token:
            logger.warning("hosted_page_handshake_failed", cart_id=context.cart_id, error=handshake.error)
            raise IntegrationError(handshake.error or "Payment page could not be opened", provider="gateway")

        payload = self.build_payload(context, handshake.token, amount)
        logger.info("hosted_page_opened", cart_id=context.cart_id, amount=str(amount))
        return HostedPageSession(cart_id=context.cart_id, token=handshake.token, amount=amount, payload=payload)

    def build_payload(self, context: ChannelContext, token: str, amount: Decimal) -> dict:
        customer = self.directory.fetch_customer(context.customer_id) if context.customer_id else None
        items = charge_items(context.engine.products, context.engine.appointments)
        return {
            "thtk": token,
            "sum": float(amount),
            "currency": self.settings.currency_code,
            "cred_type": CREDIT_TYPE_REGULAR,
            "contact": customer.name if customer else "",
            "phone": normalize_phone(customer.phone) if customer else "",
            "email": customer.email if customer else "",
            "record_id": context.customer_id or "",
            "mymore": json.dumps(
                {
                    "cart_id": context.cart_id,
                    "customer_id": context.customer_id,
                    "category": PaymentCategory.CREDIT.value,
                }
            ),
            "json_purchase_data": json.dumps([item.to_dict() for item in items], ensure_ascii=False),
            "notify_url_address": self.settings.callback_url,
        }

    def succeed(
        self,
        context: ChannelContext,
        session: HostedPageSession,
        transaction_id: str | None = None,
    ) -> ChannelResult:
        finalized = context.finalizer.finalize(
            context.cart_id,
            PaymentMethod.HOSTED_PAGE,
            amount=session.amount,
            receipt_requested=context.receipt_requested,
            engine=context.engine,
            metadata={"transaction_id": transaction_id},
        )
        return ChannelResult(finalized=finalized, warning=finalized.warning)

    def fail(self, session: HostedPageSession, error: str | None) -> None:
        logger.warning("hosted_page_payment_failed", cart_id=session.cart_id, error=error)

    def cancel(self, session: HostedPageSession) -> None:
        logger.info("hosted_page_cancelled", cart_id=session.cart_id)
