"""Shared pieces of the payment channel adapters."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from protean.exceptions import ValidationError

from checkout.cart.reconciliation import ReconciliationEngine
from checkout.cart.store import CartStore
from checkout.errors import CartAlreadyPaid
from checkout.order.finalizer import FinalizeResult, OrderFinalizer
from checkout.payment.methods import PaymentMethod


@dataclass
class ChannelContext:
    """Everything a channel needs about the cart being paid for."""

    cart_id: str
    customer_id: str | None
    engine: ReconciliationEngine
    store: CartStore
    finalizer: OrderFinalizer
    receipt_requested: bool = False


@dataclass(frozen=True)
class ChannelResult:
    finalized: FinalizeResult | None = None
    awaiting_payment: bool = False  # Completion arrives later (wallet app, link, callback)
    delivered_to: tuple[str, ...] = ()
    link: str | None = None
    warning: str | None = None

    @property
    def order_id(self) -> str | None:
        return str(self.finalized.order.id) if self.finalized else None


def parse_amount(value, field: str = "amount") -> Decimal:
    """Parse an operator-entered amount; it must be a positive number."""
    try:
        amount = Decimal(str(value).strip()) if value is not None else None
    except InvalidOperation:
        amount = None
    if amount is None or not amount.is_finite():
        raise ValidationError({field: ["Enter a valid amount"]})
    if amount <= 0:
        raise ValidationError({field: ["Amount must be greater than zero"]})
    return amount


class ChannelAdapter:
    """Base for one family of payment methods."""

    methods: tuple[PaymentMethod, ...] = ()

    def is_available(self, context: ChannelContext) -> bool:  # noqa: ARG002
        return True

    def ensure_not_paid(self, context: ChannelContext) -> None:
        paid = context.store.paid_order_for_cart(context.cart_id)
        if paid is not None:
            raise CartAlreadyPaid(context.cart_id, str(paid.id))

    def payable_total(self, context: ChannelContext) -> Decimal:
        total = context.engine.subtotal
        if total <= 0:
            raise ValidationError({"amount": ["Cart total must be greater than zero"]})
        return total
