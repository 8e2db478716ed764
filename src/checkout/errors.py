"""Checkout error taxonomy.

Input validation uses ``protean.exceptions.ValidationError`` directly, as the
aggregates do. The classes here cover the failures that are not about a
single field: provider/integration failures, settlement conflicts and illegal
workflow transitions.
"""


class CheckoutError(Exception):
    """Base class for checkout failures surfaced to the operator."""


class IntegrationError(CheckoutError):
    """A gateway, messaging or store call failed.

    ``message`` is the provider's own text where one was returned.
    """

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider


class CartAlreadyPaid(CheckoutError):
    """The cart already has a paid order; no further settlement is allowed."""

    def __init__(self, cart_id: str, order_id: str) -> None:
        super().__init__(f"Cart {cart_id} is already paid (order {order_id})")
        self.cart_id = cart_id
        self.order_id = order_id


class WorkflowError(CheckoutError):
    """An action was attempted from a workflow step that does not allow it."""
