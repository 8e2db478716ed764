"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Cart")
class CartCreated:
    """A new active cart was opened for a customer."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier()
    created_at = DateTime(required=True)


@checkout.event(part_of="Cart")
class CartCommitted:
    """One scope of the cart was replaced with the operator's working copy."""

    __version__ = 1

    cart_id = Identifier(required=True)
    scope = String(required=True, max_length=20)
    line_count = Integer(required=True)


@checkout.event(part_of="Cart")
class CartCompleted:
    """The cart was converted into an order and can no longer be edited."""

    __version__ = 1

    cart_id = Identifier(required=True)
    completed_at = DateTime(required=True)
