"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """A cart was snapshotted into an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    customer_id = Identifier()
    status = String(required=True, max_length=20)
    subtotal = Float(required=True)
    total = Float(required=True)
    placed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaid:
    """An order was settled."""

    __version__ = 1

    order_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    total = Float(required=True)
    paid_at = DateTime(required=True)
