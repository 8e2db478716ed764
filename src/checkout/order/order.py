"""Order aggregate (CQRS) — the immutable result of a checkout.

An order carries by-value snapshots of the cart's product rows and
appointment associations taken at finalize time. Later edits to the cart
or to an appointment record never reach these snapshots.

State Machine:
    PENDING → PAID
    PAID is terminal
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from checkout.domain import checkout
from checkout.order.events import OrderPaid, OrderPlaced

# Upstream writers (gateway callbacks, legacy back-office screens) do not
# agree on one spelling for a settled order.
PAID_STATUS_EXACT = frozenset({"completed", "paid"})
PAID_STATUS_FRAGMENTS = ("שולם", "הושלם")


def is_paid_status(status: str | None) -> bool:
    """Tolerant check for the heterogeneous "paid" vocabulary."""
    normalized = (status or "").strip().lower()
    if not normalized:
        return False
    return normalized in PAID_STATUS_EXACT or any(fragment in normalized for fragment in PAID_STATUS_FRAGMENTS)


class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"


@checkout.entity(part_of="Order")
class OrderItem:
    product_id = Identifier()
    item_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)


@checkout.entity(part_of="Order")
class OrderAppointment:
    appointment_kind = String(max_length=20)
    appointment_id = Identifier()
    appointment_price = Float(required=True, min_value=0.0)


@checkout.aggregate
class Order:
    cart_id = Identifier(required=True)
    customer_id = Identifier()
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    subtotal = Float(default=0.0)
    total = Float(default=0.0)
    items = HasMany(OrderItem)
    appointments = HasMany(OrderAppointment)
    created_at = DateTime()
    paid_at = DateTime()

    @classmethod
    def place(
        cls,
        cart,
        subtotal: float,
        total: float,
        paid: bool,
    ):
        """Snapshot ``cart`` into a new order."""
        now = datetime.now(UTC)
        order = cls(
            cart_id=str(cart.id),
            customer_id=cart.customer_id,
            status=OrderStatus.PAID.value if paid else OrderStatus.PENDING.value,
            subtotal=subtotal,
            total=total,
            created_at=now,
            paid_at=now if paid else None,
        )
        for item in cart.items:
            order.add_items(
                OrderItem(
                    product_id=item.product_id,
                    item_name=item.item_name or "",
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )
            )
        for association in cart.appointments:
            order.add_appointments(
                OrderAppointment(
                    appointment_kind=association.appointment_kind,
                    appointment_id=association.appointment_id,
                    appointment_price=association.appointment_price,
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                cart_id=str(cart.id),
                customer_id=cart.customer_id,
                status=order.status,
                subtotal=subtotal,
                total=total,
                placed_at=now,
            )
        )
        if paid:
            order.raise_(OrderPaid(order_id=str(order.id), cart_id=str(cart.id), total=total, paid_at=now))
        return order

    @property
    def is_paid(self) -> bool:
        return is_paid_status(self.status)

    def mark_paid(self, total: float | None = None) -> None:
        """Settle a pending order. ``total`` overrides the amount actually received."""
        if self.is_paid:
            raise ValidationError({"status": ["Order has already been paid"]})

        now = datetime.now(UTC)
        if total is not None:
            self.total = total
        self.status = OrderStatus.PAID.value
        self.paid_at = now
        self.raise_(OrderPaid(order_id=str(self.id), cart_id=str(self.cart_id), total=self.total, paid_at=now))
