"""Cart aggregate (CQRS) — the persisted checkout cart.

A cart owns two child collections: ``items`` (products, ad-hoc items and
service products stored under the reserved name prefix) and
``appointments`` (associations to scheduled appointments with the price
captured at checkout time). Scopes are always replaced wholesale; the
aggregate never patches individual rows.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from checkout.cart.events import CartCommitted, CartCompleted, CartCreated
from checkout.cart.lines import (
    AppointmentLine,
    ProductLine,
    Scope,
    ServiceProductLine,
    is_service_label,
)
from checkout.domain import checkout


class CartStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


@checkout.entity(part_of="Cart")
class CartItem:
    product_id = Identifier()  # Null for ad-hoc and service-product rows
    item_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)


@checkout.entity(part_of="Cart")
class CartAppointment:
    appointment_kind = String(max_length=20)
    appointment_id = Identifier()
    appointment_price = Float(required=True, min_value=0.0)


@checkout.aggregate
class Cart:
    customer_id = Identifier()
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    items = HasMany(CartItem)
    appointments = HasMany(CartAppointment)
    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()

    @invariant.post
    def completed_cart_must_have_completion_time(self):
        if self.status == CartStatus.COMPLETED.value and self.completed_at is None:
            raise ValidationError({"completed_at": ["A completed cart must record when it was completed"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None):
        now = datetime.now(UTC)
        cart = cls(
            customer_id=customer_id,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        cart.raise_(CartCreated(cart_id=str(cart.id), customer_id=customer_id, created_at=now))
        return cart

    @property
    def is_active(self) -> bool:
        return CartStatus(self.status) == CartStatus.ACTIVE

    def _assert_editable(self) -> None:
        if not self.is_active:
            raise ValidationError({"status": ["Only an active cart can be edited"]})

    # -------------------------------------------------------------------
    # Scope replacement
    # -------------------------------------------------------------------
    def replace_products(self, lines: list[ProductLine]) -> None:
        """Replace every product row, leaving service-product rows in place."""
        self._assert_editable()

        for item in [i for i in self.items if not is_service_label(i.item_name)]:
            self.remove_items(item)

        for line in lines:
            if line.quantity < 1:
                raise ValidationError({"quantity": [f"Line '{line.name}' must have a quantity of at least 1"]})
            self.add_items(
                CartItem(
                    product_id=line.product_id,
                    item_name=line.name,
                    quantity=line.quantity,
                    unit_price=float(line.unit_price),
                )
            )

        self._touch(Scope.PRODUCTS, len(lines))

    def replace_appointments(self, lines: list[AppointmentLine | ServiceProductLine]) -> None:
        """Replace every appointment association and every service-product row."""
        self._assert_editable()

        for association in list(self.appointments):
            self.remove_appointments(association)
        for item in [i for i in self.items if is_service_label(i.item_name)]:
            self.remove_items(item)

        for line in lines:
            match line:
                case AppointmentLine():
                    self.add_appointments(
                        CartAppointment(
                            appointment_kind=line.ref.kind.value,
                            appointment_id=line.ref.id,
                            appointment_price=float(line.price),
                        )
                    )
                case ServiceProductLine():
                    self.add_items(
                        CartItem(
                            product_id=None,
                            item_name=line.label,
                            quantity=1,
                            unit_price=float(line.price),
                        )
                    )

        self._touch(Scope.APPOINTMENTS, len(lines))

    def _touch(self, scope: Scope, line_count: int) -> None:
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCommitted(cart_id=str(self.id), scope=scope.value, line_count=line_count))

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def complete(self) -> None:
        """Mark the cart terminal. Happens exactly once, at finalization."""
        if not self.is_active:
            raise ValidationError({"status": ["Cart has already been completed"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = CartStatus.COMPLETED.value
            self.completed_at = now
            self.updated_at = now
        self.raise_(CartCompleted(cart_id=str(self.id), completed_at=now))
