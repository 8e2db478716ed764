"""Cart Store Adapter — the persistence contract checkout relies on.

Thin CRUD layer over the checkout repositories. Everything the workflow
reads or writes about carts, orders and payments goes through here so
the reconciliation and finalization logic never touches a DAO directly.
"""

import json
from dataclasses import dataclass

from protean.utils.globals import current_domain

from checkout.cart.cart import Cart, CartStatus
from checkout.cart.lines import (
    AppointmentKind,
    AppointmentLine,
    AppointmentRef,
    AppointmentScopeLine,
    ProductLine,
    Scope,
    is_service_label,
    line_to_dict,
    service_product_from_row,
    to_money,
)
from checkout.cart.management import CompleteCart, CreateCart, ReplaceCartScope
from checkout.domain import logger
from checkout.order.order import Order, OrderStatus


@dataclass(frozen=True)
class CartLines:
    products: tuple[ProductLine, ...]
    appointments: tuple[AppointmentScopeLine, ...]

    def for_scope(self, scope: Scope) -> tuple:
        return self.products if scope == Scope.PRODUCTS else self.appointments


@dataclass(frozen=True)
class OrderStatusView:
    order_id: str
    status: str


class CartStore:
    def _carts(self):
        return current_domain.repository_for(Cart)

    def _orders(self):
        return current_domain.repository_for(Order)

    # -------------------------------------------------------------------
    # Carts
    # -------------------------------------------------------------------
    def get_cart(self, cart_id: str) -> Cart:
        return self._carts().get(cart_id)

    def carts_for_customer(self, customer_id: str) -> list[Cart]:
        return self._carts()._dao.query.filter(customer_id=customer_id).all().items

    def find_active_cart(self, customer_id: str) -> Cart | None:
        active = [c for c in self.carts_for_customer(customer_id) if c.status == CartStatus.ACTIVE.value]
        if not active:
            return None
        return max(active, key=lambda c: c.updated_at or c.created_at)

    def find_cart_with_appointment(self, customer_id: str | None, ref: AppointmentRef) -> Cart | None:
        """Most relevant cart associated with an appointment: active first, then any."""
        if customer_id is None:
            return None
        matching = [
            cart
            for cart in self.carts_for_customer(customer_id)
            if any(
                str(a.appointment_id) == ref.id and a.appointment_kind == ref.kind.value for a in cart.appointments
            )
        ]
        if not matching:
            return None
        active = [c for c in matching if c.status == CartStatus.ACTIVE.value]
        return (active or matching)[0]

    def create_cart(self, customer_id: str | None = None) -> Cart:
        cart_id = current_domain.process(CreateCart(customer_id=customer_id), asynchronous=False)
        logger.info("cart_created", cart_id=cart_id, customer_id=customer_id)
        return self.get_cart(cart_id)

    def ensure_cart(self, customer_id: str | None, cart_id: str | None = None) -> Cart:
        """Return the requested or active cart, creating one when there is none."""
        if cart_id is not None:
            return self.get_cart(cart_id)
        if customer_id is not None:
            existing = self.find_active_cart(customer_id)
            if existing is not None:
                return existing
        return self.create_cart(customer_id)

    def load_lines(self, cart_id: str) -> CartLines:
        cart = self.get_cart(cart_id)
        return self._lines_of(cart)

    @staticmethod
    def _lines_of(cart: Cart) -> CartLines:
        products: list[ProductLine] = []
        appointments: list[AppointmentScopeLine] = []

        for item in cart.items:
            if is_service_label(item.item_name):
                appointments.append(service_product_from_row(str(item.id), item.item_name, item.unit_price))
            else:
                products.append(
                    ProductLine(
                        id=str(item.id),
                        name=item.item_name,
                        quantity=item.quantity,
                        unit_price=to_money(item.unit_price),
                        product_id=str(item.product_id) if item.product_id else None,
                    )
                )

        for association in cart.appointments:
            if not association.appointment_id or not association.appointment_kind:
                continue
            appointments.append(
                AppointmentLine(
                    id=str(association.id),
                    ref=AppointmentRef(
                        kind=AppointmentKind(association.appointment_kind),
                        id=str(association.appointment_id),
                    ),
                    price=to_money(association.appointment_price),
                )
            )

        return CartLines(products=tuple(products), appointments=tuple(appointments))

    def replace_products(self, cart_id: str, lines: list[ProductLine]) -> CartLines:
        return self._replace_scope(cart_id, Scope.PRODUCTS, lines)

    def replace_appointments(self, cart_id: str, lines: list[AppointmentScopeLine]) -> CartLines:
        return self._replace_scope(cart_id, Scope.APPOINTMENTS, lines)

    def _replace_scope(self, cart_id: str, scope: Scope, lines) -> CartLines:
        command = ReplaceCartScope(
            cart_id=cart_id,
            scope=scope.value,
            lines=json.dumps([line_to_dict(line) for line in lines]),
        )
        current_domain.process(command, asynchronous=False)
        return self.load_lines(cart_id)

    def complete_cart(self, cart_id: str) -> Cart:
        current_domain.process(CompleteCart(cart_id=cart_id), asynchronous=False)
        return self.get_cart(cart_id)

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    def orders_for_cart(self, cart_id: str) -> list[Order]:
        return self._orders()._dao.query.filter(cart_id=cart_id).all().items

    def paid_order_for_cart(self, cart_id: str) -> Order | None:
        return next((o for o in self.orders_for_cart(cart_id) if o.is_paid), None)

    def pending_order_for_cart(self, cart_id: str) -> Order | None:
        return next(
            (o for o in self.orders_for_cart(cart_id) if o.status == OrderStatus.PENDING.value),
            None,
        )

    def find_order_for_cart(self, cart_id: str) -> Order | None:
        """The cart's order, preferring a settled one."""
        return self.paid_order_for_cart(cart_id) or self.pending_order_for_cart(cart_id)

    def order_status(self, cart_id: str) -> OrderStatusView | None:
        order = self.find_order_for_cart(cart_id)
        if order is None:
            return None
        return OrderStatusView(order_id=str(order.id), status=order.status)
