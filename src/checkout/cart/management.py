"""Cart management — commands and handler.

Handles cart creation, wholesale replacement of one scope with the
operator's working copy, and completion at finalization.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.cart.cart import Cart
from checkout.cart.lines import Scope, line_from_dict
from checkout.domain import checkout


@checkout.command(part_of="Cart")
class CreateCart:
    """Open a new active cart, optionally for a known customer."""

    customer_id = Identifier()


@checkout.command(part_of="Cart")
class ReplaceCartScope:
    """Replace every line of one scope with the given lines."""

    cart_id = Identifier(required=True)
    scope = String(required=True, choices=Scope)
    lines = Text(required=True)  # JSON: list of line dicts (see lines.line_to_dict)


@checkout.command(part_of="Cart")
class CompleteCart:
    """Mark a cart terminal once its order is placed."""

    cart_id = Identifier(required=True)


@checkout.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = Cart.create(customer_id=command.customer_id)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(ReplaceCartScope)
    def replace_scope(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)

        lines = [line_from_dict(data) for data in json.loads(command.lines)]
        if Scope(command.scope) == Scope.PRODUCTS:
            cart.replace_products(lines)
        else:
            cart.replace_appointments(lines)
        repo.add(cart)

    @handle(CompleteCart)
    def complete_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.complete()
        repo.add(cart)
