"""Itemized line lists sent to the gateway with charges and invoices."""

from decimal import Decimal

from checkout.cart.lines import (
    UNNAMED_ITEM_NAME,
    AppointmentScopeLine,
    ProductLine,
    appointments_line_name,
    to_money,
)
from checkout.gateway.port import ChargeItem

ADJUSTMENT_LINE_NAME = "התאמת סכום"
ADJUSTMENT_TOLERANCE = Decimal("0.01")


def charge_items(
    products: tuple[ProductLine, ...] | list[ProductLine],
    appointments: tuple[AppointmentScopeLine, ...] | list[AppointmentScopeLine],
    amount=None,
) -> list[ChargeItem]:
    """Product lines one by one, appointments folded into a single line.

    When ``amount`` is given and differs from the itemized total, an
    adjustment line carrying the difference is appended so the items add
    up to what is actually charged.
    """
    items = [
        ChargeItem(
            name=line.name or UNNAMED_ITEM_NAME,
            unit_price=float(line.unit_price),
            units_number=line.quantity,
        )
        for line in products
    ]

    if appointments:
        appointments_total = sum((line.price for line in appointments), Decimal("0"))
        items.append(
            ChargeItem(
                name=appointments_line_name(appointments),
                unit_price=float(to_money(appointments_total)),
                units_number=1,
            )
        )

    if amount is not None:
        itemized = sum((Decimal(str(item.unit_price)) * item.units_number for item in items), Decimal("0"))
        difference = to_money(amount) - to_money(itemized)
        if abs(difference) > ADJUSTMENT_TOLERANCE:
            items.append(ChargeItem(name=ADJUSTMENT_LINE_NAME, unit_price=float(difference), units_number=1))

    return items

