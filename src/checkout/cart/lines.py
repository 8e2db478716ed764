"""Working-copy line items.

The operator edits plain value rows, not aggregates. A line is one of three
shapes and every consumer matches on the shape explicitly:

- ``ProductLine`` — a catalogue product or an ad-hoc product (no product id)
- ``AppointmentLine`` — a scheduled grooming/daycare appointment
- ``ServiceProductLine`` — a service sold without a schedule entry

Service products are stored as ordinary cart items whose name carries the
reserved ``SERVICE_PRODUCT_PREFIX``; ``service_label``/``parse_service_label``
convert between the two shapes and must stay exact inverses.
"""

import re
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import uuid4

SERVICE_PRODUCT_PREFIX = "מספרה:"
DEFAULT_PET_NAME = "לקוח"
APPOINTMENTS_LINE_NAME = "תספורת"
UNNAMED_ITEM_NAME = "פריט ללא שם"
TEMP_ID_PREFIX = "temp_"

_SERVICE_LABEL_RE = re.compile(rf"^{SERVICE_PRODUCT_PREFIX}\s*(.+?)(?:\s*\((.+?)\))?$")

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce a float/int/str amount to a two-place Decimal."""
    if isinstance(value, Decimal):
        amount = value
    elif value is None or value == "":
        amount = Decimal("0")
    else:
        amount = Decimal(str(value))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def temporary_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid4().hex[:12]}"


def is_temporary_id(line_id: str) -> bool:
    return line_id.startswith(TEMP_ID_PREFIX)


class Scope(Enum):
    PRODUCTS = "products"
    APPOINTMENTS = "appointments"


class AppointmentKind(Enum):
    GROOMING = "grooming"
    DAYCARE = "daycare"


@dataclass(frozen=True)
class AppointmentRef:
    kind: AppointmentKind
    id: str


@dataclass(frozen=True)
class ProductLine:
    id: str
    name: str
    quantity: int
    unit_price: Decimal
    product_id: str | None = None

    @property
    def total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class AppointmentLine:
    id: str
    ref: AppointmentRef
    price: Decimal
    pet_name: str | None = None

    @property
    def total(self) -> Decimal:
        return self.price


@dataclass(frozen=True)
class ServiceProductLine:
    id: str
    pet_name: str
    breed: str
    price: Decimal
    label: str

    quantity = 1

    @property
    def total(self) -> Decimal:
        return self.price


LineItem = ProductLine | AppointmentLine | ServiceProductLine
AppointmentScopeLine = AppointmentLine | ServiceProductLine


def service_label(pet_name: str | None, breed: str | None) -> str:
    """Build the stored item name: ``"<prefix> <pet> (<breed>)"`` or ``"<prefix> <breed>"``."""
    pet_name = (pet_name or "").strip()
    breed = (breed or "").strip()
    if pet_name and breed:
        return f"{SERVICE_PRODUCT_PREFIX} {pet_name} ({breed})"
    return f"{SERVICE_PRODUCT_PREFIX} {pet_name or breed or DEFAULT_PET_NAME}"


def is_service_label(name: str | None) -> bool:
    return bool(name) and name.startswith(SERVICE_PRODUCT_PREFIX)


def parse_service_label(label: str) -> tuple[str, str]:
    """Return ``(pet_name, breed)`` from a stored service-product name."""
    match = _SERVICE_LABEL_RE.match(label or "")
    if match is None:
        return DEFAULT_PET_NAME, ""
    pet_name = (match.group(1) or "").strip() or DEFAULT_PET_NAME
    breed = (match.group(2) or "").strip()
    return pet_name, breed


def new_service_product(pet_name: str | None, breed: str | None, price) -> ServiceProductLine:
    return service_product_from_row(temporary_id(), service_label(pet_name, breed), price)


def service_product_from_row(row_id: str, label: str, unit_price) -> ServiceProductLine:
    """Rehydrate a stored cart item back into the appointment-shaped line."""
    pet_name, breed = parse_service_label(label)
    return ServiceProductLine(id=row_id, pet_name=pet_name, breed=breed, price=to_money(unit_price), label=label)


def line_total(line: LineItem) -> Decimal:
    match line:
        case ProductLine():
            return line.unit_price * line.quantity
        case AppointmentLine() | ServiceProductLine():
            return line.price


def lines_differ(left: LineItem, right: LineItem) -> bool:
    """Compare two lines with the same id on their editable fields."""
    match left, right:
        case ProductLine(), ProductLine():
            return (left.quantity, left.unit_price, left.name) != (right.quantity, right.unit_price, right.name)
        case AppointmentLine(), AppointmentLine():
            return (left.price, left.ref) != (right.price, right.ref)
        case ServiceProductLine(), ServiceProductLine():
            return (left.price, left.label) != (right.price, right.label)
        case _:
            return True


def with_price(line: LineItem, price: Decimal) -> LineItem:
    match line:
        case ProductLine():
            return replace(line, unit_price=price)
        case AppointmentLine() | ServiceProductLine():
            return replace(line, price=price)


def appointments_line_name(lines) -> str:
    """Combined provider-facing name for all appointment-scope lines."""
    names = [line.pet_name for line in lines if line.pet_name]
    if names:
        return f"{APPOINTMENTS_LINE_NAME} - {', '.join(names)}"
    return f"{APPOINTMENTS_LINE_NAME} ({len(lines)})"


def line_to_dict(line: LineItem) -> dict:
    """Plain-JSON form of a line, used when a line travels inside a command."""
    match line:
        case ProductLine():
            return {
                "type": "product",
                "id": line.id,
                "name": line.name,
                "quantity": line.quantity,
                "unit_price": str(line.unit_price),
                "product_id": line.product_id,
            }
        case AppointmentLine():
            return {
                "type": "appointment",
                "id": line.id,
                "kind": line.ref.kind.value,
                "appointment_id": line.ref.id,
                "price": str(line.price),
            }
        case ServiceProductLine():
            return {"type": "service_product", "id": line.id, "label": line.label, "price": str(line.price)}


def line_from_dict(data: dict) -> LineItem:
    match data["type"]:
        case "product":
            return ProductLine(
                id=data["id"],
                name=data["name"],
                quantity=int(data["quantity"]),
                unit_price=to_money(data["unit_price"]),
                product_id=data.get("product_id"),
            )
        case "appointment":
            return AppointmentLine(
                id=data["id"],
                ref=AppointmentRef(kind=AppointmentKind(data["kind"]), id=data["appointment_id"]),
                price=to_money(data["price"]),
            )
        case "service_product":
            return service_product_from_row(data["id"], data["label"], data["price"])
        case other:
            raise ValueError(f"Unknown line type: {other}")
