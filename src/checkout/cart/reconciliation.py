"""Reconciliation engine — working copy vs. last-synced copy of a cart.

The operator edits ``working``; ``original`` is what was last loaded from or
flushed to the store. Each scope (products, appointments) tracks dirtiness
independently and is committed by replacing the stored rows wholesale, then
reloading so both copies carry the persisted ids.
"""

from decimal import Decimal
from enum import Enum

import structlog
from protean.exceptions import ValidationError

from checkout.cart.lines import (
    AppointmentLine,
    AppointmentRef,
    LineItem,
    ProductLine,
    Scope,
    ServiceProductLine,
    lines_differ,
    new_service_product,
    temporary_id,
    to_money,
    with_price,
)
from checkout.cart.store import CartLines, CartStore
from checkout.directory.port import AppointmentRecord, Directory
from checkout.errors import IntegrationError

logger = structlog.get_logger(__name__)


class TemporaryKind(Enum):
    PRODUCT = "product"
    SERVICE_PRODUCT = "service_product"


def _scope_of(line: LineItem) -> Scope:
    match line:
        case ProductLine():
            return Scope.PRODUCTS
        case AppointmentLine() | ServiceProductLine():
            return Scope.APPOINTMENTS


class ReconciliationEngine:
    def __init__(
        self,
        store: CartStore,
        cart_id: str,
        directory: Directory | None = None,
        single_appointment: AppointmentRef | None = None,
    ) -> None:
        self.store = store
        self.cart_id = cart_id
        self.directory = directory
        # Set when checkout was opened for exactly one appointment; its price
        # edits are written back to the appointment record as well.
        self.single_appointment = single_appointment
        self._original: dict[Scope, tuple[LineItem, ...]] = {Scope.PRODUCTS: (), Scope.APPOINTMENTS: ()}
        self._working: dict[Scope, list[LineItem]] = {Scope.PRODUCTS: [], Scope.APPOINTMENTS: []}

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------
    def load(self) -> None:
        lines = self.store.load_lines(self.cart_id)
        self._sync(Scope.PRODUCTS, lines)
        self._sync(Scope.APPOINTMENTS, lines)

    def _sync(self, scope: Scope, lines: CartLines) -> None:
        synced = tuple(self._enrich(line) for line in lines.for_scope(scope))
        self._original[scope] = synced
        self._working[scope] = list(synced)

    def _enrich(self, line: LineItem) -> LineItem:
        if isinstance(line, AppointmentLine) and line.pet_name is None and self.directory is not None:
            record = self.directory.fetch_appointment(line.ref.kind, line.ref.id)
            if record is not None and record.pet_name:
                return AppointmentLine(id=line.id, ref=line.ref, price=line.price, pet_name=record.pet_name)
        return line

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    @property
    def products(self) -> tuple[ProductLine, ...]:
        return tuple(self._working[Scope.PRODUCTS])

    @property
    def appointments(self) -> tuple[AppointmentLine | ServiceProductLine, ...]:
        return tuple(self._working[Scope.APPOINTMENTS])

    def original(self, scope: Scope) -> tuple[LineItem, ...]:
        return self._original[scope]

    @property
    def subtotal(self) -> Decimal:
        products = sum((line.unit_price * line.quantity for line in self.products), Decimal("0"))
        appointments = sum((line.price for line in self.appointments), Decimal("0"))
        return to_money(products + appointments)

    @property
    def appointment_lines(self) -> tuple[AppointmentLine, ...]:
        return tuple(line for line in self.appointments if isinstance(line, AppointmentLine))

    def has_billable_line(self) -> bool:
        if self.products or self.appointments:
            return True
        return False

    def has_positive_single_appointment_price(self) -> bool:
        if self.single_appointment is None:
            return False
        return any(line.ref == self.single_appointment and line.price > 0 for line in self.appointment_lines)

    def find(self, line_id: str) -> LineItem:
        for scope in Scope:
            for line in self._working[scope]:
                if line.id == line_id:
                    return line
        raise ValidationError({"line_id": [f"Line {line_id} is not in the cart"]})

    # -------------------------------------------------------------------
    # Dirtiness
    # -------------------------------------------------------------------
    def is_dirty(self, scope: Scope) -> bool:
        working = self._working[scope]
        original = self._original[scope]
        if len(working) != len(original):
            return True

        original_by_id = {line.id: line for line in original}
        working_ids = set()
        for line in working:
            working_ids.add(line.id)
            previous = original_by_id.get(line.id)
            if previous is None or lines_differ(previous, line):
                return True

        return any(line.id not in working_ids for line in original)

    @property
    def dirty_scopes(self) -> list[Scope]:
        return [scope for scope in Scope if self.is_dirty(scope)]

    @property
    def is_any_dirty(self) -> bool:
        return bool(self.dirty_scopes)

    # -------------------------------------------------------------------
    # Flushing
    # -------------------------------------------------------------------
    def commit(self, scope: Scope) -> None:
        """Replace the stored rows of ``scope`` with the working copy."""
        working = list(self._working[scope])

        if scope == Scope.APPOINTMENTS:
            self._write_through_single_appointment_price(working)
            lines = self.store.replace_appointments(self.cart_id, working)
        else:
            lines = self.store.replace_products(self.cart_id, working)

        self._sync(scope, lines)
        logger.info("cart_scope_committed", cart_id=self.cart_id, scope=scope.value, line_count=len(working))

    def commit_all(self) -> list[Scope]:
        committed = self.dirty_scopes
        for scope in committed:
            self.commit(scope)
        return committed

    def _write_through_single_appointment_price(self, working: list[LineItem]) -> None:
        if self.single_appointment is None or self.directory is None:
            return

        appointment_lines = [line for line in working if isinstance(line, AppointmentLine)]
        if len(appointment_lines) != 1 or appointment_lines[0].ref != self.single_appointment:
            return

        edited = appointment_lines[0]
        previous = next((line for line in self._original[Scope.APPOINTMENTS] if line.id == edited.id), None)
        if previous is not None and previous.price == edited.price:
            return

        ref = self.single_appointment
        try:
            self.directory.save_appointment_price(ref.kind, ref.id, float(edited.price))
        except LookupError as exc:
            raise IntegrationError(str(exc), provider="directory") from exc
        logger.info("appointment_price_saved", appointment_id=ref.id, kind=ref.kind.value, price=str(edited.price))

    def discard(self) -> None:
        """Throw away every unsaved edit."""
        for scope in Scope:
            self._working[scope] = list(self._original[scope])

    # -------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------
    def add_product(self, name: str, unit_price, quantity: int = 1, product_id: str | None = None) -> ProductLine:
        """Add a catalogue product, or bump its quantity if already present."""
        price = self._valid_price(unit_price)
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        if product_id is not None:
            for index, line in enumerate(self._working[Scope.PRODUCTS]):
                if line.product_id == product_id:
                    bumped = ProductLine(
                        id=line.id,
                        name=line.name,
                        quantity=line.quantity + quantity,
                        unit_price=line.unit_price,
                        product_id=line.product_id,
                    )
                    self._working[Scope.PRODUCTS][index] = bumped
                    return bumped

        line = ProductLine(
            id=temporary_id(),
            name=name,
            quantity=quantity,
            unit_price=price,
            product_id=product_id,
        )
        self._working[Scope.PRODUCTS].append(line)
        return line

    def add_temporary_item(self, kind: TemporaryKind, payload: dict) -> LineItem:
        """Add a working-only row; it reaches the store on the next commit."""
        match kind:
            case TemporaryKind.PRODUCT:
                name = (payload.get("name") or "").strip()
                if not name:
                    raise ValidationError({"name": ["An ad-hoc item needs a name"]})
                return self.add_product(
                    name=name,
                    unit_price=payload.get("price", 0),
                    quantity=int(payload.get("quantity") or 1),
                )
            case TemporaryKind.SERVICE_PRODUCT:
                line = new_service_product(
                    payload.get("pet_name"),
                    payload.get("breed"),
                    self._valid_price(payload.get("price", 0)),
                )
                self._working[Scope.APPOINTMENTS].append(line)
                return line

    def add_appointment(self, record: AppointmentRecord, price=None) -> AppointmentLine:
        ref = AppointmentRef(kind=record.kind, id=record.id)
        if any(line.ref == ref for line in self.appointment_lines):
            raise ValidationError({"appointment": ["Appointment is already in the cart"]})

        line = AppointmentLine(
            id=temporary_id(),
            ref=ref,
            price=self._valid_price(record.price if price is None else price),
            pet_name=record.pet_name,
        )
        self._working[Scope.APPOINTMENTS].append(line)
        return line

    def set_quantity(self, line_id: str, quantity: int) -> ProductLine | None:
        """Set a product quantity; anything below 1 removes the line."""
        line = self.find(line_id)
        if not isinstance(line, ProductLine):
            raise ValidationError({"line_id": ["Only product lines have a quantity"]})

        if quantity < 1:
            self.remove(line_id)
            return None

        updated = ProductLine(
            id=line.id,
            name=line.name,
            quantity=quantity,
            unit_price=line.unit_price,
            product_id=line.product_id,
        )
        self._replace(updated)
        return updated

    def change_quantity(self, line_id: str, delta: int) -> ProductLine | None:
        line = self.find(line_id)
        if not isinstance(line, ProductLine):
            raise ValidationError({"line_id": ["Only product lines have a quantity"]})
        return self.set_quantity(line_id, line.quantity + delta)

    def set_price(self, line_id: str, price) -> LineItem:
        updated = with_price(self.find(line_id), self._valid_price(price))
        self._replace(updated)
        return updated

    def remove(self, line_id: str) -> None:
        line = self.find(line_id)
        scope = _scope_of(line)
        self._working[scope] = [existing for existing in self._working[scope] if existing.id != line_id]

    def _replace(self, updated: LineItem) -> None:
        scope = _scope_of(updated)
        self._working[scope] = [updated if line.id == updated.id else line for line in self._working[scope]]

    @staticmethod
    def _valid_price(value) -> Decimal:
        try:
            price = to_money(value)
        except ArithmeticError as exc:
            raise ValidationError({"price": [f"'{value}' is not a valid amount"]}) from exc
        if price < 0:
            raise ValidationError({"price": ["Price cannot be negative"]})
        return price
