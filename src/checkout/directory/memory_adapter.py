"""In-memory directory used in development and tests."""

from dataclasses import replace

from checkout.cart.lines import AppointmentKind
from checkout.directory.port import (
    AppointmentRecord,
    ContactRecord,
    CustomerRecord,
    Directory,
    SavedCard,
)


class InMemoryDirectory(Directory):
    def __init__(self) -> None:
        self.appointments: dict[tuple[AppointmentKind, str], AppointmentRecord] = {}
        self.customers: dict[str, CustomerRecord] = {}
        self.contacts: dict[str, ContactRecord] = {}
        self.saved_cards: dict[str, SavedCard] = {}
        self.price_writes: list[tuple[AppointmentKind, str, float]] = []

    # Seeding helpers
    def add_appointment(self, record: AppointmentRecord) -> AppointmentRecord:
        self.appointments[(record.kind, record.id)] = record
        return record

    def add_customer(self, record: CustomerRecord) -> CustomerRecord:
        self.customers[record.id] = record
        return record

    def add_contact(self, record: ContactRecord) -> ContactRecord:
        self.contacts[record.id] = record
        return record

    def add_saved_card(self, card: SavedCard) -> SavedCard:
        self.saved_cards[card.customer_id] = card
        return card

    # Directory
    def fetch_appointment(self, kind: AppointmentKind, appointment_id: str) -> AppointmentRecord | None:
        return self.appointments.get((kind, appointment_id))

    def save_appointment_price(self, kind: AppointmentKind, appointment_id: str, price: float) -> None:
        record = self.appointments.get((kind, appointment_id))
        if record is None:
            raise LookupError(f"No {kind.value} appointment {appointment_id}")
        self.appointments[(kind, appointment_id)] = replace(record, price=price)
        self.price_writes.append((kind, appointment_id, price))

    def fetch_customer(self, customer_id: str) -> CustomerRecord | None:
        return self.customers.get(customer_id)

    def fetch_contacts(self, customer_id: str, contact_ids: list[str]) -> list[ContactRecord]:
        wanted = set(contact_ids)
        return [c for c in self.contacts.values() if c.id in wanted and c.customer_id == customer_id]

    def find_saved_card(self, customer_id: str) -> SavedCard | None:
        card = self.saved_cards.get(customer_id)
        if card is None or not card.token:
            return None
        return card

    def reset(self) -> None:
        self.appointments.clear()
        self.customers.clear()
        self.contacts.clear()
        self.saved_cards.clear()
        self.price_writes.clear()
