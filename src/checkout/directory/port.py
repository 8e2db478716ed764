"""Directory port — read access to records owned by the scheduling and CRM screens.

Appointments, customers, contacts and stored card tokens are maintained
elsewhere; checkout only reads them, plus one write: pushing an edited
price back onto a single appointment.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from checkout.cart.lines import AppointmentKind


@dataclass(frozen=True)
class AppointmentRecord:
    id: str
    kind: AppointmentKind
    customer_id: str | None
    price: float
    pet_name: str | None = None
    breed: str | None = None


@dataclass(frozen=True)
class CustomerRecord:
    id: str
    name: str = ""
    phone: str = ""
    email: str = ""


@dataclass(frozen=True)
class ContactRecord:
    id: str
    customer_id: str
    name: str
    phone: str


@dataclass(frozen=True)
class SavedCard:
    customer_id: str
    token: str
    cvv: str | None = None
    last4: str | None = None


class Directory(ABC):
    @abstractmethod
    def fetch_appointment(self, kind: AppointmentKind, appointment_id: str) -> AppointmentRecord | None: ...

    @abstractmethod
    def save_appointment_price(self, kind: AppointmentKind, appointment_id: str, price: float) -> None: ...

    @abstractmethod
    def fetch_customer(self, customer_id: str) -> CustomerRecord | None: ...

    @abstractmethod
    def fetch_contacts(self, customer_id: str, contact_ids: list[str]) -> list[ContactRecord]:
        """Return the requested contacts that belong to ``customer_id``."""
        ...

    @abstractmethod
    def find_saved_card(self, customer_id: str) -> SavedCard | None: ...
