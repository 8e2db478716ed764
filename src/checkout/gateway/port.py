"""Payment gateway port (abstract interface).

Defines the contract every card/invoicing provider adapter implements:
a handshake that authorizes a hosted payment surface for an amount, a
synchronous charge against a stored card token, and invoice issuance.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class HandshakeResult:
    """Result of a hosted-page handshake request."""

    success: bool
    token: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ChargeResult:
    """Result of a saved-card charge attempt."""

    success: bool
    transaction_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class InvoiceResult:
    """Result of an invoice issuance request."""

    success: bool
    invoice_number: str | None = None
    retrieval_key: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ChargeItem:
    """One itemized line sent along with a charge or invoice."""

    name: str
    unit_price: float
    units_number: int
    type: str = "I"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type,
            "unit_price": self.unit_price,
            "units_number": self.units_number,
        }


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def handshake(self, amount: float) -> HandshakeResult:
        """Obtain a one-time token authorizing a hosted payment for ``amount``."""
        ...

    @abstractmethod
    def charge(
        self,
        token: str,
        cvv: str | None,
        amount: float,
        items: list[ChargeItem],
    ) -> ChargeResult:
        """Charge a stored card token."""
        ...

    @abstractmethod
    def issue_invoice(
        self,
        order_id: str,
        amount: float,
        invoice_type: str,
        items: list[ChargeItem],
        email: str,
    ) -> InvoiceResult:
        """Issue a debit or credit document for an order."""
        ...

    @abstractmethod
    def verify_callback_signature(self, payload: str, signature: str) -> bool:
        """Verify that a payment-received callback is authentically from the gateway."""
        ...
