"""Configurable fake payment gateway for development and testing.

Simulates the handshake/charge/invoice calls without any external traffic.
Each operation can be switched to fail independently so tests can exercise
"payment succeeded but invoice failed" paths.
"""

from uuid import uuid4

from checkout.gateway.port import (
    ChargeItem,
    ChargeResult,
    HandshakeResult,
    InvoiceResult,
    PaymentGateway,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.reset()

    def reset(self) -> None:
        self.calls.clear()
        self.handshake_succeeds = True
        self.charge_succeeds = True
        self.invoice_succeeds = True
        self.failure_reason = "Card declined"

    def configure(
        self,
        *,
        handshake_succeeds: bool | None = None,
        charge_succeeds: bool | None = None,
        invoice_succeeds: bool | None = None,
        failure_reason: str | None = None,
    ) -> None:
        """Configure gateway behavior at runtime."""
        if handshake_succeeds is not None:
            self.handshake_succeeds = handshake_succeeds
        if charge_succeeds is not None:
            self.charge_succeeds = charge_succeeds
        if invoice_succeeds is not None:
            self.invoice_succeeds = invoice_succeeds
        if failure_reason is not None:
            self.failure_reason = failure_reason

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def handshake(self, amount: float) -> HandshakeResult:
        self.calls.append({"method": "handshake", "amount": amount})

        if self.handshake_succeeds:
            return HandshakeResult(success=True, token=f"thtk_{uuid4().hex[:16]}")
        return HandshakeResult(success=False, error=self.failure_reason)

    def charge(
        self,
        token: str,
        cvv: str | None,
        amount: float,
        items: list[ChargeItem],
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "charge",
                "token": token,
                "cvv": cvv,
                "amount": amount,
                "items": [item.to_dict() for item in items],
            }
        )

        if self.charge_succeeds:
            return ChargeResult(success=True, transaction_id=f"fake_txn_{uuid4().hex[:12]}")
        return ChargeResult(success=False, error=self.failure_reason)

    def issue_invoice(
        self,
        order_id: str,
        amount: float,
        invoice_type: str,
        items: list[ChargeItem],
        email: str,
    ) -> InvoiceResult:
        self.calls.append(
            {
                "method": "issue_invoice",
                "order_id": order_id,
                "amount": amount,
                "invoice_type": invoice_type,
                "items": [item.to_dict() for item in items],
                "email": email,
            }
        )

        if self.invoice_succeeds:
            return InvoiceResult(
                success=True,
                invoice_number=f"INV-{uuid4().hex[:8].upper()}",
                retrieval_key=uuid4().hex,
            )
        return InvoiceResult(success=False, error=self.failure_reason)

    def verify_callback_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"
