"""Invoice aggregate (CQRS) — a document issued against an order.

An order has at most one debit invoice and, separately, at most one credit
(refund) invoice.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout
from checkout.payment.events import InvoiceIssued


class InvoiceType(Enum):
    DEBIT = "debit"
    CREDIT = "credit"


@checkout.aggregate
class Invoice:
    order_id = Identifier(required=True)
    payment_id = Identifier()
    invoice_type = String(choices=InvoiceType, default=InvoiceType.DEBIT.value)
    amount = Float(required=True, min_value=0.0)
    invoice_number = String(max_length=50)
    retrieval_key = String(max_length=255)
    issued_at = DateTime()

    @classmethod
    def issue(
        cls,
        order_id: str,
        amount: float,
        invoice_type: InvoiceType,
        invoice_number: str | None = None,
        retrieval_key: str | None = None,
        payment_id: str | None = None,
    ):
        now = datetime.now(UTC)
        invoice = cls(
            order_id=order_id,
            payment_id=payment_id,
            invoice_type=invoice_type.value,
            amount=amount,
            invoice_number=invoice_number,
            retrieval_key=retrieval_key,
            issued_at=now,
        )
        invoice.raise_(
            InvoiceIssued(
                invoice_id=str(invoice.id),
                order_id=order_id,
                invoice_type=invoice_type.value,
                amount=amount,
                invoice_number=invoice_number,
                issued_at=now,
            )
        )
        return invoice
