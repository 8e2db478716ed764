"""Domain events for payment records and invoices."""

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout


@checkout.event(part_of="Payment")
class PaymentRecorded:
    """A payment record was written for an order."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier()
    amount = Float(required=True)
    method = String(required=True, max_length=30)
    status = String(required=True, max_length=20)
    recorded_at = DateTime(required=True)


@checkout.event(part_of="Invoice")
class InvoiceIssued:
    """A debit or credit document was issued by the invoicing provider."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    invoice_type = String(required=True, max_length=10)
    amount = Float(required=True)
    invoice_number = String(max_length=50)
    issued_at = DateTime(required=True)
