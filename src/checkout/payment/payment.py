"""Payment aggregate (CQRS) — one record per finalize attempt.

Immediate channels record ``paid``; request-based channels record
``unpaid`` until the customer settles through the wallet app or link.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String, Text

from checkout.domain import checkout
from checkout.payment.events import PaymentRecorded


class PaymentStatus(Enum):
    PAID = "paid"
    UNPAID = "unpaid"


@checkout.aggregate
class Payment:
    order_id = Identifier(required=True)
    customer_id = Identifier()
    amount = Float(required=True, min_value=0.0)
    method = String(required=True, max_length=30)
    status = String(choices=PaymentStatus, default=PaymentStatus.UNPAID.value)
    metadata = Text()  # JSON object
    created_at = DateTime()

    @classmethod
    def record(
        cls,
        order_id: str,
        customer_id: str | None,
        amount: float,
        method: str,
        paid: bool,
        metadata: dict | None = None,
    ):
        now = datetime.now(UTC)
        payment = cls(
            order_id=order_id,
            customer_id=customer_id,
            amount=amount,
            method=method,
            status=PaymentStatus.PAID.value if paid else PaymentStatus.UNPAID.value,
            metadata=json.dumps(metadata or {}),
            created_at=now,
        )
        payment.raise_(
            PaymentRecorded(
                payment_id=str(payment.id),
                order_id=order_id,
                customer_id=customer_id,
                amount=amount,
                method=method,
                status=payment.status,
                recorded_at=now,
            )
        )
        return payment

    @property
    def metadata_dict(self) -> dict:
        return json.loads(self.metadata) if self.metadata else {}
