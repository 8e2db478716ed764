"""Order finalization — converts a committed cart into an order and payment.

Steps:
    1. Guard: refuse when the cart already has a paid order
    2. Flush any dirty working-copy scope
    3. Compute the subtotal; ``total`` is the received amount where one is given
    4. Snapshot the cart into an Order, or settle the cart's pending order
    5. Complete the cart
    6. Record the Payment
    7. Optionally issue an invoice

Only steps 1-6 are required to succeed. An invoice failure after money has
changed hands is reported as a warning and never undoes the payment.
"""

from dataclasses import dataclass
from decimal import Decimal

import structlog
from protean.utils.globals import current_domain

from checkout.cart.lines import to_money
from checkout.cart.reconciliation import ReconciliationEngine
from checkout.cart.store import CartLines, CartStore
from checkout.directory import get_directory
from checkout.directory.port import Directory
from checkout.errors import CartAlreadyPaid
from checkout.gateway import get_gateway
from checkout.gateway.port import PaymentGateway
from checkout.order.order import Order
from checkout.payment.invoice import Invoice, InvoiceType
from checkout.payment.items import charge_items
from checkout.payment.methods import PaymentCategory, PaymentMethod
from checkout.payment.payment import Payment

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FinalizeResult:
    order: Order
    payment: Payment
    invoice: Invoice | None = None
    warning: str | None = None


def compute_subtotal(lines: CartLines) -> Decimal:
    """Σ product price × quantity + Σ appointment-scope price."""
    products = sum((line.unit_price * line.quantity for line in lines.products), Decimal("0"))
    appointments = sum((line.price for line in lines.appointments), Decimal("0"))
    return to_money(products + appointments)


class OrderFinalizer:
    def __init__(
        self,
        store: CartStore | None = None,
        gateway: PaymentGateway | None = None,
        directory: Directory | None = None,
    ) -> None:
        self.store = store or CartStore()
        self.gateway = gateway or get_gateway()
        self.directory = directory or get_directory()

    def finalize(
        self,
        cart_id: str,
        method: PaymentMethod,
        *,
        amount=None,
        receipt_requested: bool = False,
        engine: ReconciliationEngine | None = None,
        category: PaymentCategory | None = None,
        metadata: dict | None = None,
        settle: bool | None = None,
    ) -> FinalizeResult:
        settle = method.settles_immediately if settle is None else settle

        paid_order = self.store.paid_order_for_cart(cart_id)
        if paid_order is not None:
            logger.warning("finalize_rejected_already_paid", cart_id=cart_id, order_id=str(paid_order.id))
            raise CartAlreadyPaid(cart_id, str(paid_order.id))

        if engine is not None:
            engine.commit_all()
        lines = self.store.load_lines(cart_id)

        subtotal = compute_subtotal(lines)
        total = to_money(amount) if amount is not None else subtotal

        cart = self.store.get_cart(cart_id)
        order = self._place_or_settle(cart, subtotal, total, settle)

        if cart.is_active:
            self.store.complete_cart(cart_id)

        category = category or method.category
        payment = Payment.record(
            order_id=str(order.id),
            customer_id=cart.customer_id,
            amount=float(total),
            method=method.value,
            paid=settle,
            metadata={
                "order_id": str(order.id),
                "cart_id": cart_id,
                "category": category.value if category else None,
                "method": method.value,
                "paid_amount": float(total),
                **(metadata or {}),
            },
        )
        current_domain.repository_for(Payment).add(payment)

        logger.info(
            "order_finalized",
            cart_id=cart_id,
            order_id=str(order.id),
            method=method.value,
            status=order.status,
            subtotal=str(subtotal),
            total=str(total),
        )

        invoice = None
        warning = None
        if receipt_requested and settle and method.issues_invoice:
            invoice, warning = self._issue_invoice(order, payment, total, lines, cart.customer_id)

        return FinalizeResult(order=order, payment=payment, invoice=invoice, warning=warning)

    def _place_or_settle(self, cart, subtotal: Decimal, total: Decimal, settle: bool) -> Order:
        """A cart never holds more than one non-terminal order."""
        repo = current_domain.repository_for(Order)

        pending = self.store.pending_order_for_cart(str(cart.id))
        if pending is None:
            order = Order.place(cart, subtotal=float(subtotal), total=float(total), paid=settle)
            repo.add(order)
            return order

        if settle:
            pending.mark_paid(total=float(total))
            repo.add(pending)
            logger.info("pending_order_settled", order_id=str(pending.id), cart_id=str(cart.id))
        return pending

    def _issue_invoice(
        self,
        order: Order,
        payment: Payment,
        total: Decimal,
        lines: CartLines,
        customer_id: str | None,
    ) -> tuple[Invoice | None, str | None]:
        customer = self.directory.fetch_customer(customer_id) if customer_id else None
        if customer is None or not customer.email:
            logger.warning("invoice_skipped_no_email", order_id=str(order.id), customer_id=customer_id)
            return None, "Invoice was not issued: the customer has no email address"

        items = charge_items(lines.products, lines.appointments, amount=total)
        try:
            result = self.gateway.issue_invoice(
                order_id=str(order.id),
                amount=float(total),
                invoice_type=InvoiceType.DEBIT.value,
                items=items,
                email=customer.email,
            )
        except Exception as exc:
            logger.exception("invoice_issue_failed", order_id=str(order.id))
            return None, f"Payment recorded, but the invoice failed: {exc}"

        if not result.success:
            logger.warning("invoice_issue_failed", order_id=str(order.id), error=result.error)
            return None, f"Payment recorded, but the invoice failed: {result.error}"

        invoice = Invoice.issue(
            order_id=str(order.id),
            amount=float(total),
            invoice_type=InvoiceType.DEBIT,
            invoice_number=result.invoice_number,
            retrieval_key=result.retrieval_key,
            payment_id=str(payment.id),
        )
        current_domain.repository_for(Invoice).add(invoice)
        logger.info("invoice_issued", order_id=str(order.id), invoice_number=result.invoice_number)
        return invoice, None
