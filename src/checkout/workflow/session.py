"""Checkout session — one operator driving one cart through payment.

The session owns the working copy (``ReconciliationEngine``), the workflow
state, any pending hosted-page session and the payment poller. Every public
action returns an ``ActionResult``; failures from validation, integrations or
the store are converted at this boundary. Discovering that the cart is
already paid is the one blocking outcome: the session turns read-only and
exposes the paid order.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError

from checkout.cart.lines import AppointmentRef, Scope
from checkout.cart.reconciliation import ReconciliationEngine
from checkout.cart.store import CartStore
from checkout.channels import Channels, build_channels
from checkout.channels.base import ChannelContext, ChannelResult
from checkout.channels.hosted_page import HostedPageSession
from checkout.channels.recipients import RecipientSelection
from checkout.config import CheckoutSettings, get_settings
from checkout.directory import get_directory
from checkout.directory.port import Directory
from checkout.errors import CartAlreadyPaid, CheckoutError, IntegrationError, WorkflowError
from checkout.gateway import get_gateway
from checkout.gateway.port import PaymentGateway
from checkout.messaging import get_messenger
from checkout.messaging.port import MessagingPort
from checkout.order.finalizer import OrderFinalizer
from checkout.order.order import Order
from checkout.payment.methods import PaymentCategory, PaymentMethod, methods_for
from checkout.polling import PaymentPoller, PollOutcome
from checkout.utils.logging import bind_checkout_context, clear_checkout_context
from checkout.workflow import state as transitions
from checkout.workflow.state import CheckoutStep, WorkflowState

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    error: str | None = None
    warning: str | None = None
    order_id: str | None = None
    blocking: bool = False
    payload: dict | None = None


def _validation_message(exc: ValidationError) -> str:
    messages = exc.messages if isinstance(exc.messages, dict) else {"error": exc.messages}
    return "; ".join(message for values in messages.values() for message in (values or []))


class CheckoutSession:
    def __init__(
        self,
        customer_id: str | None = None,
        *,
        cart_id: str | None = None,
        appointment: AppointmentRef | None = None,
        store: CartStore | None = None,
        directory: Directory | None = None,
        gateway: PaymentGateway | None = None,
        messenger: MessagingPort | None = None,
        settings: CheckoutSettings | None = None,
    ) -> None:
        self.session_id = uuid4().hex[:12]
        self.customer_id = customer_id
        self.cart_id = cart_id
        self.appointment = appointment
        self.store = store or CartStore()
        self.directory = directory or get_directory()
        self.settings = settings or get_settings()
        gateway = gateway or get_gateway()
        messenger = messenger or get_messenger()

        self.finalizer = OrderFinalizer(self.store, gateway, self.directory)
        self.channels: Channels = build_channels(gateway, messenger, self.directory, self.settings)

        self.state: WorkflowState = transitions.open_workflow()
        self.engine: ReconciliationEngine | None = None
        self.receipt_requested = False
        self.paid_order: Order | None = None
        self.hosted_page: HostedPageSession | None = None
        self.poller: PaymentPoller | None = None

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    @property
    def is_read_only(self) -> bool:
        return self.paid_order is not None

    @property
    def is_paid(self) -> bool:
        return self.paid_order is not None

    @property
    def subtotal(self):
        return self.engine.subtotal if self.engine else None

    def available_methods(self, category: PaymentCategory) -> list[PaymentMethod]:
        context = self._context()
        return [
            method
            for method in methods_for(category)
            if method != PaymentMethod.SAVED_CARD or self.channels.saved_card.is_available(context)
        ]

    # -------------------------------------------------------------------
    # Boundary
    # -------------------------------------------------------------------
    def _run(self, action: str, fn: Callable[[], ActionResult]) -> ActionResult:
        bind_checkout_context(session_id=self.session_id, cart_id=self.cart_id)
        try:
            return fn()
        except CartAlreadyPaid as exc:
            self._become_read_only(exc.cart_id)
            logger.warning("checkout_blocked_already_paid", action=action, order_id=exc.order_id)
            return ActionResult(ok=False, error=str(exc), order_id=exc.order_id, blocking=True)
        except ValidationError as exc:
            logger.info("checkout_action_invalid", action=action, errors=exc.messages)
            return ActionResult(ok=False, error=_validation_message(exc))
        except IntegrationError as exc:
            logger.warning("checkout_integration_failed", action=action, provider=exc.provider, error=exc.message)
            return ActionResult(ok=False, error=exc.message)
        except CheckoutError as exc:
            logger.info("checkout_action_rejected", action=action, error=str(exc))
            return ActionResult(ok=False, error=str(exc))
        except ObjectNotFoundError as exc:
            logger.warning("checkout_record_missing", action=action, error=str(exc))
            return ActionResult(ok=False, error=str(exc))
        except Exception as exc:
            logger.exception("checkout_action_failed", action=action)
            return ActionResult(ok=False, error=str(exc))

    def _become_read_only(self, cart_id: str) -> None:
        self.paid_order = self.store.paid_order_for_cart(cart_id)
        self._stop_polling()
        self.hosted_page = None

    def _context(self) -> ChannelContext:
        if self.engine is None:
            raise WorkflowError("The checkout has not been opened")
        return ChannelContext(
            cart_id=self.cart_id,
            customer_id=self.customer_id,
            engine=self.engine,
            store=self.store,
            finalizer=self.finalizer,
            receipt_requested=self.receipt_requested,
        )

    def _require_editable(self) -> None:
        if self.is_read_only:
            raise CartAlreadyPaid(self.cart_id, str(self.paid_order.id))
        if self.engine is None:
            raise WorkflowError("The checkout has not been opened")

    def _require_review(self) -> None:
        """Lines can only change before a payment channel is chosen."""
        self._require_editable()
        if self.state.step != CheckoutStep.REVIEW:
            raise WorkflowError("The cart can only be edited in the review step")

    def _require_method(self, *methods: PaymentMethod) -> PaymentMethod:
        self._require_editable()
        if self.state.step != CheckoutStep.CONFIRM or self.state.method not in methods:
            expected = ", ".join(m.value for m in methods)
            raise WorkflowError(f"This action needs one of [{expected}] to be selected")
        return self.state.method

    def _finished(self, result: ChannelResult) -> ActionResult:
        if result.awaiting_payment:
            return ActionResult(ok=True, order_id=result.order_id, warning=result.warning)
        self.state = transitions.complete(self.state)
        self.paid_order = result.finalized.order
        self._stop_polling()
        logger.info("checkout_completed", order_id=result.order_id)
        return ActionResult(ok=True, order_id=result.order_id, warning=result.warning)

    # -------------------------------------------------------------------
    # Opening
    # -------------------------------------------------------------------
    def open(self) -> ActionResult:
        return self._run("open", self._open)

    def _open(self) -> ActionResult:
        self.state = transitions.open_workflow()
        self.paid_order = None
        self.hosted_page = None
        self._stop_polling()

        record = None
        if self.appointment is not None:
            record = self.directory.fetch_appointment(self.appointment.kind, self.appointment.id)
            if record is None:
                raise ValidationError({"appointment": [f"Appointment {self.appointment.id} was not found"]})
            self.customer_id = self.customer_id or record.customer_id
            if self.cart_id is None:
                existing = self.store.find_cart_with_appointment(self.customer_id, self.appointment)
                self.cart_id = str(existing.id) if existing else None

        # Paid carts are detected before anything is written.
        if self.cart_id is not None:
            paid = self.store.paid_order_for_cart(self.cart_id)
            if paid is not None:
                self.paid_order = paid
                bind_checkout_context(session_id=self.session_id, cart_id=self.cart_id)
                logger.info("checkout_opened_already_paid", order_id=str(paid.id))
                return ActionResult(ok=True, order_id=str(paid.id), blocking=True)

        cart = self.store.ensure_cart(self.customer_id, cart_id=self.cart_id)
        self.cart_id = str(cart.id)
        self.customer_id = self.customer_id or cart.customer_id
        bind_checkout_context(session_id=self.session_id, cart_id=self.cart_id)

        self.engine = ReconciliationEngine(
            self.store,
            self.cart_id,
            directory=self.directory,
            single_appointment=self.appointment,
        )
        self.engine.load()

        if record is not None and not any(line.ref == self.appointment for line in self.engine.appointment_lines):
            self.engine.add_appointment(record)

        logger.info("checkout_opened", customer_id=self.customer_id)
        return ActionResult(ok=True)

    # -------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------
    def continue_from_review(self) -> ActionResult:
        return self._run("continue_from_review", self._continue_from_review)

    def _continue_from_review(self) -> ActionResult:
        self._require_editable()
        if self.engine.single_appointment is not None:
            billable = self.engine.has_positive_single_appointment_price() or bool(self.engine.products)
        else:
            billable = self.engine.has_billable_line()

        next_state = transitions.advance_from_review(self.state, billable)
        committed = self.engine.commit_all()
        self.state = next_state
        logger.info("checkout_review_completed", committed=[scope.value for scope in committed])
        return ActionResult(ok=True)

    def choose_category(self, category: PaymentCategory) -> ActionResult:
        def action():
            self._require_editable()
            self.state = transitions.choose_category(self.state, category)
            return ActionResult(ok=True)

        return self._run("choose_category", action)

    def choose_method(self, method: PaymentMethod) -> ActionResult:
        def action():
            self._require_editable()
            if method == PaymentMethod.SAVED_CARD and not self.channels.saved_card.is_available(self._context()):
                raise ValidationError({"method": ["No saved card on file for this customer"]})
            self.state = transitions.choose_method(self.state, method)
            return ActionResult(ok=True)

        return self._run("choose_method", action)

    def back(self) -> ActionResult:
        def action():
            self._leave_confirm()
            self.state = transitions.go_back(self.state)
            return ActionResult(ok=True)

        return self._run("back", action)

    def jump(self, step: CheckoutStep) -> ActionResult:
        def action():
            self._leave_confirm()
            self.state = transitions.jump_to(self.state, step)
            return ActionResult(ok=True)

        return self._run("jump", action)

    def _leave_confirm(self) -> None:
        if self.hosted_page is not None:
            self.channels.hosted_page.cancel(self.hosted_page)
            self.hosted_page = None

    def set_receipt_requested(self, requested: bool) -> None:
        self.receipt_requested = requested

    # -------------------------------------------------------------------
    # Editing (review step)
    # -------------------------------------------------------------------
    def edit(self, fn: Callable[[ReconciliationEngine], object]) -> ActionResult:
        """Apply a working-copy edit; nothing is persisted until commit."""

        def action():
            self._require_review()
            fn(self.engine)
            return ActionResult(ok=True)

        return self._run("edit", action)

    def save(self, scope: Scope) -> ActionResult:
        def action():
            self._require_review()
            self.engine.commit(scope)
            return ActionResult(ok=True)

        return self._run("save", action)

    def discard(self) -> ActionResult:
        def action():
            self._require_review()
            self.engine.discard()
            return ActionResult(ok=True)

        return self._run("discard", action)

    # -------------------------------------------------------------------
    # Confirmation
    # -------------------------------------------------------------------
    def confirm_manual_payment(self, received_amount) -> ActionResult:
        def action():
            method = self._require_method(PaymentMethod.BANK_TRANSFER, PaymentMethod.CASH)
            return self._finished(self.channels.manual.confirm(self._context(), method, received_amount))

        return self._run("confirm_manual_payment", action)

    def request_wallet_payment(self, selection: RecipientSelection) -> ActionResult:
        def action():
            method = self._require_method(PaymentMethod.BIT, PaymentMethod.PAYBOX)
            return self._finished(self.channels.wallet.request(self._context(), method, selection))

        return self._run("request_wallet_payment", action)

    def mark_received(self, received_amount) -> ActionResult:
        def action():
            method = self._require_method(PaymentMethod.BIT, PaymentMethod.PAYBOX)
            return self._finished(self.channels.wallet.mark_received(self._context(), method, received_amount))

        return self._run("mark_received", action)

    def open_hosted_page(self) -> ActionResult:
        def action():
            self._require_method(PaymentMethod.HOSTED_PAGE)
            self.hosted_page = self.channels.hosted_page.open(self._context())
            return ActionResult(ok=True, payload=self.hosted_page.payload)

        return self._run("open_hosted_page", action)

    def hosted_page_succeeded(self, transaction_id: str | None = None) -> ActionResult:
        def action():
            self._require_method(PaymentMethod.HOSTED_PAGE)
            if self.hosted_page is None:
                raise WorkflowError("No payment page is open")
            session, self.hosted_page = self.hosted_page, None
            return self._finished(self.channels.hosted_page.succeed(self._context(), session, transaction_id))

        return self._run("hosted_page_succeeded", action)

    def hosted_page_failed(self, error: str | None = None) -> ActionResult:
        def action():
            if self.hosted_page is not None:
                self.channels.hosted_page.fail(self.hosted_page, error)
                self.hosted_page = None
            return ActionResult(ok=False, error=error or "Payment failed")

        return self._run("hosted_page_failed", action)

    def cancel_hosted_page(self) -> ActionResult:
        def action():
            self._leave_confirm()
            return ActionResult(ok=True)

        return self._run("cancel_hosted_page", action)

    def charge_saved_card(self, amount=None) -> ActionResult:
        def action():
            self._require_method(PaymentMethod.SAVED_CARD)
            return self._finished(self.channels.saved_card.charge(self._context(), amount))

        return self._run("charge_saved_card", action)

    def send_payment_link(self, selection: RecipientSelection) -> ActionResult:
        """Send the link and start polling; must be called from a running event loop."""

        def action():
            self._require_method(PaymentMethod.PAYMENT_PAGE)
            # Polling runs on the caller's loop; check before anything is sent.
            try:
                asyncio.get_running_loop()
            except RuntimeError as exc:
                raise WorkflowError("Sending a payment link needs a running event loop") from exc
            result = self.channels.payment_link.send(self._context(), selection)
            self._start_polling()
            return ActionResult(ok=True, order_id=result.order_id, payload={"link": result.link})

        return self._run("send_payment_link", action)

    # -------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------
    def _lookup_status(self, cart_id: str) -> str | None:
        view = self.store.order_status(cart_id)
        return view.status if view else None

    def _start_polling(self) -> None:
        self._stop_polling()
        self.poller = PaymentPoller(
            self.cart_id,
            self._lookup_status,
            interval=self.settings.poll_interval_seconds,
            timeout=self.settings.poll_timeout_seconds,
            on_paid=self._on_paid,
        )
        self.poller.start()

    def _stop_polling(self) -> None:
        if self.poller is not None:
            self.poller.cancel()

    def _on_paid(self, cart_id: str) -> None:
        self.paid_order = self.store.paid_order_for_cart(cart_id)
        if self.state.step == CheckoutStep.CONFIRM:
            self.state = transitions.complete(self.state)
        logger.info("checkout_paid_by_link", order_id=str(self.paid_order.id) if self.paid_order else None)

    async def wait_for_payment(self) -> PollOutcome | None:
        if self.poller is None:
            return None
        return await self.poller.wait()

    # -------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------
    def close(self) -> None:
        """Dismiss the workflow. Any live poller is cancelled."""
        self._stop_polling()
        self._leave_confirm()
        self.state = transitions.close(self.state)
        logger.info("checkout_closed", cart_id=self.cart_id, session_id=self.session_id)
        clear_checkout_context()
