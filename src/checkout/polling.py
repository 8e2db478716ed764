"""Order-status poller for link-based payments.

After a payment link is sent, the session starts a ``PaymentPoller`` that
looks up the cart's order status on a fixed interval. Polling stops on the
first paid-equivalent status, on the wall-clock ceiling, or when the owning
session cancels it. The poller is an asyncio task and the session holds the
handle, so closing the session always stops it.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from enum import Enum

import structlog

from checkout.config import get_settings
from checkout.order.order import is_paid_status

logger = structlog.get_logger(__name__)

StatusLookup = Callable[[str], str | None | Awaitable[str | None]]


class PollOutcome(Enum):
    PAID = "paid"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class PaymentPoller:
    def __init__(
        self,
        cart_id: str,
        lookup: StatusLookup,
        *,
        interval: float | None = None,
        timeout: float | None = None,
        on_paid: Callable[[str], None] | None = None,
    ) -> None:
        settings = get_settings()
        self.cart_id = cart_id
        self.lookup = lookup
        self.interval = settings.poll_interval_seconds if interval is None else interval
        self.timeout = settings.poll_timeout_seconds if timeout is None else timeout
        self.on_paid = on_paid
        self.attempts = 0
        self.outcome: PollOutcome | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Schedule polling on the running event loop and return its handle."""
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self.run(), name=f"payment-poller-{self.cart_id}")
        return self._task

    def cancel(self) -> None:
        if self.running:
            self._task.cancel()

    async def wait(self) -> PollOutcome:
        if self._task is None:
            raise RuntimeError("Poller has not been started")
        try:
            return await self._task
        except asyncio.CancelledError:
            return PollOutcome.CANCELLED

    async def run(self) -> PollOutcome:
        logger.info("payment_polling_started", cart_id=self.cart_id, interval=self.interval, timeout=self.timeout)
        try:
            async with asyncio.timeout(self.timeout):
                while True:
                    await asyncio.sleep(self.interval)
                    if await self._check():
                        self.outcome = PollOutcome.PAID
                        break
        except TimeoutError:
            self.outcome = PollOutcome.TIMED_OUT
            logger.info("payment_polling_timed_out", cart_id=self.cart_id, attempts=self.attempts)
            return self.outcome
        except asyncio.CancelledError:
            self.outcome = PollOutcome.CANCELLED
            logger.info("payment_polling_cancelled", cart_id=self.cart_id, attempts=self.attempts)
            raise

        logger.info("payment_polling_paid", cart_id=self.cart_id, attempts=self.attempts)
        if self.on_paid is not None:
            self.on_paid(self.cart_id)
        return self.outcome

    async def _check(self) -> bool:
        self.attempts += 1
        try:
            status = self.lookup(self.cart_id)
            if inspect.isawaitable(status):
                status = await status
        except Exception:
            # A failed lookup is retried on the next tick.
            logger.exception("payment_status_lookup_failed", cart_id=self.cart_id, attempt=self.attempts)
            return False
        return is_paid_status(status)
