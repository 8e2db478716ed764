"""Checkout workflow state machine.

State Machine:
    REVIEW(1) → CATEGORY(2) → METHOD(3) → CONFIRM(4) → CLOSED

Moving back, or jumping to any earlier step, clears the choice made at the
target step and at every step after it: the category is chosen at CATEGORY and
the method at METHOD.

Transitions are pure functions over an immutable ``WorkflowState``; side
effects (committing the cart, running a channel) belong to the session.
"""

from dataclasses import dataclass, replace
from enum import IntEnum

from protean.exceptions import ValidationError

from checkout.errors import WorkflowError
from checkout.payment.methods import PaymentCategory, PaymentMethod, methods_for


class CheckoutStep(IntEnum):
    REVIEW = 1
    CATEGORY = 2
    METHOD = 3
    CONFIRM = 4
    CLOSED = 5


@dataclass(frozen=True)
class WorkflowState:
    step: CheckoutStep = CheckoutStep.REVIEW
    category: PaymentCategory | None = None
    method: PaymentMethod | None = None

    @property
    def is_closed(self) -> bool:
        return self.step == CheckoutStep.CLOSED


def _require(state: WorkflowState, step: CheckoutStep, action: str) -> None:
    if state.step != step:
        raise WorkflowError(f"Cannot {action} from step {state.step.name}")


def open_workflow() -> WorkflowState:
    return WorkflowState()


def advance_from_review(state: WorkflowState, has_billable_line: bool) -> WorkflowState:
    _require(state, CheckoutStep.REVIEW, "continue to payment")
    if not has_billable_line:
        raise ValidationError({"cart": ["Add at least one billable item before continuing"]})
    return replace(state, step=CheckoutStep.CATEGORY)


def choose_category(state: WorkflowState, category: PaymentCategory) -> WorkflowState:
    _require(state, CheckoutStep.CATEGORY, "choose a payment category")
    return WorkflowState(step=CheckoutStep.METHOD, category=category, method=None)


def choose_method(state: WorkflowState, method: PaymentMethod) -> WorkflowState:
    _require(state, CheckoutStep.METHOD, "choose a payment method")
    if method not in methods_for(state.category):
        raise ValidationError({"method": [f"'{method.value}' is not offered under '{state.category.value}'"]})
    return replace(state, step=CheckoutStep.CONFIRM, method=method)


def jump_to(state: WorkflowState, target: CheckoutStep) -> WorkflowState:
    """Return to an earlier step, clearing everything chosen after it."""
    if state.is_closed:
        raise WorkflowError("The checkout is closed")
    if target >= state.step or target == CheckoutStep.CLOSED:
        raise WorkflowError(f"Cannot jump from {state.step.name} to {target.name}")

    category = state.category if target >= CheckoutStep.METHOD else None
    method = state.method if target >= CheckoutStep.CONFIRM else None
    return WorkflowState(step=target, category=category, method=method)


def go_back(state: WorkflowState) -> WorkflowState:
    if state.step == CheckoutStep.REVIEW:
        raise WorkflowError("Already at the first step")
    return jump_to(state, CheckoutStep(state.step - 1))


def complete(state: WorkflowState) -> WorkflowState:
    """Finalization succeeded."""
    _require(state, CheckoutStep.CONFIRM, "complete the checkout")
    return replace(state, step=CheckoutStep.CLOSED)


def close(state: WorkflowState) -> WorkflowState:
    """Operator dismissed the workflow."""
    return replace(state, step=CheckoutStep.CLOSED)
