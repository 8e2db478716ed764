"""Messaging port — abstract interface for customer message dispatch.

Payment requests and payment links are delivered through a chat/flow
integration keyed by phone number. One dispatch call fans out to several
recipients and reports an outcome per recipient.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Recipient:
    phone: str
    name: str


@dataclass(frozen=True)
class DispatchOutcome:
    success: bool
    message_id: str | None = None
    error: str | None = None


class MessagingPort(ABC):
    """Abstract interface for message dispatch adapters."""

    @abstractmethod
    def dispatch(
        self,
        recipients: list[Recipient],
        template_id: str,
        fields: dict,
    ) -> dict[str, DispatchOutcome]:
        """Send ``template_id`` with ``fields`` to every recipient.

        Returns:
            mapping of recipient phone to its DispatchOutcome
        """
        ...
