"""Fake messaging adapter — records dispatches for testing."""

from uuid import uuid4

from checkout.messaging.port import DispatchOutcome, MessagingPort, Recipient


class FakeMessenger(MessagingPort):
    """Messaging adapter that records messages in memory for test assertions."""

    def __init__(self):
        self.sent_messages: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Message delivery failed"
        self.failing_phones: set[str] = set()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Message delivery failed",
        failing_phones: set[str] | None = None,
    ):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.failing_phones = set(failing_phones or ())

    def dispatch(
        self,
        recipients: list[Recipient],
        template_id: str,
        fields: dict,
    ) -> dict[str, DispatchOutcome]:
        results: dict[str, DispatchOutcome] = {}
        for recipient in recipients:
            if not self.should_succeed or recipient.phone in self.failing_phones:
                results[recipient.phone] = DispatchOutcome(success=False, error=self.failure_reason)
                continue

            message_id = f"msg-{uuid4().hex[:12]}"
            self.sent_messages.append(
                {
                    "message_id": message_id,
                    "phone": recipient.phone,
                    "name": recipient.name,
                    "template_id": template_id,
                    "fields": dict(fields),
                }
            )
            results[recipient.phone] = DispatchOutcome(success=True, message_id=message_id)
        return results

    def reset(self):
        """Clear sent messages (useful between tests)."""
        self.sent_messages.clear()
        self.should_succeed = True
        self.failure_reason = "Message delivery failed"
        self.failing_phones = set()
