"""Messaging adapter registry.

Uses the fake adapter by default; a real chat/flow integration can be
installed with set_messenger() at startup.
"""

from checkout.messaging.fake_adapter import FakeMessenger
from checkout.messaging.port import MessagingPort

_current_messenger: MessagingPort | None = None


def get_messenger() -> MessagingPort:
    global _current_messenger
    if _current_messenger is None:
        _current_messenger = FakeMessenger()
    return _current_messenger


def set_messenger(messenger: MessagingPort) -> None:
    global _current_messenger
    _current_messenger = messenger


def reset_messenger() -> None:
    global _current_messenger
    _current_messenger = None
