"""Runtime settings for the checkout workflow, read from the environment."""

import os
from dataclasses import dataclass


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


@dataclass(frozen=True)
class CheckoutSettings:
    poll_interval_seconds: float = 3.0
    poll_timeout_seconds: float = 300.0
    payment_link_base_url: str = ""
    callback_url: str = ""
    currency_code: int = 1

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        return cls(
            poll_interval_seconds=_float_env("CHECKOUT_POLL_INTERVAL_SECONDS", 3.0),
            poll_timeout_seconds=_float_env("CHECKOUT_POLL_TIMEOUT_SECONDS", 300.0),
            payment_link_base_url=os.getenv("CHECKOUT_PAYMENT_LINK_BASE_URL", "").rstrip("/"),
            callback_url=os.getenv("CHECKOUT_CALLBACK_URL", ""),
            currency_code=int(os.getenv("CHECKOUT_CURRENCY_CODE", "1")),
        )


_settings: CheckoutSettings | None = None


def get_settings() -> CheckoutSettings:
    """Return the active settings, loading them from the environment once."""
    global _settings
    if _settings is None:
        _settings = CheckoutSettings.from_env()
    return _settings


def set_settings(settings: CheckoutSettings) -> None:
    """Override the active settings (useful for tests)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    global _settings
    _settings = None
