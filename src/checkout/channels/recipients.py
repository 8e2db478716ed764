"""Who receives a wallet payment request or a payment link.

A selection mixes the customer's own phone, saved contacts and phone/name
pairs typed in by the operator. Resolution validates everything before any
message is sent.
"""

import re
from dataclasses import dataclass, field

import structlog
from protean.exceptions import ValidationError

from checkout.directory.port import Directory
from checkout.errors import IntegrationError
from checkout.messaging.port import MessagingPort, Recipient

logger = structlog.get_logger(__name__)


def normalize_phone(phone: str | None) -> str:
    return re.sub(r"\D", "", phone or "")


@dataclass(frozen=True)
class CustomRecipient:
    phone: str = ""
    name: str = ""

    @property
    def is_blank(self) -> bool:
        return not self.phone.strip() and not self.name.strip()

    @property
    def is_complete(self) -> bool:
        return bool(normalize_phone(self.phone)) and bool(self.name.strip())


@dataclass(frozen=True)
class RecipientSelection:
    include_owner: bool = False
    contact_ids: tuple[str, ...] = ()
    custom: tuple[CustomRecipient, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.include_owner and not self.contact_ids and all(c.is_blank for c in self.custom)


def resolve_recipients(
    selection: RecipientSelection,
    customer_id: str | None,
    directory: Directory,
) -> list[Recipient]:
    """Turn a selection into a de-duplicated recipient list or raise ValidationError."""
    if selection.is_empty:
        raise ValidationError({"recipients": ["Select at least one recipient"]})

    incomplete = [c for c in selection.custom if not c.is_blank and not c.is_complete]
    if incomplete:
        raise ValidationError({"custom_recipients": ["Each custom recipient needs both a phone number and a name"]})

    recipients: list[Recipient] = []

    if selection.include_owner:
        customer = directory.fetch_customer(customer_id) if customer_id else None
        if customer is None or not normalize_phone(customer.phone):
            raise ValidationError({"owner": ["The customer has no phone number on file"]})
        recipients.append(Recipient(phone=normalize_phone(customer.phone), name=customer.name))

    if selection.contact_ids:
        if customer_id is None:
            raise ValidationError({"contacts": ["Contacts require a customer"]})
        contacts = directory.fetch_contacts(customer_id, list(selection.contact_ids))
        missing = set(selection.contact_ids) - {c.id for c in contacts}
        if missing:
            raise ValidationError({"contacts": [f"Unknown contact(s): {', '.join(sorted(missing))}"]})
        recipients.extend(Recipient(phone=normalize_phone(c.phone), name=c.name) for c in contacts)

    recipients.extend(
        Recipient(phone=normalize_phone(c.phone), name=c.name.strip()) for c in selection.custom if c.is_complete
    )

    unique: dict[str, Recipient] = {}
    for recipient in recipients:
        if recipient.phone:
            unique.setdefault(recipient.phone, recipient)

    if not unique:
        raise ValidationError({"recipients": ["Select at least one recipient"]})
    return list(unique.values())


def deliver(
    messenger: MessagingPort,
    recipients: list[Recipient],
    template_id: str,
    fields: dict,
) -> tuple[str, ...]:
    """Dispatch to every recipient; at least one delivery must succeed."""
    try:
        outcomes = messenger.dispatch(recipients, template_id, fields)
    except Exception as exc:
        raise IntegrationError(str(exc), provider="messaging") from exc

    delivered = tuple(phone for phone, outcome in outcomes.items() if outcome.success)
    failed = {phone: outcome.error for phone, outcome in outcomes.items() if not outcome.success}
    if failed:
        logger.warning("message_delivery_partial", template_id=template_id, failed=failed)
    if not delivered:
        reason = next((error for error in failed.values() if error), "Message could not be delivered")
        raise IntegrationError(reason, provider="messaging")
    return delivered
