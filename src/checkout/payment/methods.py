"""Payment categories and methods.

Each category branches into a mutually exclusive set of methods; a method
belongs to exactly one category.
"""

from enum import Enum


class PaymentCategory(Enum):
    APPS = "apps"
    CREDIT = "credit"
    BANK_TRANSFER = "bank_transfer"


class PaymentMethod(Enum):
    BIT = "bit"
    PAYBOX = "paybox"
    PAYMENT_PAGE = "payment_page"
    HOSTED_PAGE = "hosted_page"
    SAVED_CARD = "saved_card"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    CALLBACK = "callback"  # Settled by the gateway's payment-received callback

    @property
    def category(self) -> PaymentCategory | None:
        for category, methods in METHODS_BY_CATEGORY.items():
            if self in methods:
                return category
        return None

    @property
    def settles_immediately(self) -> bool:
        return self in IMMEDIATE_METHODS

    @property
    def takes_manual_amount(self) -> bool:
        return self in MANUAL_AMOUNT_METHODS

    @property
    def issues_invoice(self) -> bool:
        return self in INVOICE_METHODS


METHODS_BY_CATEGORY: dict[PaymentCategory, tuple[PaymentMethod, ...]] = {
    PaymentCategory.APPS: (PaymentMethod.BIT, PaymentMethod.PAYBOX, PaymentMethod.PAYMENT_PAGE),
    PaymentCategory.CREDIT: (PaymentMethod.HOSTED_PAGE, PaymentMethod.SAVED_CARD),
    PaymentCategory.BANK_TRANSFER: (PaymentMethod.BANK_TRANSFER, PaymentMethod.CASH),
}

IMMEDIATE_METHODS = frozenset(
    {
        PaymentMethod.BANK_TRANSFER,
        PaymentMethod.CASH,
        PaymentMethod.SAVED_CARD,
        PaymentMethod.HOSTED_PAGE,
        PaymentMethod.CALLBACK,
    }
)

MANUAL_AMOUNT_METHODS = frozenset({PaymentMethod.BANK_TRANSFER, PaymentMethod.CASH})

INVOICE_METHODS = MANUAL_AMOUNT_METHODS | {PaymentMethod.SAVED_CARD}


def methods_for(category: PaymentCategory) -> tuple[PaymentMethod, ...]:
    return METHODS_BY_CATEGORY[category]
