"""Checkout bounded context — point-of-sale carts, orders and payments.

Handles the operator-facing checkout of a service business: assembling a
cart of appointments and product lines, reconciling edits with the stored
cart, driving one payment channel and finalizing an immutable order.
"""

import structlog
from protean.domain import Domain

checkout = Domain(name="checkout")

logger = structlog.get_logger(__name__)
