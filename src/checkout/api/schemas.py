"""Pydantic request/response schemas for the Checkout API.

These are external contracts (anti-corruption layer) — separate from the
working-copy line types and the aggregates.
"""

from pydantic import BaseModel


class OrderStatusResponse(BaseModel):
    order_id: str | None = None
    status: str | None = None
    is_paid: bool = False


class ProductLineSchema(BaseModel):
    id: str
    name: str
    quantity: int
    unit_price: float
    product_id: str | None = None


class AppointmentLineSchema(BaseModel):
    id: str
    kind: str  # grooming, daycare or service_product
    appointment_id: str | None = None
    label: str | None = None
    price: float


class ActiveCartResponse(BaseModel):
    cart_id: str
    customer_id: str | None = None
    status: str
    products: list[ProductLineSchema]
    appointments: list[AppointmentLineSchema]
    subtotal: float


class CallbackResponse(BaseModel):
    status: str
    order_id: str | None = None
