"""FastAPI routes for the Checkout domain."""

from urllib.parse import parse_qsl

from fastapi import APIRouter, Header, HTTPException, Request
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from checkout.api.schemas import (
    ActiveCartResponse,
    AppointmentLineSchema,
    CallbackResponse,
    OrderStatusResponse,
    ProductLineSchema,
)
from checkout.cart.lines import AppointmentLine, ServiceProductLine
from checkout.cart.store import CartStore
from checkout.gateway import get_gateway
from checkout.order.finalizer import compute_subtotal
from checkout.order.order import is_paid_status
from checkout.payment.callback import CallbackRejected, ProcessPaymentCallback

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.get("/carts/{cart_id}/order-status", response_model=OrderStatusResponse)
async def get_order_status(cart_id: str) -> OrderStatusResponse:
    """Status of the cart's order; this is what the payment poller asks."""
    view = CartStore().order_status(cart_id)
    if view is None:
        return OrderStatusResponse()
    return OrderStatusResponse(order_id=view.order_id, status=view.status, is_paid=is_paid_status(view.status))


@router.get("/customers/{customer_id}/active-cart", response_model=ActiveCartResponse)
async def get_active_cart(customer_id: str) -> ActiveCartResponse:
    store = CartStore()
    cart = store.find_active_cart(customer_id)
    if cart is None:
        raise HTTPException(status_code=404, detail="No active cart for customer")

    lines = store.load_lines(str(cart.id))
    appointments = []
    for line in lines.appointments:
        match line:
            case AppointmentLine():
                appointments.append(
                    AppointmentLineSchema(
                        id=line.id,
                        kind=line.ref.kind.value,
                        appointment_id=line.ref.id,
                        price=float(line.price),
                    )
                )
            case ServiceProductLine():
                appointments.append(
                    AppointmentLineSchema(id=line.id, kind="service_product", label=line.label, price=float(line.price))
                )

    return ActiveCartResponse(
        cart_id=str(cart.id),
        customer_id=cart.customer_id,
        status=cart.status,
        products=[
            ProductLineSchema(
                id=line.id,
                name=line.name,
                quantity=line.quantity,
                unit_price=float(line.unit_price),
                product_id=line.product_id,
            )
            for line in lines.products
        ],
        appointments=appointments,
        subtotal=float(compute_subtotal(lines)),
    )


@router.post("/callbacks/payment-received", response_model=CallbackResponse)
async def payment_received(
    request: Request,
    x_gateway_signature: str = Header(default=""),
) -> CallbackResponse:
    """Gateway notification that a hosted-page payment went through."""
    body = (await request.body()).decode()
    if not get_gateway().verify_callback_signature(body, x_gateway_signature):
        raise HTTPException(status_code=401, detail="Invalid callback signature")

    if request.headers.get("content-type", "").startswith("application/json"):
        form = await request.json()
    else:
        form = dict(parse_qsl(body))

    try:
        outcome = current_domain.process(ProcessPaymentCallback.from_form(form), asynchronous=False)
    except CallbackRejected as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Cart not found") from exc
    return CallbackResponse(status=outcome.status, order_id=outcome.order_id)
