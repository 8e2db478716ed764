"""Petcare checkout FastAPI application.

Serves the checkout lookups the operator UI polls and the gateway's
payment-received callback. Each request runs inside the checkout domain
context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied.
from checkout.domain import checkout  # noqa: E402
from checkout.utils.logging import configure_logging  # noqa: E402
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

configure_logging()
checkout.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Petcare Checkout API",
    description="Point-of-sale checkout — carts, orders and payment callbacks",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the checkout domain context for checkout requests."""
    if request.url.path.startswith("/checkout"):
        with checkout.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from checkout.api import router as checkout_router  # noqa: E402

app.include_router(checkout_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domains": {"checkout": {"name": checkout.name}}})
