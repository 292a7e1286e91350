"""Checkout FastAPI application.

Web server that processes checkout commands synchronously via HTTP. Every
request runs inside the checkout domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import os
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from checkout.domain import checkout
from checkout.stores import get_stores
from checkout.stores.demo import seed_demo_stores
from checkout.utils.logging import bind_request_context, clear_request_context, configure_logging

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it.
configure_logging()
checkout.init()

if os.environ.get("CHECKOUT_SEED_DEMO") == "1":
    seed_demo_stores(get_stores())

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Checkout API",
    description="Order placement, coupons, payments and order lifecycle",
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
    """Push the checkout domain context and tag log lines with a request id."""
    clear_request_context()
    bind_request_context(
        request_id=request.headers.get("x-request-id", str(uuid4())),
        buyer_id=request.headers.get("x-buyer-id"),
    )
    with checkout.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from checkout.api import (  # noqa: E402
    admin_router,
    coupon_router,
    order_router,
    payment_router,
    register_checkout_error_handler,
)

app.include_router(order_router)
app.include_router(payment_router)
app.include_router(admin_router)
app.include_router(coupon_router)

register_exception_handlers(app)
register_checkout_error_handler(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": checkout.name})
