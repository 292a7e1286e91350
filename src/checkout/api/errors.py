"""Render checkout failures as ``{"error": {...}}`` responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from checkout.errors import CheckoutError

logger = structlog.get_logger(__name__)


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Checkout request failed", path=request.url.path, code=exc.code, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


def register_checkout_error_handler(app: FastAPI) -> None:
    app.add_exception_handler(CheckoutError, checkout_error_handler)
