"""Checkout Load Testing — Locust entry point.

The target server must run with the in-memory demo data and the fake
payment gateway:

    CHECKOUT_SEED_DEMO=1 uvicorn app:app --app-dir src --port 8000

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py

    # Buyers only:
    locust -f loadtests/locustfile.py CheckoutUser

    # Inventory contention on the scarce SKU:
    locust -f loadtests/locustfile.py InventoryContentionUser

    # Headless (CI mode):
    locust -f loadtests/locustfile.py CheckoutUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

import requests
from locust import events

from checkout.stores.demo import SCARCE_PRODUCT_ID, SCARCE_STOCK
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.checkout import CheckoutUser, CouponAdminUser, InventoryContentionUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request.

    Extracts the API error body so you see "InventoryRace: Stock for product ..."
    instead of just "409".
    """
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    """Log a marker when load test begins."""
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    print(f"[LOADTEST] Scarce SKU {SCARCE_PRODUCT_ID} starts with {SCARCE_STOCK} units")
    print()


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Report how many orders the server recorded when the test ends."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    try:
        resp = requests.get(f"{environment.host}/admin/orders", params={"limit": 1}, timeout=5)
        print(f"[LOADTEST] Orders recorded: {resp.json()['total']}")
    except Exception as e:
        print(f"[LOADTEST] Could not fetch order totals: {e}\n")
