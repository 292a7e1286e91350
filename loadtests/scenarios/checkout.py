"""Checkout load test scenarios.

Stateful SequentialTaskSet journeys covering the buyer checkout flow
(place, pay, verify), cancellations, coupon administration and a
contention scenario where many buyers race for a scarce SKU.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    buyer_headers,
    coupon_data,
    gateway_completion,
    order_data,
    random_buyer,
    scarce_order_data,
    tampered_order_data,
)
from loadtests.helpers.response import error_code, extract_error_detail
from loadtests.helpers.state import BuyerState, CouponState


class _BuyerJourney(SequentialTaskSet):
    def on_start(self):
        self.state = BuyerState()
        self.state.buyer_id, self.state.address_id = random_buyer()

    @property
    def headers(self):
        return buyer_headers(self.state.buyer_id)

    def place_order(self, payload, name="POST /orders"):
        with self.client.post(
            "/orders",
            json=payload,
            headers=self.headers,
            catch_response=True,
            name=name,
        ) as resp:
            if resp.status_code == 201:
                body = resp.json()
                self.state.order_id = body["id"]
                self.state.grand_total = body["pricing"]["grand_total"]
                return True
            resp.failure(f"Place order failed: {resp.status_code} — {extract_error_detail(resp)}")
            return False


class GatewayCheckoutJourney(_BuyerJourney):
    """Place Order -> Open Gateway Session -> Verify Signature -> View Order.

    Models a buyer paying by card or UPI through the hosted checkout page.
    """

    @task
    def place(self):
        if not self.place_order(order_data(self.state.address_id, num_items=random.randint(1, 3))):
            self.interrupt()

    @task
    def open_session(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/payments",
            json={"method": random.choice(["card", "upi"])},
            headers=self.headers,
            catch_response=True,
            name="POST /orders/{id}/payments [gateway]",
        ) as resp:
            if resp.status_code == 201:
                body = resp.json()
                self.state.session_id = body["session_id"]
                self.state.attempt_ids.append(body["attempt_id"])
            else:
                resp.failure(f"Open session failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def verify(self):
        with self.client.post(
            "/payments/verify",
            json=gateway_completion(self.state.session_id),
            headers=self.headers,
            catch_response=True,
            name="POST /payments/verify",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Verify failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def view_order(self):
        with self.client.get(
            f"/orders/{self.state.order_id}",
            headers=self.headers,
            catch_response=True,
            name="GET /orders/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"View order failed: {resp.status_code} — {extract_error_detail(resp)}")
            elif resp.json()["payment_status"] != "paid":
                resp.failure(f"Order not paid after verification: {resp.json()['payment_status']}")

    @task
    def done(self):
        self.interrupt()


class CashOnDeliveryJourney(_BuyerJourney):
    """Place Order -> Cash on Delivery -> Change Address -> List Orders.

    Models a buyer choosing to pay on delivery and re-routing the parcel.
    """

    @task
    def place(self):
        if not self.place_order(order_data(self.state.address_id)):
            self.interrupt()

    @task
    def cash_on_delivery(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/payments",
            json={"method": "cod"},
            headers=self.headers,
            catch_response=True,
            name="POST /orders/{id}/payments [cod]",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"COD failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def change_address(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/shipping-address",
            json={"address_id": self.state.address_id},
            headers=self.headers,
            catch_response=True,
            name="PUT /orders/{id}/shipping-address",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Change address failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def list_orders(self):
        with self.client.get(
            "/orders",
            params={"limit": 5},
            headers=self.headers,
            catch_response=True,
            name="GET /orders",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"List orders failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CancellationJourney(_BuyerJourney):
    """Place Order -> Cancel -> Cancel Again.

    The second cancel must be a no-op that still succeeds.
    """

    @task
    def place(self):
        if not self.place_order(order_data(self.state.address_id, num_items=1)):
            self.interrupt()

    @task
    def cancel(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/cancel",
            json={"reason": "Changed my mind"},
            headers=self.headers,
            catch_response=True,
            name="POST /orders/{id}/cancel",
        ) as resp:
            if resp.status_code == 200 and resp.json()["changed"]:
                self.state.current_status = "cancelled"
            else:
                resp.failure(f"Cancel failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def cancel_again(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/cancel",
            headers=self.headers,
            catch_response=True,
            name="POST /orders/{id}/cancel [repeat]",
        ) as resp:
            if resp.status_code != 200 or resp.json()["changed"]:
                resp.failure(f"Repeat cancel was not a no-op: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class TamperedPriceJourney(_BuyerJourney):
    """Submit an order quoting a bogus price; the server must refuse it."""

    @task
    def tampered_order(self):
        with self.client.post(
            "/orders",
            json=tampered_order_data(self.state.address_id),
            headers=self.headers,
            catch_response=True,
            name="POST /orders [tampered]",
        ) as resp:
            if resp.status_code == 400 and error_code(resp) == "UnitPriceMismatch":
                resp.success()
            else:
                resp.failure(f"Tampered price not rejected: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CheckoutUser(HttpUser):
    """Locust user simulating buyers checking out.

    Weighted distribution:
    - 40% Gateway checkout (card/UPI with signature verification)
    - 30% Cash on delivery
    - 20% Cancellation
    - 10% Tampered price (must be rejected)
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        GatewayCheckoutJourney: 4,
        CashOnDeliveryJourney: 3,
        CancellationJourney: 2,
        TamperedPriceJourney: 1,
    }


class CouponAdminJourney(SequentialTaskSet):
    """Create Coupon -> Validate -> Update -> Deactivate."""

    def on_start(self):
        self.state = CouponState()

    @task
    def create(self):
        payload = coupon_data()
        with self.client.post("/coupons", json=payload, catch_response=True, name="POST /coupons") as resp:
            if resp.status_code == 201:
                self.state.coupon_id = resp.json()["coupon_id"]
                self.state.code = payload["code"]
                self.state.created_codes.append(payload["code"])
            else:
                resp.failure(f"Create coupon failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def validate(self):
        buyer_id, _ = random_buyer()
        with self.client.post(
            "/coupons/validate",
            json={"code": self.state.code, "order_total": 100.0},
            headers=buyer_headers(buyer_id),
            catch_response=True,
            name="POST /coupons/validate",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Validate coupon failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def update(self):
        with self.client.put(
            f"/coupons/{self.state.coupon_id}",
            json={"min_order_value": random.choice([0, 20, 50])},
            catch_response=True,
            name="PUT /coupons/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Update coupon failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def deactivate(self):
        with self.client.delete(
            f"/coupons/{self.state.coupon_id}",
            catch_response=True,
            name="DELETE /coupons/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Deactivate coupon failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CouponAdminUser(HttpUser):
    """Locust user simulating a merchandiser managing coupons."""

    wait_time = between(2.0, 5.0)
    tasks = [CouponAdminJourney]


class InventoryContentionUser(HttpUser):
    """Many buyers racing for the scarce SKU.

    Once stock runs out, orders must fail with ``InsufficientInventory`` or
    ``InventoryRace``; those count as successes. Compare the number of
    placed orders against ``SCARCE_STOCK`` afterwards to check overselling.
    """

    wait_time = between(0.1, 0.5)

    @task
    def buy_scarce_item(self):
        buyer_id, address_id = random_buyer()
        with self.client.post(
            "/orders",
            json=scarce_order_data(address_id),
            headers=buyer_headers(buyer_id),
            catch_response=True,
            name="POST /orders [scarce]",
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif error_code(resp) in ("InsufficientInventory", "InventoryRace"):
                resp.success()
            else:
                resp.failure(f"Unexpected failure: {resp.status_code} — {extract_error_detail(resp)}")
