"""
Locust Load Test Suite

Point the run at a seeded product and one of its availability dates:
  export PRODUCT_ID=<uuid> AVAILABILITY_ID=<uuid>

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overselling
  locust -f locustfile.py --tags throughput   # Test catalog cache / vacancy reads
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import uuid
from datetime import date, timedelta

from locust import HttpUser, between, events, tag, task

PRODUCT_ID = os.environ.get("PRODUCT_ID")
AVAILABILITY_ID = os.environ.get("AVAILABILITY_ID")

# Bookings created during the run, for the confirm task
BOOKING_IDS = []


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Target product:      {PRODUCT_ID or '(unset)'}")
    print(f"Target availability: {AVAILABILITY_ID or '(unset)'}")
    print("=" * 60)


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    print(f"\n{len(BOOKING_IDS)} bookings reserved during the run")


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many users race for one availability

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM tickets t JOIN bookings b ON b.id = t.booking_id
      WHERE b.availability_id = '<AVAILABILITY_ID>';
    Should be <= the product's capacity
    """

    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task(5)
    def reserve_one_unit(self):
        if not (PRODUCT_ID and AVAILABILITY_ID):
            return

        with self.client.post(
            "/api/v1/bookings",
            json={"productId": PRODUCT_ID, "availabilityId": AVAILABILITY_ID, "units": 1},
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                BOOKING_IDS.append(resp.json()["id"])
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # Expected: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task(1)
    def confirm_booking(self):
        if not BOOKING_IDS:
            return

        booking_id = random.choice(BOOKING_IDS)
        with self.client.post(
            f"/api/v1/bookings/{booking_id}/confirm",
            name="/api/v1/bookings/{id}/confirm",
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # Expected: already confirmed
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - catalog cache and vacancy queries

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the server, run again

    Compare avg response time, requests/sec and P95/P99 latency of the
    product endpoints. Availability reads are never cached.
    """

    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_products_cached(self):
        self.client.get("/api/v1/products", name="/api/v1/products [cached]")

    @tag("throughput", "read")
    @task(5)
    def get_product(self):
        if PRODUCT_ID:
            self.client.get(f"/api/v1/products/{PRODUCT_ID}", name="/api/v1/products/{id}")

    @tag("throughput", "read")
    @task(5)
    def query_availability_range(self):
        if not PRODUCT_ID:
            return
        start = date.today() + timedelta(days=random.randint(0, 300))
        self.client.post(
            "/api/v1/availability",
            json={
                "productId": PRODUCT_ID,
                "localDateStart": start.isoformat(),
                "localDateEnd": (start + timedelta(days=30)).isoformat(),
            },
            name="/api/v1/availability [range]",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash; every case must come back as a 4xx problem response.
    """

    wait_time = between(0.5, 1.5)

    def _expect(self, resp, *codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_availability(self):
        with self.client.post(
            "/api/v1/bookings",
            json={"productId": str(uuid.uuid4()), "availabilityId": str(uuid.uuid4()), "units": 1},
            catch_response=True,
        ) as resp:
            self._expect(resp, 404)

    @tag("edge")
    @task
    def zero_units(self):
        with self.client.post(
            "/api/v1/bookings",
            json={"productId": PRODUCT_ID, "availabilityId": AVAILABILITY_ID, "units": 0},
            catch_response=True,
        ) as resp:
            self._expect(resp, 400)

    @tag("edge")
    @task
    def huge_units(self):
        if not (PRODUCT_ID and AVAILABILITY_ID):
            return
        with self.client.post(
            "/api/v1/bookings",
            json={"productId": PRODUCT_ID, "availabilityId": AVAILABILITY_ID, "units": 999999},
            catch_response=True,
        ) as resp:
            self._expect(resp, 400)

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            catch_response=True,
        ) as resp:
            self._expect(resp, 400)

    @tag("edge")
    @task
    def malformed_booking_id(self):
        with self.client.get(
            "/api/v1/bookings/not-a-uuid",
            name="/api/v1/bookings/[malformed]",
            catch_response=True,
        ) as resp:
            self._expect(resp, 400)

    @tag("edge")
    @task
    def inverted_date_range(self):
        with self.client.post(
            "/api/v1/availability",
            json={
                "productId": PRODUCT_ID or str(uuid.uuid4()),
                "localDateStart": "2030-01-10",
                "localDateEnd": "2030-01-01",
            },
            catch_response=True,
        ) as resp:
            self._expect(resp, 400)


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing and vacancy checks, some reservations, fewer confirmations.
    """

    wait_time = between(1, 3)

    @task(30)
    def browse_products(self):
        self.client.get("/api/v1/products")

    @task(30)
    def check_date(self):
        if PRODUCT_ID:
            day = date.today() + timedelta(days=random.randint(0, 60))
            self.client.post(
                "/api/v1/availability",
                json={"productId": PRODUCT_ID, "localDate": day.isoformat()},
                name="/api/v1/availability [date]",
            )

    @task(10)
    def reserve(self):
        if PRODUCT_ID and AVAILABILITY_ID:
            resp = self.client.post(
                "/api/v1/bookings",
                json={
                    "productId": PRODUCT_ID,
                    "availabilityId": AVAILABILITY_ID,
                    "units": random.randint(1, 3),
                },
            )
            if resp.status_code == 201:
                BOOKING_IDS.append(resp.json()["id"])

    @task(5)
    def view_booking(self):
        if BOOKING_IDS:
            self.client.get(f"/api/v1/bookings/{random.choice(BOOKING_IDS)}", name="/api/v1/bookings/{id}")

    @task(3)
    def confirm(self):
        if BOOKING_IDS:
            self.client.post(
                f"/api/v1/bookings/{random.choice(BOOKING_IDS)}/confirm",
                name="/api/v1/bookings/{id}/confirm",
            )
