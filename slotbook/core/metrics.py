"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Reservation metrics
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Total reservation attempts',
    ['result']  # success, rejected, error
)

reservation_latency = Histogram(
    'reservation_latency_seconds',
    'Reservation latency including the capacity lock',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

confirmations = Counter(
    'booking_confirmations_total',
    'Booking confirmation attempts',
    ['result']  # success, rejected, error
)

# Replenishment metrics
availability_rows_inserted = Counter(
    'availability_rows_inserted_total',
    'Availability rows created by replenishment'
)

replenishment_failures = Counter(
    'replenishment_product_failures_total',
    'Products whose replenishment failed'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation_attempt(result: str):
    """Record reservation attempt. Result: success, rejected, error"""
    reservation_attempts.labels(result=result).inc()


def record_confirmation(result: str):
    confirmations.labels(result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
