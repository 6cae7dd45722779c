"""
Prometheus metrics endpoint.

Exposes webhook pipeline metrics for monitoring.
"""
from fastapi import APIRouter, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

router = APIRouter()

# ============================================
# HTTP Request Metrics
# ============================================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# ============================================
# Webhook Pipeline Metrics
# ============================================

webhooks_enqueued = Counter(
    'webhooks_enqueued_total',
    'Enqueue outcomes for recorded responses',
    ['outcome']  # queued, skipped, error
)

webhook_attempts = Counter(
    'webhook_attempts_total',
    'Webhook delivery attempts made by the dispatcher',
    ['outcome']  # sent, retry, failed
)

webhook_batches = Counter(
    'webhook_dispatch_batches_total',
    'Dispatcher runs',
    ['outcome']  # ok, error
)

webhook_relays = Counter(
    'webhook_relays_total',
    'Ad-hoc relay calls',
    ['outcome']  # sent, failed, rejected
)


# ============================================
# Metrics Helper Functions
# ============================================

def track_request(method: str, endpoint: str, status: int, duration_seconds: float):
    """
    Record HTTP request metrics.
    
    Call this after each request.
    """
    http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status=status
    ).inc()
    
    http_request_duration.labels(
        method=method,
        endpoint=endpoint
    ).observe(duration_seconds)


def track_enqueue(outcome: str):
    """Record the outcome of an enqueue call."""
    webhooks_enqueued.labels(outcome=outcome).inc()


def track_attempt(outcome: str):
    """Record one dispatcher delivery attempt."""
    webhook_attempts.labels(outcome=outcome).inc()


def track_batch(outcome: str):
    """Record a dispatcher run."""
    webhook_batches.labels(outcome=outcome).inc()


def track_relay(outcome: str):
    """Record an ad-hoc relay call."""
    webhook_relays.labels(outcome=outcome).inc()


# ============================================
# Prometheus Endpoint
# ============================================

@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.
    
    Returns all registered metrics in Prometheus format.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
