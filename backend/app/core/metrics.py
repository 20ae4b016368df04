"""
Prometheus Metrics Module.

Counters for the audit pipeline (bills, flags, savings), the paid model
calls behind it, and the learning loop that grows the rate card.
Scraped from /metrics.
"""

from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, Info, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

APP_INFO = Info("billbiopsy", "BillBiopsy build information")

# ============================================
# Audit
# ============================================
BILLS_AUDITED_TOTAL = Counter(
    "billbiopsy_bills_audited_total",
    "Bills audited, by city tier and input source",
    ["tier", "source"]
)

AUDIT_DURATION_SECONDS = Histogram(
    "billbiopsy_audit_duration_seconds",
    "Time to price a bill against the rate card (extraction excluded)",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

LINE_ITEMS_FLAGGED_TOTAL = Counter(
    "billbiopsy_line_items_flagged_total",
    "Line items charged above the overcharge threshold"
)

POTENTIAL_SAVINGS_INR = Counter(
    "billbiopsy_potential_savings_inr_total",
    "Rupees charged above standard price on flagged items"
)

BILLS_REJECTED_TOTAL = Counter(
    "billbiopsy_bills_rejected_total",
    "Bills rejected as malformed, by top-level field",
    ["field"]
)

# ============================================
# Model calls
# ============================================
EXTRACTION_DURATION_SECONDS = Histogram(
    "billbiopsy_extraction_duration_seconds",
    "Vision model extraction time",
    ["outcome"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)

UPLOAD_SIZE_BYTES = Histogram(
    "billbiopsy_upload_size_bytes",
    "Size of uploaded bill images and voice notes",
    ["endpoint"],
    buckets=[10_000, 100_000, 500_000, 1_000_000, 5_000_000, 10_000_000, 25_000_000]
)

# ============================================
# Learning loop
# ============================================
PRICE_OBSERVATIONS_TOTAL = Counter(
    "billbiopsy_price_observations_total",
    "Price observations written to the rate card",
    ["status"]
)

RATE_CARD_SERVICES = Gauge(
    "billbiopsy_rate_card_services",
    "Distinct services with a learned average price"
)

# ============================================
# HTTP
# ============================================
HTTP_REQUESTS_TOTAL = Counter(
    "billbiopsy_http_requests_total",
    "HTTP requests by route template",
    ["method", "route", "status_code"]
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "billbiopsy_http_request_duration_seconds",
    "HTTP request latency by route template",
    ["method", "route"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0]
)


router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus text exposition."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def set_app_info(version: str, environment: str):
    APP_INFO.info({"version": version, "environment": environment})


def track_audit_result(
    tier: str,
    source: str,
    flagged_count: int,
    potential_savings: float,
    duration_seconds: float,
):
    """Track a completed audit."""
    BILLS_AUDITED_TOTAL.labels(tier=tier, source=source).inc()
    AUDIT_DURATION_SECONDS.observe(duration_seconds)
    if flagged_count > 0:
        LINE_ITEMS_FLAGGED_TOTAL.inc(flagged_count)
    if potential_savings > 0:
        POTENTIAL_SAVINGS_INR.inc(potential_savings)


def track_rejected_bill(field: str):
    """Track a malformed bill; "line_items[3].price" is counted as "line_items"."""
    BILLS_REJECTED_TOTAL.labels(field=field.split(".")[0].split("[")[0]).inc()


def track_extraction(duration_seconds: float, success: bool):
    EXTRACTION_DURATION_SECONDS.labels(outcome="success" if success else "failure").observe(duration_seconds)


def track_upload_size(route: str, size_bytes: int):
    UPLOAD_SIZE_BYTES.labels(endpoint=route).observe(size_bytes)


def track_learning(recorded: int, failed: int, rate_card_size: Optional[int] = None):
    """Track rate card writes from the learning loop."""
    if recorded:
        PRICE_OBSERVATIONS_TOTAL.labels(status="recorded").inc(recorded)
    if failed:
        PRICE_OBSERVATIONS_TOTAL.labels(status="failed").inc(failed)
    if rate_card_size is not None:
        RATE_CARD_SERVICES.set(rate_card_size)


def track_http_request(method: str, route: str, status_code: int, duration_seconds: float):
    HTTP_REQUESTS_TOTAL.labels(method=method, route=route, status_code=str(status_code)).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(method=method, route=route).observe(duration_seconds)
