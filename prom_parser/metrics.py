"""Prometheus metrics for the catalog parser."""

from prometheus_client import Counter, Histogram, Info

# Application info
app_info = Info("prom_parser", "Prom catalog parser application info")
app_info.info({"version": "0.1.0", "name": "prom-parser"})

# Relay metrics
relay_requests_total = Counter(
    "relay_requests_total",
    "Total number of relay fetch attempts",
    ["relay", "status"],
)

relay_request_duration_seconds = Histogram(
    "relay_request_duration_seconds",
    "Time spent waiting on a relay",
    ["relay"],
    buckets=[0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0],
)

# Crawl metrics
pages_crawled_total = Counter(
    "pages_crawled_total",
    "Total number of category pages processed",
    ["status"],
)

products_extracted_total = Counter(
    "products_extracted_total",
    "Total number of product records extracted",
    ["view"],
)

# Export metrics
exports_total = Counter(
    "exports_total",
    "Total number of exports produced",
    ["format", "status"],
)

hydrations_total = Counter(
    "hydrations_total",
    "Total number of detail hydration attempts",
    ["status"],
)


def record_relay_request(relay: str, status: str, duration: float) -> None:
    """Record a single relay attempt."""
    relay_requests_total.labels(relay=relay, status=status).inc()
    relay_request_duration_seconds.labels(relay=relay).observe(duration)


def record_page(status: str) -> None:
    """Record a processed category page."""
    pages_crawled_total.labels(status=status).inc()


def record_products(view: str, count: int) -> None:
    """Record extracted products ("list" or "detail" view)."""
    if count:
        products_extracted_total.labels(view=view).inc(count)


def record_export(fmt: str, status: str) -> None:
    """Record an export attempt."""
    exports_total.labels(format=fmt, status=status).inc()


def record_hydration(success: bool) -> None:
    """Record a detail hydration attempt."""
    hydrations_total.labels(status="success" if success else "failed").inc()
