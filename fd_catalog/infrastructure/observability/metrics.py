"""Prometheus metrics for catalog writes, quotes and request latency"""

from typing import List, Optional

from prometheus_client import Counter, Histogram

# Quote metrics
quote_counter = Counter(
    "fd_quote_total",
    "Total FD rate quote requests",
    ["outcome"],  # quoted | no_match | invalid
)

quote_rate_histogram = Histogram(
    "fd_quote_total_rate_bps",
    "Total rate of issued quotes in basis points",
    buckets=[300, 500, 600, 700, 800, 900, 1000, 1200, 1500, 3000],
)

# Catalog write metrics
catalog_write_counter = Counter(
    "fd_catalog_write_total",
    "Catalog write attempts",
    ["operation", "outcome"],  # outcome: committed | invalid | conflict | not_found | duplicate
)

invariant_violation_counter = Counter(
    "fd_invariant_violations_total",
    "Business rule violations rejected on write",
    ["rule"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_quote(outcome: str, total_rate_bps: Optional[int] = None) -> None:
    """Record quote outcome and, for issued quotes, the rate distribution"""
    quote_counter.labels(outcome=outcome).inc()
    if total_rate_bps is not None:
        quote_rate_histogram.observe(total_rate_bps)


def record_catalog_write(operation: str, outcome: str, violated_rules: Optional[List[str]] = None) -> None:
    """Record a catalog write attempt and the rules that blocked it"""
    catalog_write_counter.labels(operation=operation, outcome=outcome).inc()
    for rule in violated_rules or []:
        invariant_violation_counter.labels(rule=rule).inc()
