"""Prometheus metrics for monitoring settlements, summary cache behaviour and request latency"""

from prometheus_client import Counter, Histogram

# Settlement metrics
installment_payment_counter = Counter(
    "finance_installment_payments_total",
    "Installment mark-paid attempts",
    ["outcome"],  # paid | already_paid | already_settled | not_found
)

account_settlement_counter = Counter(
    "finance_account_settlements_total",
    "Whole-account settlement attempts",
    ["outcome"],  # settled | already_settled | insufficient_amount | not_found
)

# Summary metrics
summary_cache_counter = Counter(
    "finance_summary_cache_total",
    "Monthly summary reads by cache result",
    ["result"],  # hit | miss | forced
)

summary_status_counter = Counter(
    "finance_summary_status_total",
    "Computed monthly summaries by financial status",
    ["status"],
)

summary_compute_histogram = Histogram(
    "finance_summary_compute_seconds",
    "Monthly summary aggregation time",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

summary_recalculation_failures_counter = Counter(
    "finance_summary_recalculation_failures_total",
    "Periods skipped during batch recalculation",
)

summary_upsert_conflicts_counter = Counter(
    "finance_summary_upsert_conflicts_total",
    "Concurrent first-access inserts resolved as updates",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_summary_read(cache_hit: bool, forced: bool) -> None:
    """Record how a summary read was served"""
    if forced:
        result = "forced"
    elif cache_hit:
        result = "hit"
    else:
        result = "miss"
    summary_cache_counter.labels(result=result).inc()
