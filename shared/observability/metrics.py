from prometheus_client import Counter, Histogram

# Business Metrics
marketplace_checkout_total = Counter(
    "marketplace_checkout_total",
    "Total checkouts processed",
    ["status"] # Labels: 'success', 'rejected', 'failed'
)

marketplace_checkout_duration_seconds = Histogram(
    "marketplace_checkout_duration_seconds",
    "Checkout duration in seconds"
)

marketplace_cancellation_total = Counter(
    "marketplace_cancellation_total",
    "Total order cancellations processed",
    ["status"] # Labels: 'success', 'rejected', 'failed'
)

marketplace_stock_conflicts_total = Counter(
    "marketplace_stock_conflicts_total",
    "Reservations rejected by the conditional stock update"
)

marketplace_order_transitions_total = Counter(
    "marketplace_order_transitions_total",
    "Order status transitions applied",
    ["from_status", "to_status"]
)
