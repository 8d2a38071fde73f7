from .metrics import (
    marketplace_cancellation_total,
    marketplace_checkout_duration_seconds,
    marketplace_checkout_total,
    marketplace_order_transitions_total,
    marketplace_stock_conflicts_total,
)
from .setup import setup_observability
