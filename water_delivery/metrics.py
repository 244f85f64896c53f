from prometheus_client import Counter

EVENTS_PROCESSED = Counter(
    "events_processed_total",
    "Total reactions completed per published event",
    ["event_type"]
)

EVENTS_FAILED = Counter(
    "events_failed_total",
    "Total reactions that raised per published event",
    ["event_type"]
)

ORDERS_PLACED = Counter(
    "orders_placed_total",
    "Total orders created"
)

BROADCASTS_SENT = Counter(
    "broadcasts_sent_total",
    "Real-time messages pushed to channel subscribers",
    ["event"]
)
