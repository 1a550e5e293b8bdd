"""Monitoring configuration for the scheduler."""
from prometheus_client import Counter, Gauge, start_http_server

# Review metrics
answers_submitted = Counter(
    "hanzisrs_answers_submitted_total",
    "Total number of SRS answers recorded",
    ["result"],
)

week_milestones = Counter(
    "hanzisrs_week_milestones_total",
    "Total number of items whose interval first reached one week",
)

items_mastered = Counter(
    "hanzisrs_items_mastered_total",
    "Total number of items that reached mastery",
)

practice_answers = Counter(
    "hanzisrs_practice_answers_total",
    "Total number of self-study answers logged",
    ["result"],
)

# Unlock metrics
unlock_batches = Counter(
    "hanzisrs_unlock_batches_total",
    "Total number of unlock batches released",
    ["kind"],  # initial, batch
)

items_unlocked = Counter(
    "hanzisrs_items_unlocked_total",
    "Total number of items placed in the ready queue",
)

ready_queue_size = Gauge(
    "hanzisrs_ready_queue_size",
    "Number of unlocked items not yet introduced",
)

# Database metrics
db_errors = Counter(
    "hanzisrs_db_errors_total",
    "Total number of database errors",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
