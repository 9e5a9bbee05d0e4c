"""Prometheus metrics for the delivery subsystem."""

from prometheus_client import Counter, Histogram

EVENTS_SENT = Counter(
    'cloudwatch_shipper_events_sent_total',
    'Total log events accepted by the log stream',
    ['log_group']
)

BATCHES_SENT = Counter(
    'cloudwatch_shipper_batches_sent_total',
    'Total successful append calls',
    ['log_group']
)

SEQUENCE_TOKEN_CONFLICTS = Counter(
    'cloudwatch_shipper_sequence_token_conflicts_total',
    'Appends retried because the sequence token was stale',
    ['log_group']
)

MESSAGES_DROPPED = Counter(
    'cloudwatch_shipper_messages_dropped_total',
    'Messages discarded by the queue overflow policy',
    ['log_group']
)

WORKER_RESTARTS = Counter(
    'cloudwatch_shipper_worker_restarts_total',
    'Delivery workers replaced after dying or a fork',
    ['log_group']
)

APPEND_DURATION = Histogram(
    'cloudwatch_shipper_append_duration_seconds',
    'Time spent in append calls, including sequence token retries',
    ['log_group']
)
