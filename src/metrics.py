"""Prometheus metrics for the sidecar terminator operator."""

from prometheus_client import Counter, Histogram, Gauge, Info

# Reconciliation metrics
RECONCILE_TOTAL = Counter(
    "sidecar_operator_reconcile_total",
    "Total number of reconciliations",
    ["trigger", "status"],
)

RECONCILE_DURATION = Histogram(
    "sidecar_operator_reconcile_duration_seconds",
    "Time spent in reconciliation",
    ["trigger"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

RECONCILE_IN_PROGRESS = Gauge(
    "sidecar_operator_reconcile_in_progress",
    "Number of reconciliations currently in progress",
)

RECONCILE_COALESCED = Counter(
    "sidecar_operator_reconcile_coalesced_total",
    "Reconcile triggers absorbed by an in-flight reconcile of the same resource",
    ["trigger"],
)

PODS_DELETED = Counter(
    "sidecar_operator_pods_deleted_total",
    "Total number of pods deleted by delete rules",
    ["namespace"],
)

# Kubernetes API metrics
KUBE_API_CALLS = Counter(
    "sidecar_operator_kube_api_calls_total",
    "Total number of Kubernetes API calls",
    ["operation", "status"],
)

KUBE_API_DURATION = Histogram(
    "sidecar_operator_kube_api_duration_seconds",
    "Time spent in Kubernetes API calls",
    ["operation"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

RATE_LIMIT_WAIT_SECONDS = Histogram(
    "sidecar_operator_rate_limit_wait_seconds",
    "Time spent waiting for rate limit slot",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

# Operator info
OPERATOR_INFO = Info(
    "sidecar_operator",
    "Information about the sidecar terminator operator",
)

TRIGGERS = ["create", "update", "resume", "pod", "timer"]
KUBE_OPERATIONS = [
    "get_sidecar",
    "list_namespaces",
    "list_pods",
    "delete_pod",
    "replace_sidecar_status",
]


def set_operator_info(version: str, watch_scope: str) -> None:
    """Set operator info labels."""
    OPERATOR_INFO.info({"version": version, "watch_scope": watch_scope})


def init_metrics() -> None:
    """Initialize all metrics with zero values.

    Prometheus metrics with labels don't appear until used.
    This ensures all metrics are visible immediately at startup.
    """
    statuses = ["success", "error"]

    RECONCILE_IN_PROGRESS.set(0)
    for trigger in TRIGGERS:
        RECONCILE_DURATION.labels(trigger=trigger)
        RECONCILE_COALESCED.labels(trigger=trigger)
        for status in statuses:
            RECONCILE_TOTAL.labels(trigger=trigger, status=status)

    for operation in KUBE_OPERATIONS:
        KUBE_API_DURATION.labels(operation=operation)
        for status in statuses:
            KUBE_API_CALLS.labels(operation=operation, status=status)
