"""Prometheus metrics for reconciliation passes."""
from prometheus_client import Counter, Gauge

PASSES = Counter(
    "minicloneset_reconcile_passes_total",
    "Reconciliation passes by outcome",
    ["result"],
)
POD_OPERATIONS = Counter(
    "minicloneset_pod_operations_total",
    "Pod create/delete calls issued by the reconciler",
    ["operation"],
)
AVAILABLE_REPLICAS = Gauge(
    "minicloneset_available_replicas",
    "Ready pods last measured per MiniCloneSet",
    ["namespace", "name"],
)
CONVERSIONS = Counter(
    "minicloneset_conversions_total",
    "Objects handled by the conversion webhook",
    ["desired_version", "result"],
)
