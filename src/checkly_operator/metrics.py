"""Prometheus metrics for the Checkly Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "checkly_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "checkly_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Remote alert channel mutations
channel_operations_total = Counter(
    "checkly_operator_channel_operations_total",
    "Total number of Checkly alert channel operations",
    ["operation", "result"],
)

finalizer_operations_total = Counter(
    "checkly_operator_finalizer_operations_total",
    "Total number of finalizer attach/remove operations",
    ["operation"],
)

error_total = Counter(
    "checkly_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

# API call metrics
api_call_total = Counter(
    "checkly_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "checkly_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)
