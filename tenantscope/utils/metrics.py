"""Prometheus metrics for context building and data access."""

from prometheus_client import Counter

contexts_built_total = Counter(
    "tenantscope_contexts_built_total",
    "Request contexts built, by outcome",
    ["outcome"],
)

handle_operations_total = Counter(
    "tenantscope_handle_operations_total",
    "Data-access handle operations",
    ["entity", "operation", "outcome"],
)


def record_context_build(outcome: str) -> None:
    """Increment the context build counter."""
    contexts_built_total.labels(outcome=outcome).inc()


def record_handle_operation(entity: str, operation: str, outcome: str) -> None:
    """Increment the handle operation counter."""
    handle_operations_total.labels(entity=entity, operation=operation, outcome=outcome).inc()
