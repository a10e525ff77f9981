"""Observability for Storeguard: Prometheus metrics."""

from storeguard.observability.metrics import (
    get_metrics,
    observe_cleanup_run,
    record_cleanup_failure,
    record_cleanup_records,
    record_subject_request,
)

__all__ = [
    "get_metrics",
    "observe_cleanup_run",
    "record_cleanup_failure",
    "record_cleanup_records",
    "record_subject_request",
]
