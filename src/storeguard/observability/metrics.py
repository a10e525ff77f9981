"""Prometheus metrics for Storeguard.

This module provides Prometheus metrics for monitoring:
- Records archived and purged per entity class
- Failed cleanup tasks
- Cleanup run duration per cadence
- Subject export and erasure requests by outcome
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, generate_latest

from storeguard.config.settings import get_settings

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "CLEANUP_RECORDS",
    "CLEANUP_TASK_FAILURES",
    "CLEANUP_RUN_DURATION",
    "SUBJECT_REQUESTS",
    "get_metrics",
    "observe_cleanup_run",
    "record_cleanup_failure",
    "record_cleanup_records",
    "record_subject_request",
]

PREFIX = "storeguard"

# ============================================================================
# Cleanup Metrics
# ============================================================================

CLEANUP_RECORDS = Counter(
    f"{PREFIX}_cleanup_records_total",
    "Records moved or removed by retention cleanup",
    ["entity_class", "action"],
)

CLEANUP_TASK_FAILURES = Counter(
    f"{PREFIX}_cleanup_task_failures_total",
    "Cleanup tasks that ended in an error",
    ["entity_class"],
)

CLEANUP_RUN_DURATION = Histogram(
    f"{PREFIX}_cleanup_run_duration_seconds",
    "Wall time of a complete cleanup run",
    ["kind"],
    buckets=(0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0, 900.0),
)

# ============================================================================
# Subject Rights Metrics
# ============================================================================

SUBJECT_REQUESTS = Counter(
    f"{PREFIX}_subject_requests_total",
    "Subject export and erasure requests",
    ["request_type", "outcome"],
)


def _enabled() -> bool:
    return get_settings().metrics_enabled


def get_metrics(registry: CollectorRegistry | None = None) -> bytes:
    """Get current metrics in Prometheus exposition format."""
    return generate_latest(registry or REGISTRY)


def record_cleanup_records(entity_class: str, action: str, count: int) -> None:
    """Count records archived/purged/deleted for an entity class."""
    if not _enabled() or count <= 0:
        return
    CLEANUP_RECORDS.labels(entity_class=entity_class, action=action).inc(count)


def record_cleanup_failure(entity_class: str) -> None:
    if not _enabled():
        return
    CLEANUP_TASK_FAILURES.labels(entity_class=entity_class).inc()


def record_subject_request(request_type: str, outcome: str) -> None:
    """Count a subject-facing request (export, deletion_request, deletion_confirm)."""
    if not _enabled():
        return
    SUBJECT_REQUESTS.labels(request_type=request_type, outcome=outcome).inc()


@contextmanager
def observe_cleanup_run(kind: str) -> Generator[dict[str, Any], None, None]:
    """Context manager timing a cleanup run.

    Args:
        kind: Run cadence ("daily" or "monthly")

    Yields:
        Context dict; the measured duration is stored under ``duration``.
    """
    context: dict[str, Any] = {}
    start_time = time.perf_counter()
    try:
        yield context
    finally:
        duration = time.perf_counter() - start_time
        context["duration"] = duration
        if _enabled():
            CLEANUP_RUN_DURATION.labels(kind=kind).observe(duration)
