"""Tests for Prometheus metrics helpers."""

from unittest.mock import patch

from prometheus_client import REGISTRY

from storeguard.config.settings import Settings
from storeguard.observability.metrics import (
    get_metrics,
    observe_cleanup_run,
    record_cleanup_failure,
    record_cleanup_records,
    record_subject_request,
)


def _sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_record_cleanup_records():
    labels = {"entity_class": "cart_sessions", "action": "purged"}
    before = _sample("storeguard_cleanup_records_total", labels)

    record_cleanup_records("cart_sessions", "purged", 3)
    record_cleanup_records("cart_sessions", "purged", 0)

    assert _sample("storeguard_cleanup_records_total", labels) == before + 3


def test_record_cleanup_failure():
    labels = {"entity_class": "audit_logs"}
    before = _sample("storeguard_cleanup_task_failures_total", labels)

    record_cleanup_failure("audit_logs")

    assert _sample("storeguard_cleanup_task_failures_total", labels) == before + 1


def test_record_subject_request():
    labels = {"request_type": "export", "outcome": "completed"}
    before = _sample("storeguard_subject_requests_total", labels)

    record_subject_request("export", "completed")

    assert _sample("storeguard_subject_requests_total", labels) == before + 1


def test_disabled_metrics_are_not_recorded():
    labels = {"request_type": "deletion_confirm", "outcome": "expired"}
    before = _sample("storeguard_subject_requests_total", labels)

    with patch(
        "storeguard.observability.metrics.get_settings",
        return_value=Settings(_env_file=None, metrics_enabled=False),
    ):
        record_subject_request("deletion_confirm", "expired")

    assert _sample("storeguard_subject_requests_total", labels) == before


def test_observe_cleanup_run():
    before = _sample("storeguard_cleanup_run_duration_seconds_count", {"kind": "monthly"})

    with observe_cleanup_run("monthly") as context:
        pass

    assert context["duration"] >= 0
    assert (
        _sample("storeguard_cleanup_run_duration_seconds_count", {"kind": "monthly"})
        == before + 1
    )


def test_get_metrics_exposition():
    record_subject_request("export", "not_found")

    output = get_metrics()

    assert b"storeguard_subject_requests_total" in output
