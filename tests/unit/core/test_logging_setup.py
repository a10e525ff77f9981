"""Tests for structured logging configuration."""

import logging

import structlog
from structlog.testing import capture_logs

from storeguard.core.context import create_context, request_context
from storeguard.core.logging import (
    LogContext,
    add_request_context,
    get_logger,
    log_external_call,
    setup_logging,
)


class TestProcessors:
    def test_request_context_added(self) -> None:
        ctx = create_context(actor_id=42, source_address="203.0.113.9")

        with request_context(ctx):
            event = add_request_context(None, "info", {"event": "x"})

        assert event["actor_id"] == 42
        assert event["correlation_id"] == str(ctx.correlation_id)
        assert event["source_address"] == "203.0.113.9"

    def test_empty_source_address_omitted(self) -> None:
        with request_context(create_context(actor_id=42)):
            event = add_request_context(None, "info", {"event": "x"})

        assert "source_address" not in event

    def test_no_context(self) -> None:
        assert add_request_context(None, "info", {"event": "x"}) == {"event": "x"}


class TestSetupLogging:
    def test_configures_root_logger(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(log_level="WARNING", json_format=True)

            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
            assert structlog.is_configured()
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)


def test_log_context_binds_and_unbinds():
    with LogContext(cleanup_kind="daily"):
        assert structlog.contextvars.get_contextvars()["cleanup_kind"] == "daily"

    assert "cleanup_kind" not in structlog.contextvars.get_contextvars()


def test_log_external_call_levels():
    with capture_logs() as logs:
        logger = get_logger("tests")
        log_external_call(logger, "crm", "get_contact", success=True)
        log_external_call(logger, "crm", "delete_contact", success=False, error="timeout")

    assert [entry["log_level"] for entry in logs] == ["info", "warning"]
    assert logs[1]["event"] == "external_call"
    assert logs[1]["service"] == "crm"
    assert logs[1]["operation"] == "delete_contact"
    assert logs[1]["error"] == "timeout"
