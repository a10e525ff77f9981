"""Cleanup runs, compliance snapshots and retention statistics."""

from storeguard.compliance.reporting.notifications import (
    format_cleanup_report,
    format_retention_warning,
)
from storeguard.compliance.reporting.reporter import ComplianceReporter
from storeguard.compliance.reporting.schedule import next_daily_run, next_monthly_run
from storeguard.compliance.reporting.types import (
    CleanupReport,
    CleanupRunInfo,
    ComplianceSnapshot,
    EntityCounts,
    RetentionStats,
    SubjectRequestStats,
)

__all__ = [
    "CleanupReport",
    "CleanupRunInfo",
    "ComplianceReporter",
    "ComplianceSnapshot",
    "EntityCounts",
    "RetentionStats",
    "SubjectRequestStats",
    "format_cleanup_report",
    "format_retention_warning",
    "next_daily_run",
    "next_monthly_run",
]
