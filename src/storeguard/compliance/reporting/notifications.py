"""Administrator notifications sent after cleanup runs."""

from collections.abc import Mapping
from datetime import datetime
from html import escape

from storeguard.compliance.events import TaskResult
from storeguard.compliance.types import CleanupKind


def task_label(task: str) -> str:
    """``audit_logs_archive`` -> ``Audit logs archive``."""
    return task.replace("_", " ").capitalize()


def format_cleanup_report(
    kind: CleanupKind,
    results: Mapping[str, TaskResult],
    site_name: str,
    completed_at: datetime,
) -> tuple[str, str]:
    """Subject line and HTML body of a cleanup report."""
    title = kind.value.capitalize()
    subject = f"[{site_name}] {title} Cleanup Report"

    lines = [
        f"<h2>{title} Cleanup Report</h2>",
        f"<p><strong>Completed:</strong> {escape(completed_at.isoformat())}</p>",
        "<h3>Results:</h3>",
        "<ul>",
    ]
    for task, result in results.items():
        lines.append(
            f"<li><strong>{escape(task_label(task))}:</strong> {escape(result.summary_line())}</li>"
        )
    lines.append("</ul>")
    lines.append(
        "<p><small>This is an automated message from the store data retention "
        "system.</small></p>"
    )
    return subject, "\n".join(lines)


def format_retention_warning(
    count: int,
    site_name: str,
    lead_days: int,
    review_url: str | None = None,
) -> tuple[str, str]:
    """Subject line and HTML body of the orders-approaching-limit warning."""
    subject = f"[{site_name}] Orders Approaching Retention Limit"
    lines = [
        "<h2>Order Retention Warning</h2>",
        f"<p>{count} orders are within {lead_days} days of the 7-year retention "
        "limit and will need review.</p>",
        "<p>Please review these orders and determine if they should be:</p>",
        "<ul>",
        "<li>Retained for legal/compliance reasons</li>",
        "<li>Anonymized (customer data removed, financial records kept)</li>",
        "<li>Deleted (if permitted by law)</li>",
        "</ul>",
    ]
    if review_url:
        lines.append(f'<p><a href="{escape(review_url)}">Review Orders</a></p>')
    return subject, "\n".join(lines)
