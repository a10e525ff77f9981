"""Typed audit payloads.

Every ledger entry's ``detail`` column holds exactly one of these models,
identified by its ``kind`` field. They are dumped to JSON only when written
to the ledger and parsed back with :func:`parse_detail`.
"""

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from storeguard.compliance.types import (
    CleanupKind,
    CrmDeletionStatus,
    EntityClass,
    ErasureBranch,
    ExportFormat,
)


class AuditPayload(BaseModel):
    """Base for ledger detail payloads."""

    model_config = ConfigDict(frozen=True)


class TaskResult(BaseModel):
    """Outcome of one task in a cleanup run.

    A failed task carries ``success=False`` and the error message; the rest
    of the run is unaffected.
    """

    task: str
    entity_class: EntityClass | None = None
    success: bool = True
    deleted: int = 0
    archived: int = 0
    count: int = 0
    message: str | None = None
    error: str | None = None

    def summary_line(self) -> str:
        """Human-readable one-line summary used in cleanup reports."""
        if not self.success:
            return f"Failed: {self.error}"
        if self.archived:
            return f"{self.archived} records archived"
        if self.deleted:
            return f"{self.deleted} records deleted"
        if self.message:
            return self.message
        return "Completed successfully"


class ArchiveResult(AuditPayload):
    kind: Literal["records_archived"] = "records_archived"
    entity_class: EntityClass
    archived: int
    deleted: int
    cutoff: datetime


class PurgeResult(AuditPayload):
    kind: Literal["records_purged"] = "records_purged"
    entity_class: EntityClass
    store: Literal["active", "archive"]
    deleted: int
    cutoff: datetime


class RetentionWarningDetail(AuditPayload):
    kind: Literal["retention_warning"] = "retention_warning"
    entity_class: EntityClass
    count: int
    first_record_id: int
    last_record_id: int
    horizon_days: int
    lead_days: int


class ExportDetail(AuditPayload):
    kind: Literal["data_export"] = "data_export"
    format: ExportFormat
    found: bool
    order_count: int = 0
    cart_item_count: int = 0


class DeletionRequestedDetail(AuditPayload):
    kind: Literal["deletion_requested"] = "deletion_requested"
    expires_at: datetime


class DeletionOutcome(AuditPayload):
    """Structured summary of an executed erasure.

    ``requested_at``/``completed_at`` feed the average response time reported
    in retention stats.
    """

    kind: Literal["deletion_completed"] = "deletion_completed"
    branch: ErasureBranch
    orders_retained: int = 0
    cart_items_deleted: int = 0
    ledger_entries_anonymized: int = 0
    crm_status: CrmDeletionStatus = CrmDeletionStatus.SKIPPED
    crm_error: str | None = None
    requested_at: datetime
    completed_at: datetime

    @property
    def response_seconds(self) -> float:
        return (self.completed_at - self.requested_at).total_seconds()


class LedgerAnonymizedDetail(AuditPayload):
    kind: Literal["ledger_anonymized"] = "ledger_anonymized"
    entries_updated: int


class CleanupStarted(AuditPayload):
    kind: Literal["cleanup_start"] = "cleanup_start"
    run_kind: CleanupKind


class CleanupSummary(AuditPayload):
    kind: Literal["cleanup_complete"] = "cleanup_complete"
    run_kind: CleanupKind
    entity_class: EntityClass
    tasks: list[TaskResult]

    @property
    def succeeded(self) -> bool:
        return all(task.success for task in self.tasks)


class SnapshotDetail(AuditPayload):
    kind: Literal["compliance_snapshot"] = "compliance_snapshot"
    counts: dict[str, dict[str, int]]
    oldest_cart_session: datetime | None = None


AuditDetail = Annotated[
    ArchiveResult
    | PurgeResult
    | RetentionWarningDetail
    | ExportDetail
    | DeletionRequestedDetail
    | DeletionOutcome
    | LedgerAnonymizedDetail
    | CleanupStarted
    | CleanupSummary
    | SnapshotDetail,
    Field(discriminator="kind"),
]

_detail_adapter: TypeAdapter[AuditDetail] = TypeAdapter(AuditDetail)


def dump_detail(detail: AuditPayload) -> dict[str, Any]:
    """Serialize a payload for the ledger's JSON column."""
    return detail.model_dump(mode="json")


def parse_detail(raw: dict[str, Any]) -> AuditDetail:
    """Parse a stored ledger payload back into its typed model.

    Raises:
        pydantic.ValidationError: If the payload has no known ``kind``
    """
    return _detail_adapter.validate_python(raw)
