"""Report and statistics models."""

from datetime import datetime

from pydantic import BaseModel, Field

from storeguard.compliance.events import TaskResult
from storeguard.compliance.types import CleanupKind


class EntityCounts(BaseModel):
    """Row counts for one entity class."""

    active: int = 0
    archived: int = 0

    @property
    def total(self) -> int:
        return self.active + self.archived

    def as_dict(self) -> dict[str, int]:
        return {"active": self.active, "archived": self.archived, "total": self.total}


class ComplianceSnapshot(BaseModel):
    """Point-in-time counts per entity class."""

    generated_at: datetime
    counts: dict[str, EntityCounts]
    oldest_cart_session: datetime | None = None


class CleanupRunInfo(BaseModel):
    kind: CleanupKind
    started_at: datetime
    finished_at: datetime
    succeeded: bool


class SubjectRequestStats(BaseModel):
    """Subject request volumes from the active ledger."""

    exports_total: int = 0
    exports_this_month: int = 0
    deletion_requests_total: int = 0
    deletion_requests_this_month: int = 0
    deletions_completed_total: int = 0
    deletions_completed_this_month: int = 0
    avg_response_days: float | None = None
    """Mean request-to-completion time of executed erasures; None if there are none."""


class RetentionStats(BaseModel):
    """Administrator dashboard figures."""

    counts: dict[str, EntityCounts]
    cart_sessions_expiring_soon: int = 0
    snapshot: ComplianceSnapshot | None = None
    subject_requests: SubjectRequestStats = Field(default_factory=SubjectRequestStats)
    last_run: CleanupRunInfo | None = None
    next_run: datetime
    next_monthly_run: datetime


class CleanupReport(BaseModel):
    """Per-task results of one cleanup run."""

    kind: CleanupKind
    started_at: datetime
    finished_at: datetime
    results: dict[str, TaskResult]

    @property
    def succeeded(self) -> bool:
        return all(result.success for result in self.results.values())
