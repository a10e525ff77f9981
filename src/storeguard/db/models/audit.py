"""Audit ledger models.

The ledger is append-only. Two physical tables exist: ``audit_log`` (active)
and ``audit_log_archive``. A row lives in exactly one of them, apart from the
transient overlap between an archive insert and the matching active delete.
"""

from enum import Enum

from sqlalchemy import BigInteger, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, PortableJSON

ANONYMOUS_ACTOR_ID = 0
"""Actor id written over a subject's entries when their data is erased."""

ZERO_ADDRESS = "0.0.0.0"
"""Source address written over a subject's entries when their data is erased."""


class AuditAction(str, Enum):
    """Actions recorded in the ledger."""

    # Subject rights
    DATA_EXPORT = "data_export"
    DELETION_REQUESTED = "deletion_requested"
    DELETION_COMPLETED = "deletion_completed"
    LEDGER_ANONYMIZED = "audit_anonymized"

    # Retention
    RECORDS_ARCHIVED = "records_archived"
    RECORDS_PURGED = "records_purged"
    ARCHIVE_PURGED = "archive_purged"
    RETENTION_WARNING_SENT = "retention_warning_sent"
    COMPLIANCE_SNAPSHOT = "compliance_snapshot"

    # Cleanup runs
    CLEANUP_START = "cleanup_start"
    CLEANUP_COMPLETE = "cleanup_complete"


SUBJECT_REQUEST_ACTIONS = (
    AuditAction.DATA_EXPORT,
    AuditAction.DELETION_REQUESTED,
    AuditAction.DELETION_COMPLETED,
)


class AuditObjectType(str, Enum):
    """Object category an entry refers to."""

    GDPR = "gdpr"
    DATA_CLEANUP = "data_cleanup"


class AuditEntryColumns(CreatedAtMixin):
    """Columns shared by the active and archive ledger tables."""

    actor_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    object_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    object_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    detail: Mapped[dict] = mapped_column(PortableJSON(), nullable=False, default=dict)
    source_address: Mapped[str] = mapped_column(String(45), nullable=False, default="")


class AuditEntry(Base, AuditEntryColumns):
    """Active ledger entry."""

    __tablename__ = "audit_log"

    # sqlite_autoincrement keeps ids monotonic: an id that has moved to the
    # archive is never reissued to a new active row.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    __table_args__ = (
        Index("idx_audit_log_actor", "actor_id"),
        Index("idx_audit_log_action", "action"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<AuditEntry(id={self.id}, action={self.action}, actor={self.actor_id})>"


class ArchivedAuditEntry(Base, AuditEntryColumns):
    """Archived ledger entry; ids are copied verbatim from the active table."""

    __tablename__ = "audit_log_archive"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    __table_args__ = (
        Index("idx_audit_archive_actor", "actor_id"),
        Index("idx_audit_archive_action", "action"),
    )

    def __repr__(self) -> str:
        return f"<ArchivedAuditEntry(id={self.id}, action={self.action})>"
