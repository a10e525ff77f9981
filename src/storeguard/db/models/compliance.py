"""Compliance bookkeeping models: deletion tokens, snapshots, cleanup runs."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from storeguard.utils.clock import utc_now

from .base import Base, PortableJSON


class DeletionToken(Base):
    """Live deletion request for a subject.

    One row per subject: a new request overwrites the previous token. The row
    is deleted on successful confirmation or once it is found expired.
    """

    __tablename__ = "deletion_tokens"

    subject_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<DeletionToken(subject_id={self.subject_id}, expires_at={self.expires_at})>"


class ComplianceSnapshotRecord(Base):
    """Stored point-in-time retention counts; superseded by the next run."""

    __tablename__ = "compliance_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    counts: Mapped[dict] = mapped_column(PortableJSON(), nullable=False)
    oldest_cart_session: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class CleanupRun(Base):
    """One daily or monthly cleanup run and its per-task results."""

    __tablename__ = "cleanup_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    succeeded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    results: Mapped[dict] = mapped_column(PortableJSON(), nullable=False)

    def __repr__(self) -> str:
        return f"<CleanupRun(id={self.id}, kind={self.kind}, succeeded={self.succeeded})>"
