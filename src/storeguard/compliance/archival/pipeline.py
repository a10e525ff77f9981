"""Archival pipeline: active -> archive -> purge.

``archive_due`` copies due rows into the archive store and commits before it
deletes anything from the active store. The two steps are separate
transactions: if the delete fails, the rows are briefly present in both
stores and the next run, finding nothing left to insert, retries the delete.
A row is never absent from both stores before its archive window has elapsed.
"""

import logging
from datetime import datetime

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storeguard.compliance.events import ArchiveResult, PurgeResult
from storeguard.compliance.retention.engine import RetentionPolicyEngine
from storeguard.compliance.retention.stores import TrackedStore
from storeguard.compliance.types import EntityClass, TerminalAction
from storeguard.core.audit import AuditLedger
from storeguard.core.context import SYSTEM_ACTOR_ID
from storeguard.core.exceptions import ArchivalIntegrityError, ValidationError
from storeguard.db.models.audit import AuditAction, AuditObjectType
from storeguard.observability.metrics import record_cleanup_records
from storeguard.utils.clock import utc_now

logger = logging.getLogger(__name__)


class ArchivalPipeline:
    """Executes the moves and purges the retention engine computes.

    Every operation is idempotent: re-running it with no new data changes
    nothing and writes no ledger entry.
    """

    def __init__(
        self,
        db: AsyncSession,
        engine: RetentionPolicyEngine,
        ledger: AuditLedger,
    ):
        self.db = db
        self.engine = engine
        self.ledger = ledger

    def _archiving_store(self, entity_class: EntityClass) -> TrackedStore:
        rule = self.engine.rule_for(entity_class)
        store = self.engine.store_for(entity_class)
        if rule.terminal_action != TerminalAction.ARCHIVE_THEN_PURGE or store.archive is None:
            raise ValidationError(
                f"{entity_class.value} is not archived (terminal action "
                f"{rule.terminal_action.value})",
                field="entity_class",
            )
        return store

    async def archive_due(
        self, entity_class: EntityClass, now: datetime | None = None
    ) -> ArchiveResult:
        """Move active rows past the active window into the archive store.

        Raises:
            ValidationError: If the entity class has no archive phase
            ArchivalIntegrityError: If the insert or the delete step fails
        """
        store = self._archiving_store(entity_class)
        cutoff = self.engine.active_cutoff(entity_class, now or utc_now())

        archived = await self._insert_missing(store, cutoff)
        deleted = await self._delete_archived(store, cutoff)

        result = ArchiveResult(
            entity_class=entity_class,
            archived=archived,
            deleted=deleted,
            cutoff=cutoff,
        )
        if archived or deleted:
            await self.ledger.record(
                SYSTEM_ACTOR_ID,
                AuditAction.RECORDS_ARCHIVED,
                AuditObjectType.DATA_CLEANUP,
                result,
            )
            await self.db.commit()
            logger.info(
                "Archived %s: %d copied, %d removed from active store",
                entity_class.value,
                archived,
                deleted,
            )
        record_cleanup_records(entity_class.value, "archived", archived)
        return result

    async def _insert_missing(self, store: TrackedStore, cutoff: datetime) -> int:
        """Copy due rows not yet in the archive; returns the number inserted.

        A primary key collision means a concurrent run archived some of the
        same rows; the set is recomputed once.
        """
        active_table = store.active.__table__
        archive_table = store.archive.__table__
        names = [column.name for column in archive_table.columns]

        pending = (
            select(*[active_table.c[name] for name in names])
            .where(active_table.c.created_at <= cutoff)
            .where(active_table.c.id.not_in(select(archive_table.c.id)))
        )
        stmt = insert(archive_table).from_select(names, pending)

        for attempt in range(2):
            try:
                result = await self.db.execute(stmt)
                await self.db.commit()
                return max(result.rowcount or 0, 0)
            except IntegrityError as exc:
                await self.db.rollback()
                if attempt:
                    raise ArchivalIntegrityError(
                        f"Archive insert keeps colliding: {exc.orig}",
                        store.label,
                        "insert",
                    ) from exc
                logger.warning("Archive insert for %s collided; recomputing", store.label)
            except SQLAlchemyError as exc:
                await self.db.rollback()
                raise ArchivalIntegrityError(
                    f"Archive insert failed: {exc}", store.label, "insert"
                ) from exc
        return 0

    async def _delete_archived(self, store: TrackedStore, cutoff: datetime) -> int:
        """Remove due active rows whose archive copy is committed."""
        active_table = store.active.__table__
        archive_table = store.archive.__table__
        stmt = (
            delete(active_table)
            .where(active_table.c.created_at <= cutoff)
            .where(active_table.c.id.in_(select(archive_table.c.id)))
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Active delete for %s failed after archive insert: %s", store.label, exc)
            raise ArchivalIntegrityError(
                f"Active delete failed: {exc}", store.label, "delete"
            ) from exc
        return max(result.rowcount or 0, 0)

    async def purge_expired(
        self, entity_class: EntityClass, now: datetime | None = None
    ) -> PurgeResult:
        """Delete archived rows whose archive window has fully elapsed.

        This is the destructive, unrecoverable step.

        Raises:
            ValidationError: If the entity class has no archive phase
            ArchivalIntegrityError: If the delete fails
        """
        store = self._archiving_store(entity_class)
        cutoff = self.engine.archive_cutoff(entity_class, now or utc_now())
        archive_table = store.archive.__table__

        deleted = await self._purge(
            store, delete(archive_table).where(archive_table.c.created_at <= cutoff)
        )
        result = PurgeResult(
            entity_class=entity_class, store="archive", deleted=deleted, cutoff=cutoff
        )
        if deleted:
            await self.ledger.record(
                SYSTEM_ACTOR_ID,
                AuditAction.ARCHIVE_PURGED,
                AuditObjectType.DATA_CLEANUP,
                result,
            )
            await self.db.commit()
            logger.info("Purged %d archived %s rows", deleted, entity_class.value)
        record_cleanup_records(entity_class.value, "purged", deleted)
        return result

    async def purge_direct(
        self, entity_class: EntityClass, now: datetime | None = None
    ) -> PurgeResult:
        """Delete active rows past the active window (classes without an archive).

        Raises:
            ValidationError: If the rule's terminal action is not ``purge``
            ArchivalIntegrityError: If the delete fails
        """
        rule = self.engine.rule_for(entity_class)
        if rule.terminal_action != TerminalAction.PURGE:
            raise ValidationError(
                f"{entity_class.value} is not directly purged", field="entity_class"
            )
        store = self.engine.store_for(entity_class)
        cutoff = self.engine.active_cutoff(entity_class, now or utc_now())
        active_table = store.active.__table__

        deleted = await self._purge(
            store, delete(active_table).where(active_table.c.created_at <= cutoff)
        )
        result = PurgeResult(
            entity_class=entity_class, store="active", deleted=deleted, cutoff=cutoff
        )
        if deleted:
            await self.ledger.record(
                SYSTEM_ACTOR_ID,
                AuditAction.RECORDS_PURGED,
                AuditObjectType.DATA_CLEANUP,
                result,
            )
            await self.db.commit()
            logger.info("Purged %d %s rows", deleted, entity_class.value)
        record_cleanup_records(entity_class.value, "purged", deleted)
        return result

    async def _purge(self, store: TrackedStore, stmt) -> int:
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise ArchivalIntegrityError(f"Purge failed: {exc}", store.label, "purge") from exc
        return max(result.rowcount or 0, 0)
