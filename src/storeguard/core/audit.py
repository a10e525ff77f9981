"""Audit ledger: append-only record of every compliance-relevant action."""

import ipaddress
import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storeguard.compliance.events import (
    AuditDetail,
    AuditPayload,
    LedgerAnonymizedDetail,
    dump_detail,
    parse_detail,
)
from storeguard.core.context import SYSTEM_ACTOR_ID
from storeguard.db.models.audit import (
    ANONYMOUS_ACTOR_ID,
    ZERO_ADDRESS,
    ArchivedAuditEntry,
    AuditAction,
    AuditEntry,
    AuditObjectType,
)

logger = logging.getLogger(__name__)


def sanitize_address(value: str | None) -> str:
    """Return ``value`` as a normalized IP address, or "" if it is not one.

    A forwarded-for list is reduced to its first hop.
    """
    if not value:
        return ""
    candidate = value.split(",")[0].strip()
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return ""


class AuditLedger:
    """Service for appending to and reading the audit ledger.

    Entries are never updated, with one exception: :meth:`anonymize_for_subject`
    rewrites the actor and source address of a subject's entries as part of a
    confirmed erasure. Writes are flushed, not committed; the caller owns the
    transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        actor_id: int,
        action: AuditAction,
        object_type: AuditObjectType,
        detail: AuditPayload,
        source_address: str | None = None,
        object_id: int | None = None,
    ) -> AuditEntry:
        """Append one entry.

        Args:
            actor_id: Subject id, or 0 for the system
            action: What happened
            object_type: Category the entry refers to
            detail: Typed payload, serialized here
            source_address: Caller address; stored only if it is a valid IP
            object_id: Optional id of the affected object

        Returns:
            The flushed entry
        """
        entry = AuditEntry(
            actor_id=actor_id,
            action=action.value,
            object_type=object_type.value,
            object_id=object_id,
            detail=dump_detail(detail),
            source_address=sanitize_address(source_address),
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def anonymize_for_subject(self, subject_id: int) -> int:
        """Detach a subject's identity from every ledger entry they own.

        Rewrites ``actor_id`` to 0 and ``source_address`` to the zero address
        in both the active and the archive table, then appends a
        ``audit_anonymized`` entry under the system actor.

        Returns:
            Number of entries rewritten
        """
        updated = 0
        for table in (AuditEntry, ArchivedAuditEntry):
            stmt = (
                update(table)
                .where(table.actor_id == subject_id)
                .values(actor_id=ANONYMOUS_ACTOR_ID, source_address=ZERO_ADDRESS)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            updated += result.rowcount or 0

        await self.record(
            SYSTEM_ACTOR_ID,
            AuditAction.LEDGER_ANONYMIZED,
            AuditObjectType.GDPR,
            LedgerAnonymizedDetail(entries_updated=updated),
        )
        logger.info("Ledger anonymized for erased subject: %d entries", updated)
        return updated

    async def recent_for_subject(self, subject_id: int, limit: int = 100) -> list[AuditEntry]:
        """Most recent active-ledger entries where the subject is the actor."""
        stmt = (
            select(AuditEntry)
            .where(AuditEntry.actor_id == subject_id)
            .order_by(AuditEntry.created_at.desc(), AuditEntry.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_actions(
        self,
        actions: Sequence[AuditAction],
        *,
        since: datetime | None = None,
    ) -> dict[AuditAction, int]:
        """Count active-ledger entries per action, optionally from ``since`` on."""
        stmt = (
            select(AuditEntry.action, func.count(AuditEntry.id))
            .where(AuditEntry.action.in_([a.value for a in actions]))
            .group_by(AuditEntry.action)
        )
        if since is not None:
            stmt = stmt.where(AuditEntry.created_at >= since)

        result = await self.db.execute(stmt)
        counts = {action: 0 for action in actions}
        for action, count in result.all():
            counts[AuditAction(action)] = count
        return counts

    async def details_for_action(self, action: AuditAction) -> list[AuditDetail]:
        """Parsed payloads of every active-ledger entry with ``action``."""
        stmt = select(AuditEntry.detail).where(AuditEntry.action == action.value)
        result = await self.db.execute(stmt)
        return [parse_detail(raw) for raw in result.scalars().all()]
