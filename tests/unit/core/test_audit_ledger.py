"""Tests for the audit ledger."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select

from storeguard.compliance.events import (
    ExportDetail,
    LedgerAnonymizedDetail,
    PurgeResult,
)
from storeguard.compliance.types import EntityClass, ExportFormat
from storeguard.core.audit import AuditLedger, sanitize_address
from storeguard.db.models.audit import (
    ArchivedAuditEntry,
    AuditAction,
    AuditEntry,
    AuditObjectType,
)


@pytest.fixture
def ledger(db_session):
    return AuditLedger(db_session)


def _export_detail() -> ExportDetail:
    return ExportDetail(format=ExportFormat.STRUCTURED, found=True, order_count=1)


class TestSanitizeAddress:
    """Tests for source address sanitization."""

    def test_valid_ipv4(self) -> None:
        assert sanitize_address("203.0.113.9") == "203.0.113.9"

    def test_ipv6_is_normalized(self) -> None:
        assert sanitize_address("2001:0db8:0000:0000:0000:0000:0000:0001") == "2001:db8::1"

    def test_forwarded_list_uses_first_hop(self) -> None:
        assert sanitize_address("203.0.113.9, 10.0.0.1") == "203.0.113.9"

    @pytest.mark.parametrize("value", [None, "", "unknown", "300.1.1.1", "<script>"])
    def test_invalid_becomes_empty(self, value) -> None:
        assert sanitize_address(value) == ""


@pytest.mark.asyncio
async def test_record_entry(ledger, db_session):
    """Test that record() writes a flushed entry with a typed payload."""
    entry = await ledger.record(
        7,
        AuditAction.DATA_EXPORT,
        AuditObjectType.GDPR,
        _export_detail(),
        source_address="198.51.100.20",
    )
    await db_session.commit()

    assert entry.id is not None
    assert entry.actor_id == 7
    assert entry.action == "data_export"
    assert entry.object_type == "gdpr"
    assert entry.source_address == "198.51.100.20"
    assert entry.detail["kind"] == "data_export"
    assert entry.detail["format"] == "structured"


@pytest.mark.asyncio
async def test_record_drops_invalid_address(ledger):
    entry = await ledger.record(
        7,
        AuditAction.DATA_EXPORT,
        AuditObjectType.GDPR,
        _export_detail(),
        source_address="not-an-address",
    )

    assert entry.source_address == ""


@pytest.mark.asyncio
async def test_anonymize_for_subject(ledger, seed, db_session):
    """A subject's entries in both tables lose their actor and address."""
    await seed.audit_entry(7, age_days=3)
    await seed.audit_entry(7, age_days=1)
    other = await seed.audit_entry(8, age_days=1)
    other_id = other.id
    db_session.add(
        ArchivedAuditEntry(
            id=1000,
            actor_id=7,
            action="data_export",
            object_type="gdpr",
            detail={},
            source_address="198.51.100.7",
            created_at=datetime(2025, 1, 1, tzinfo=UTC),
        )
    )
    await db_session.commit()

    updated = await ledger.anonymize_for_subject(7)
    await db_session.commit()

    assert updated == 3
    active = (
        await db_session.execute(
            select(AuditEntry.id, AuditEntry.actor_id, AuditEntry.source_address).where(
                AuditEntry.action == "data_export"
            )
        )
    ).all()
    for entry_id, actor_id, address in active:
        if entry_id == other_id:
            assert (actor_id, address) == (8, "198.51.100.7")
        else:
            assert (actor_id, address) == (0, "0.0.0.0")

    archived = (
        await db_session.execute(
            select(ArchivedAuditEntry.actor_id, ArchivedAuditEntry.source_address)
        )
    ).one()
    assert tuple(archived) == (0, "0.0.0.0")


@pytest.mark.asyncio
async def test_anonymize_records_system_entry(ledger, seed, db_session):
    await seed.audit_entry(7)

    await ledger.anonymize_for_subject(7)
    await db_session.commit()

    details = await ledger.details_for_action(AuditAction.LEDGER_ANONYMIZED)
    assert details == [LedgerAnonymizedDetail(entries_updated=1)]
    actors = (
        await db_session.execute(
            select(AuditEntry.actor_id).where(AuditEntry.action == "audit_anonymized")
        )
    ).scalars().all()
    assert actors == [0]


@pytest.mark.asyncio
async def test_recent_for_subject_newest_first(ledger, seed):
    """Only the subject's own entries are returned, newest first, up to the limit."""
    oldest = await seed.audit_entry(7, age_days=30)
    middle = await seed.audit_entry(7, age_days=20)
    newest = await seed.audit_entry(7, age_days=10)
    await seed.audit_entry(8, age_days=5)

    entries = await ledger.recent_for_subject(7)
    limited = await ledger.recent_for_subject(7, limit=2)

    assert [e.id for e in entries] == [newest.id, middle.id, oldest.id]
    assert [e.id for e in limited] == [newest.id, middle.id]


@pytest.mark.asyncio
async def test_count_actions(ledger, seed, now):
    await seed.audit_entry(7, age_days=40, action="data_export")
    await seed.audit_entry(7, age_days=2, action="data_export")
    await seed.audit_entry(7, age_days=2, action="deletion_requested")

    totals = await ledger.count_actions([AuditAction.DATA_EXPORT, AuditAction.DELETION_COMPLETED])
    recent = await ledger.count_actions(
        [AuditAction.DATA_EXPORT], since=now - timedelta(days=10)
    )

    assert totals == {AuditAction.DATA_EXPORT: 2, AuditAction.DELETION_COMPLETED: 0}
    assert recent == {AuditAction.DATA_EXPORT: 1}


@pytest.mark.asyncio
async def test_details_for_action_parses_payloads(ledger, db_session, now):
    detail = PurgeResult(
        entity_class=EntityClass.CART_SESSIONS,
        store="active",
        deleted=4,
        cutoff=now - timedelta(days=30),
    )
    await ledger.record(0, AuditAction.RECORDS_PURGED, AuditObjectType.DATA_CLEANUP, detail)
    await db_session.commit()

    details = await ledger.details_for_action(AuditAction.RECORDS_PURGED)

    assert len(details) == 1
    assert isinstance(details[0], PurgeResult)
    assert details[0].deleted == 4
    assert details[0].entity_class == EntityClass.CART_SESSIONS
