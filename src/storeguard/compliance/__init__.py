"""Data-lifecycle and subject-rights compliance for the store.

Subpackages:

- ``retention``: per-entity-class retention rules and due-set evaluation
- ``archival``: active -> archive -> purge pipeline
- ``subject``: export and token-confirmed erasure of a subject's data
- ``reporting``: daily/monthly cleanup runs and compliance snapshots

Usage:
    from storeguard.compliance.service import ComplianceService

    service = ComplianceService(session, settings, crm=crm, notifier=notifier)
    with request_context(create_context(actor_id=42)):
        payload = await service.export(42, ExportFormat.FLAT)
"""

from storeguard.compliance.types import (
    CleanupKind,
    CrmDeletionStatus,
    EntityClass,
    ErasureBranch,
    ExportFormat,
    TerminalAction,
)

__all__ = [
    "CleanupKind",
    "CrmDeletionStatus",
    "EntityClass",
    "ErasureBranch",
    "ExportFormat",
    "TerminalAction",
]
