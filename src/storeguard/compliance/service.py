"""Compliance service: the surface the outer application calls.

The service is constructed per session with its collaborators passed in;
nothing is looked up from module-level state.

Usage:
    service = ComplianceService(session, settings, crm=crm, notifier=mailer)

    with request_context(create_context(actor_id=42, source_address=ip)):
        payload = await service.export(42, ExportFormat.FLAT)
        await service.request_deletion(42)

    # From the confirmation link; the token is the credential
    response = await service.confirm_deletion(42, token)

    # Scheduler
    await service.run_scheduled(CleanupKind.DAILY)
"""

from collections.abc import Mapping
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from storeguard.compliance.archival.pipeline import ArchivalPipeline
from storeguard.compliance.reporting.reporter import ComplianceReporter
from storeguard.compliance.reporting.types import CleanupReport, RetentionStats
from storeguard.compliance.retention.engine import RetentionPolicyEngine
from storeguard.compliance.retention.types import RetentionRule
from storeguard.compliance.subject.types import DeletionResponse, ExportPayload
from storeguard.compliance.subject.workflow import SubjectRightsWorkflow
from storeguard.compliance.types import CleanupKind, EntityClass, ExportFormat
from storeguard.config.settings import Settings, get_settings
from storeguard.core.audit import AuditLedger
from storeguard.core.context import (
    RequestContext,
    get_current_context_or_none,
    request_context,
    system_context,
)
from storeguard.core.exceptions import AuthorizationError, ValidationError
from storeguard.core.logging import get_logger
from storeguard.integrations.protocol import CRMClient, NotificationSender

logger = get_logger(__name__)


def _admin_context() -> RequestContext:
    ctx = get_current_context_or_none()
    if ctx is None:
        raise AuthorizationError("Authentication required")
    ctx.assert_admin()
    return ctx


class ComplianceService:
    """Subject-facing and administrative compliance operations."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        *,
        crm: CRMClient | None = None,
        notifier: NotificationSender | None = None,
        rules: Mapping[EntityClass, RetentionRule] | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.ledger = AuditLedger(db)
        self.engine = RetentionPolicyEngine(db, rules)
        self.pipeline = ArchivalPipeline(db, self.engine, self.ledger)
        self.workflow = SubjectRightsWorkflow(
            db, self.settings, self.ledger, self.engine, crm=crm, notifier=notifier
        )
        self.reporter = ComplianceReporter(
            db,
            self.settings,
            ledger=self.ledger,
            engine=self.engine,
            pipeline=self.pipeline,
            notifier=notifier,
        )

    # Subject-facing

    async def export(
        self, subject_id: int, fmt: ExportFormat = ExportFormat.STRUCTURED
    ) -> ExportPayload:
        return await self.workflow.export(subject_id, fmt)

    async def request_deletion(self, subject_id: int) -> DeletionResponse:
        return await self.workflow.request_deletion(subject_id)

    async def confirm_deletion(self, subject_id: int, token: str) -> DeletionResponse:
        return await self.workflow.confirm_deletion(subject_id, token)

    # Administrative

    async def get_retention_stats(self, now: datetime | None = None) -> RetentionStats:
        """Dashboard figures. Administrators only.

        Raises:
            AuthorizationError: If the caller is not an administrator
        """
        _admin_context()
        return await self.reporter.get_retention_stats(now)

    async def run_manual_cleanup(
        self, kind: CleanupKind | str, now: datetime | None = None
    ) -> CleanupReport:
        """Run a cleanup immediately. Administrators only.

        Raises:
            ValidationError: If ``kind`` is not daily or monthly
            AuthorizationError: If the caller is not an administrator
        """
        try:
            kind = CleanupKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown cleanup kind: {kind}", field="kind") from None
        ctx = _admin_context()
        logger.info("manual_cleanup_requested", kind=kind.value, actor_id=ctx.actor_id)
        return await self.reporter.run(kind, now)

    # Scheduler

    async def run_scheduled(self, kind: CleanupKind, now: datetime | None = None) -> CleanupReport:
        """Entry point for the external scheduler; runs under the system context."""
        with request_context(system_context()):
            return await self.reporter.run(kind, now)
