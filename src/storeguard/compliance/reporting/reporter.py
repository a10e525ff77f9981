"""Compliance reporter: the scheduler's daily and monthly entry points.

Each run writes ``cleanup_start``, executes its tasks, writes one
``cleanup_complete`` summary per entity class, stores a ``cleanup_runs`` row
and optionally mails a report. Tasks are isolated: one failing task is
reported and the run carries on.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from statistics import mean

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storeguard.compliance.archival.pipeline import ArchivalPipeline
from storeguard.compliance.events import (
    CleanupStarted,
    CleanupSummary,
    DeletionOutcome,
    RetentionWarningDetail,
    SnapshotDetail,
    TaskResult,
)
from storeguard.compliance.reporting.notifications import (
    format_cleanup_report,
    format_retention_warning,
)
from storeguard.compliance.reporting.schedule import (
    next_daily_run,
    next_monthly_run,
    start_of_month,
)
from storeguard.compliance.reporting.types import (
    CleanupReport,
    CleanupRunInfo,
    ComplianceSnapshot,
    EntityCounts,
    RetentionStats,
    SubjectRequestStats,
)
from storeguard.compliance.retention.engine import RetentionPolicyEngine
from storeguard.compliance.retention.policies import CART_EXPIRY_NOTICE_DAYS
from storeguard.compliance.types import CleanupKind, EntityClass, TerminalAction
from storeguard.config.settings import Settings
from storeguard.core.audit import AuditLedger
from storeguard.core.context import SYSTEM_ACTOR_ID
from storeguard.core.logging import LogContext, get_logger, log_external_call
from storeguard.db.models.audit import SUBJECT_REQUEST_ACTIONS, AuditAction, AuditObjectType
from storeguard.db.models.compliance import CleanupRun, ComplianceSnapshotRecord
from storeguard.integrations.protocol import NotificationSender
from storeguard.observability.metrics import observe_cleanup_run, record_cleanup_failure
from storeguard.utils.clock import as_utc, utc_now

logger = get_logger(__name__)

RETENTION_CHECK_TASKS = {EntityClass.ORDERS: "order_retention_check"}
SNAPSHOT_TASK = "compliance_report"


TaskSpec = tuple[str, EntityClass | None, Callable[[], Awaitable[TaskResult]]]
"""Task name, entity class it belongs to (None for cross-class tasks), task."""


def retention_check_task(entity_class: EntityClass) -> str:
    return RETENTION_CHECK_TASKS.get(entity_class, f"{entity_class.value}_retention_check")


class ComplianceReporter:
    """Periodic driver for the retention engine and archival pipeline.

    Example:
        reporter = ComplianceReporter(session, settings, notifier=mailer)
        report = await reporter.run_daily()
        report.results["cart_sessions"].deleted
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        ledger: AuditLedger | None = None,
        engine: RetentionPolicyEngine | None = None,
        pipeline: ArchivalPipeline | None = None,
        notifier: NotificationSender | None = None,
    ):
        self.db = db
        self.settings = settings
        self.ledger = ledger or AuditLedger(db)
        self.engine = engine or RetentionPolicyEngine(db)
        self.pipeline = pipeline or ArchivalPipeline(db, self.engine, self.ledger)
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run_daily(self, now: datetime | None = None) -> CleanupReport:
        """Archive and purge every rule, then check the longest horizon for warnings."""
        now = as_utc(now or utc_now())
        tasks: list[TaskSpec] = []

        for entity_class, rule in self.engine.rules.items():
            if rule.terminal_action == TerminalAction.ARCHIVE_THEN_PURGE:
                tasks.append(
                    (
                        f"{entity_class.value}_archive",
                        entity_class,
                        self._archive_task(entity_class, now),
                    )
                )
                tasks.append(
                    (
                        f"{entity_class.value}_archive_purge",
                        entity_class,
                        self._archive_purge_task(entity_class, now),
                    )
                )
            elif rule.terminal_action == TerminalAction.PURGE:
                tasks.append(
                    (entity_class.value, entity_class, self._purge_task(entity_class, now))
                )

        longest = max(self.engine.rules.values(), key=lambda rule: rule.horizon)
        tasks.append(
            (
                retention_check_task(longest.entity_class),
                longest.entity_class,
                self._retention_check_task(longest.entity_class, now),
            )
        )
        return await self._run(CleanupKind.DAILY, tasks)

    async def run_monthly(self, now: datetime | None = None) -> CleanupReport:
        """Purge expired archive rows and replace the compliance snapshot."""
        now = as_utc(now or utc_now())
        tasks: list[TaskSpec] = []

        for entity_class, rule in self.engine.rules.items():
            if rule.terminal_action == TerminalAction.ARCHIVE_THEN_PURGE:
                tasks.append(
                    (
                        f"{entity_class.value}_archive_purge",
                        entity_class,
                        self._archive_purge_task(entity_class, now),
                    )
                )
        tasks.append((SNAPSHOT_TASK, None, self._snapshot_task(now)))
        return await self._run(CleanupKind.MONTHLY, tasks)

    async def run(self, kind: CleanupKind, now: datetime | None = None) -> CleanupReport:
        if CleanupKind(kind) == CleanupKind.MONTHLY:
            return await self.run_monthly(now)
        return await self.run_daily(now)

    # ------------------------------------------------------------------
    # Run bookkeeping
    # ------------------------------------------------------------------

    async def _run(self, kind: CleanupKind, tasks: list[TaskSpec]) -> CleanupReport:
        started_at = utc_now()
        with LogContext(cleanup_kind=kind.value), observe_cleanup_run(kind.value):
            logger.info("cleanup_started", tasks=len(tasks))
            await self.ledger.record(
                SYSTEM_ACTOR_ID,
                AuditAction.CLEANUP_START,
                AuditObjectType.DATA_CLEANUP,
                CleanupStarted(run_kind=kind),
            )
            await self.db.commit()

            results: dict[str, TaskResult] = {}
            for name, entity_class, task in tasks:
                results[name] = await self._isolated(name, entity_class, task)

            finished_at = utc_now()
            report = CleanupReport(
                kind=kind, started_at=started_at, finished_at=finished_at, results=results
            )
            await self._record_summaries(report)
            logger.info(
                "cleanup_completed",
                succeeded=report.succeeded,
                failed=[name for name, result in results.items() if not result.success],
            )

        await self._send_report(report)
        return report

    async def _isolated(
        self,
        name: str,
        entity_class: EntityClass | None,
        task: Callable[[], Awaitable[TaskResult]],
    ) -> TaskResult:
        try:
            return await task()
        except Exception as exc:  # noqa: BLE001
            await self.db.rollback()
            label = entity_class.value if entity_class else name
            logger.exception("cleanup_task_failed", task=name, entity_class=label)
            record_cleanup_failure(label)
            return TaskResult(task=name, entity_class=entity_class, success=False, error=str(exc))

    async def _record_summaries(self, report: CleanupReport) -> None:
        for entity_class in self.engine.rules:
            tasks = [r for r in report.results.values() if r.entity_class == entity_class]
            await self.ledger.record(
                SYSTEM_ACTOR_ID,
                AuditAction.CLEANUP_COMPLETE,
                AuditObjectType.DATA_CLEANUP,
                CleanupSummary(run_kind=report.kind, entity_class=entity_class, tasks=tasks),
            )
        self.db.add(
            CleanupRun(
                kind=report.kind.value,
                started_at=report.started_at,
                finished_at=report.finished_at,
                succeeded=report.succeeded,
                results={name: r.model_dump(mode="json") for name, r in report.results.items()},
            )
        )
        await self.db.commit()

    async def _send_report(self, report: CleanupReport) -> None:
        if not self.settings.cleanup_notifications_enabled or self.notifier is None:
            return
        subject, body = format_cleanup_report(
            report.kind, report.results, self.settings.site_name, report.finished_at
        )
        try:
            await self.notifier.send(self.settings.admin_email, subject, body, html=True)
        except Exception as exc:  # noqa: BLE001
            log_external_call(
                logger, "notifications", "cleanup_report", success=False, error=str(exc)
            )
            return
        log_external_call(logger, "notifications", "cleanup_report", success=True)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def _archive_task(self, entity_class: EntityClass, now: datetime):
        async def task() -> TaskResult:
            result = await self.pipeline.archive_due(entity_class, now)
            return TaskResult(
                task=f"{entity_class.value}_archive",
                entity_class=entity_class,
                archived=result.archived,
                deleted=result.deleted,
                message=None if result.archived else f"No {entity_class.value} to archive",
            )

        return task

    def _archive_purge_task(self, entity_class: EntityClass, now: datetime):
        async def task() -> TaskResult:
            result = await self.pipeline.purge_expired(entity_class, now)
            return TaskResult(
                task=f"{entity_class.value}_archive_purge",
                entity_class=entity_class,
                deleted=result.deleted,
                message=None if result.deleted else f"No archived {entity_class.value} to clean up",
            )

        return task

    def _purge_task(self, entity_class: EntityClass, now: datetime):
        async def task() -> TaskResult:
            result = await self.pipeline.purge_direct(entity_class, now)
            return TaskResult(
                task=entity_class.value,
                entity_class=entity_class,
                deleted=result.deleted,
                message=None if result.deleted else f"No {entity_class.value} to clean up",
            )

        return task

    def _retention_check_task(self, entity_class: EntityClass, now: datetime):
        async def task() -> TaskResult:
            return await self.check_retention_limit(entity_class, now)

        return task

    def _snapshot_task(self, now: datetime):
        async def task() -> TaskResult:
            snapshot = await self.generate_snapshot(now)
            total = sum(counts.total for counts in snapshot.counts.values())
            return TaskResult(
                task=SNAPSHOT_TASK,
                count=total,
                message=f"Snapshot stored ({total} records tracked)",
            )

        return task

    async def check_retention_limit(
        self, entity_class: EntityClass, now: datetime | None = None
    ) -> TaskResult:
        """Find records nearing their horizon and warn the administrator."""
        now = as_utc(now or utc_now())
        lead_days = self.settings.retention_warning_lead_days
        rule = self.engine.rule_for(entity_class)
        ids = sorted(
            await self.engine.approaching_limit(entity_class, now, timedelta(days=lead_days))
        )
        task = retention_check_task(entity_class)
        if not ids:
            return TaskResult(
                task=task,
                entity_class=entity_class,
                message=f"No {entity_class.value} approaching retention limit",
            )

        if self.settings.retention_warnings_enabled and self.notifier is not None:
            subject, body = format_retention_warning(len(ids), self.settings.site_name, lead_days)
            try:
                await self.notifier.send(self.settings.admin_email, subject, body, html=True)
            except Exception as exc:  # noqa: BLE001
                log_external_call(
                    logger, "notifications", "retention_warning", success=False, error=str(exc)
                )
            else:
                await self.ledger.record(
                    SYSTEM_ACTOR_ID,
                    AuditAction.RETENTION_WARNING_SENT,
                    AuditObjectType.DATA_CLEANUP,
                    RetentionWarningDetail(
                        entity_class=entity_class,
                        count=len(ids),
                        first_record_id=ids[0],
                        last_record_id=ids[-1],
                        horizon_days=rule.horizon.days,
                        lead_days=lead_days,
                    ),
                )
                await self.db.commit()

        logger.info("retention_limit_approaching", entity_class=entity_class.value, count=len(ids))
        return TaskResult(
            task=task,
            entity_class=entity_class,
            count=len(ids),
            message=f"{len(ids)} {entity_class.value} approaching retention limit",
        )

    # ------------------------------------------------------------------
    # Snapshot and stats
    # ------------------------------------------------------------------

    async def count_entities(self) -> dict[str, EntityCounts]:
        """Current active/archived row counts for every entity class."""
        counts: dict[str, EntityCounts] = {}
        for entity_class in self.engine.rules:
            store = self.engine.store_for(entity_class)
            active = await self.db.scalar(select(func.count()).select_from(store.active))
            archived = 0
            if store.archive is not None:
                archived = await self.db.scalar(select(func.count()).select_from(store.archive))
            counts[entity_class.value] = EntityCounts(active=active or 0, archived=archived or 0)
        return counts

    async def oldest_cart_session(self) -> datetime | None:
        """Creation time of the oldest stored cart line, if any."""
        if EntityClass.CART_SESSIONS not in self.engine.rules:
            return None
        store = self.engine.store_for(EntityClass.CART_SESSIONS)
        oldest = await self.db.scalar(select(func.min(store.active.created_at)))
        return as_utc(oldest) if oldest is not None else None

    async def generate_snapshot(self, now: datetime | None = None) -> ComplianceSnapshot:
        """Count every entity class and replace the stored snapshot."""
        snapshot = ComplianceSnapshot(
            generated_at=as_utc(now or utc_now()),
            counts=await self.count_entities(),
            oldest_cart_session=await self.oldest_cart_session(),
        )
        serialized = {name: counts.as_dict() for name, counts in snapshot.counts.items()}

        await self.db.execute(delete(ComplianceSnapshotRecord))
        self.db.add(
            ComplianceSnapshotRecord(
                generated_at=snapshot.generated_at,
                counts=serialized,
                oldest_cart_session=snapshot.oldest_cart_session,
            )
        )
        await self.ledger.record(
            SYSTEM_ACTOR_ID,
            AuditAction.COMPLIANCE_SNAPSHOT,
            AuditObjectType.DATA_CLEANUP,
            SnapshotDetail(counts=serialized, oldest_cart_session=snapshot.oldest_cart_session),
        )
        await self.db.commit()
        return snapshot

    async def latest_snapshot(self) -> ComplianceSnapshot | None:
        stmt = (
            select(ComplianceSnapshotRecord)
            .order_by(
                ComplianceSnapshotRecord.generated_at.desc(),
                ComplianceSnapshotRecord.id.desc(),
            )
            .limit(1)
        )
        record = (await self.db.execute(stmt)).scalar_one_or_none()
        if record is None:
            return None
        return ComplianceSnapshot(
            generated_at=as_utc(record.generated_at),
            counts={
                name: EntityCounts(active=values["active"], archived=values["archived"])
                for name, values in record.counts.items()
            },
            oldest_cart_session=(
                as_utc(record.oldest_cart_session) if record.oldest_cart_session else None
            ),
        )

    async def last_run(self) -> CleanupRunInfo | None:
        stmt = (
            select(CleanupRun)
            .order_by(CleanupRun.finished_at.desc(), CleanupRun.id.desc())
            .limit(1)
        )
        run = (await self.db.execute(stmt)).scalar_one_or_none()
        if run is None:
            return None
        return CleanupRunInfo(
            kind=CleanupKind(run.kind),
            started_at=as_utc(run.started_at),
            finished_at=as_utc(run.finished_at),
            succeeded=run.succeeded,
        )

    async def subject_request_stats(self, now: datetime | None = None) -> SubjectRequestStats:
        """Subject request volumes and the measured average response time."""
        since = start_of_month(now or utc_now())
        totals = await self.ledger.count_actions(SUBJECT_REQUEST_ACTIONS)
        this_month = await self.ledger.count_actions(SUBJECT_REQUEST_ACTIONS, since=since)

        outcomes = [
            detail
            for detail in await self.ledger.details_for_action(AuditAction.DELETION_COMPLETED)
            if isinstance(detail, DeletionOutcome)
        ]
        avg_days = None
        if outcomes:
            avg_days = round(mean(o.response_seconds for o in outcomes) / 86400, 2)

        return SubjectRequestStats(
            exports_total=totals[AuditAction.DATA_EXPORT],
            exports_this_month=this_month[AuditAction.DATA_EXPORT],
            deletion_requests_total=totals[AuditAction.DELETION_REQUESTED],
            deletion_requests_this_month=this_month[AuditAction.DELETION_REQUESTED],
            deletions_completed_total=totals[AuditAction.DELETION_COMPLETED],
            deletions_completed_this_month=this_month[AuditAction.DELETION_COMPLETED],
            avg_response_days=avg_days,
        )

    async def get_retention_stats(self, now: datetime | None = None) -> RetentionStats:
        """Dashboard figures: live counts, last snapshot, last and next run."""
        now = as_utc(now or utc_now())
        hour = self.settings.cleanup_hour_utc
        expiring = 0
        if EntityClass.CART_SESSIONS in self.engine.rules:
            expiring = await self.engine.count_expiring(
                EntityClass.CART_SESSIONS, timedelta(days=CART_EXPIRY_NOTICE_DAYS), now
            )
        return RetentionStats(
            counts=await self.count_entities(),
            cart_sessions_expiring_soon=expiring,
            snapshot=await self.latest_snapshot(),
            subject_requests=await self.subject_request_stats(now),
            last_run=await self.last_run(),
            next_run=next_daily_run(now, hour),
            next_monthly_run=next_monthly_run(now, hour),
        )
