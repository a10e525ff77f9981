"""Subject rights workflow: export and token-confirmed erasure.

Export is stateless. Erasure is a two-step flow: ``request_deletion`` issues a
single-use token delivered out of band, and ``confirm_deletion`` verifies it
and executes the erasure. A subject who owns orders is anonymized rather than
deleted, because the orders must be retained.
"""

from datetime import timedelta
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from storeguard.compliance.events import (
    DeletionOutcome,
    DeletionRequestedDetail,
    ExportDetail,
)
from storeguard.compliance.retention.engine import RetentionPolicyEngine
from storeguard.compliance.subject.aggregator import SubjectDataAggregator
from storeguard.compliance.subject.anonymizer import anonymize_profile
from storeguard.compliance.subject.formatting import format_export
from storeguard.compliance.subject.tokens import (
    generate_token,
    hash_token,
    validate_token_format,
    verify_token,
)
from storeguard.compliance.subject.types import (
    DeletionRequest,
    DeletionResponse,
    DeletionStatus,
    ExportPayload,
)
from storeguard.compliance.types import CrmDeletionStatus, ErasureBranch, ExportFormat
from storeguard.config.settings import Settings
from storeguard.core.audit import AuditLedger
from storeguard.core.context import SYSTEM_ACTOR_ID, RequestContext, get_current_context_or_none
from storeguard.core.exceptions import (
    AuthorizationError,
    ConfirmationError,
    NotFoundError,
    ValidationError,
)
from storeguard.core.logging import get_logger, log_external_call
from storeguard.db.models.audit import AuditAction, AuditObjectType
from storeguard.db.models.commerce import Customer
from storeguard.db.repositories.customer import CustomerRepository
from storeguard.db.repositories.token import DeletionTokenRepository
from storeguard.integrations.protocol import CRMClient, NotificationSender
from storeguard.observability.metrics import record_subject_request
from storeguard.utils.clock import as_utc, utc_now

logger = get_logger(__name__)

REQUEST_RECEIVED_MESSAGE = "Deletion request received. Please check your email to confirm."
DELETED_MESSAGE = "Your data has been successfully deleted."
ANONYMIZED_MESSAGE = (
    "Your data has been successfully deleted. Order records required by law are "
    "retained with anonymized customer information."
)


def validate_subject_id(subject_id: object) -> int:
    """Reject anything that is not a positive integer id.

    Raises:
        ValidationError: If the id is malformed
    """
    if isinstance(subject_id, bool) or not isinstance(subject_id, int) or subject_id <= 0:
        raise ValidationError("Subject id must be a positive integer", field="subject_id")
    return subject_id


def _require_context(subject_id: int, ctx: RequestContext | None) -> RequestContext:
    ctx = ctx or get_current_context_or_none()
    if ctx is None:
        raise AuthorizationError("Authentication required")
    ctx.assert_can_act_for(subject_id)
    return ctx


class SubjectRightsWorkflow:
    """Orchestrates export requests and the double-confirmation deletion flow.

    The caller owns the session; each public method commits its own writes.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        ledger: AuditLedger,
        policy_engine: RetentionPolicyEngine,
        crm: CRMClient | None = None,
        notifier: NotificationSender | None = None,
    ):
        self.db = db
        self.settings = settings
        self.ledger = ledger
        self.policy_engine = policy_engine
        self.crm = crm
        self.notifier = notifier
        self.customers = CustomerRepository(db)
        self.tokens = DeletionTokenRepository(db)
        self.aggregator = SubjectDataAggregator(
            db,
            ledger,
            crm=crm,
            audit_excerpt_limit=settings.subject_audit_excerpt_limit,
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export(
        self,
        subject_id: int,
        fmt: ExportFormat = ExportFormat.STRUCTURED,
        ctx: RequestContext | None = None,
    ) -> ExportPayload:
        """Collect and format everything held about the subject.

        An unknown subject gets an empty export, not an error.

        Raises:
            ValidationError: If the subject id or format is malformed
            AuthorizationError: If the caller may not act for the subject
        """
        validate_subject_id(subject_id)
        try:
            fmt = ExportFormat(fmt)
        except ValueError:
            raise ValidationError(f"Unknown export format: {fmt}", field="format") from None
        ctx = _require_context(subject_id, ctx)

        exported_at = utc_now()
        data = await self.aggregator.collect(subject_id)
        payload = format_export(data, fmt, exported_at)

        if data.found:
            await self.ledger.record(
                subject_id,
                AuditAction.DATA_EXPORT,
                AuditObjectType.GDPR,
                ExportDetail(
                    format=fmt,
                    found=True,
                    order_count=len(data.orders),
                    cart_item_count=sum(len(s["items"]) for s in data.cart_sessions),
                ),
                source_address=ctx.source_address,
            )
            await self.db.commit()

        record_subject_request("export", "completed" if data.found else "not_found")
        logger.info("data_export", format=fmt.value, found=data.found)
        return payload

    # ------------------------------------------------------------------
    # Deletion request
    # ------------------------------------------------------------------

    async def request_deletion(
        self, subject_id: int, ctx: RequestContext | None = None
    ) -> DeletionResponse:
        """Issue a confirmation token and send it to the subject.

        Any earlier live token for the subject is overwritten. The response
        is the same whether or not the subject exists.

        Raises:
            ValidationError: If the subject id is malformed
            AuthorizationError: If the caller may not act for the subject
        """
        validate_subject_id(subject_id)
        ctx = _require_context(subject_id, ctx)

        try:
            customer = await self.customers.require(subject_id)
        except NotFoundError:
            record_subject_request("deletion_request", "not_found")
            return DeletionResponse(message=REQUEST_RECEIVED_MESSAGE)

        raw_token = generate_token()
        issued_at = utc_now()
        expires_at = issued_at + timedelta(days=self.settings.deletion_token_ttl_days)

        await self.tokens.upsert(subject_id, hash_token(raw_token), issued_at, expires_at)
        await self.ledger.record(
            subject_id,
            AuditAction.DELETION_REQUESTED,
            AuditObjectType.GDPR,
            DeletionRequestedDetail(expires_at=expires_at),
            source_address=ctx.source_address,
        )
        message = self.confirmation_message(customer, raw_token)
        recipient = customer.email
        await self.db.commit()

        await self._send_confirmation(recipient, *message)
        record_subject_request("deletion_request", "issued")
        logger.info("deletion_requested", expires_at=expires_at.isoformat())
        return DeletionResponse(message=REQUEST_RECEIVED_MESSAGE)

    def confirmation_link(self, subject_id: int, raw_token: str) -> str:
        query = urlencode({"subject_id": subject_id, "token": raw_token})
        return f"{self.settings.deletion_confirm_url}?{query}"

    def confirmation_message(self, customer: Customer, raw_token: str) -> tuple[str, str]:
        """Subject line and plain-text body of the confirmation message."""
        site = self.settings.site_name
        days = self.settings.deletion_token_ttl_days
        subject = f"[{site}] Confirm Data Deletion Request"
        body = (
            f"Hello {customer.display_name or customer.username},\n\n"
            f"We received a request to delete all your personal data from {site}.\n\n"
            f"To confirm this deletion, please open the link below within {days} days:\n"
            f"{self.confirmation_link(customer.id, raw_token)}\n\n"
            "IMPORTANT:\n"
            "- This action cannot be undone\n"
            "- Your account will be permanently deleted or anonymized\n"
            "- Order records required by law will be retained with anonymized "
            "customer information\n\n"
            "If you did not make this request, please ignore this email.\n\n"
            f"Best regards,\n{site}"
        )
        return subject, body

    async def _send_confirmation(self, recipient: str, subject: str, body: str) -> None:
        if self.notifier is None:
            logger.warning("deletion_confirmation_not_sent", reason="no notifier configured")
            return
        try:
            await self.notifier.send(recipient, subject, body)
        except Exception as exc:  # noqa: BLE001
            log_external_call(logger, "notifications", "send", success=False, error=str(exc))
            return
        log_external_call(logger, "notifications", "send", success=True)

    # ------------------------------------------------------------------
    # Deletion confirmation and execution
    # ------------------------------------------------------------------

    async def confirm_deletion(self, subject_id: int, token: str) -> DeletionResponse:
        """Verify a presented token and, if it is valid, execute the erasure.

        The stored hash is re-read on every call, so a superseded token never
        verifies. Consuming the token and the local erasure commit together.

        Raises:
            ValidationError: If the subject id or token is malformed
            ConfirmationError: If the token is wrong, superseded, used or expired
        """
        validate_subject_id(subject_id)
        validate_token_format(token)
        now = utc_now()

        row = await self.tokens.fetch_current(subject_id)
        if row is None:
            record_subject_request("deletion_confirm", "rejected")
            raise ConfirmationError()

        request = DeletionRequest(
            subject_id=subject_id,
            issued_at=as_utc(row.issued_at),
            expires_at=as_utc(row.expires_at),
        )

        if request.is_expired(now):
            request.transition(DeletionStatus.EXPIRED)
            await self.tokens.discard(subject_id)
            await self.db.commit()
            record_subject_request("deletion_confirm", "expired")
            logger.info("deletion_token_expired")
            raise ConfirmationError()

        if not verify_token(token, row.token_hash):
            request.transition(DeletionStatus.REJECTED)
            record_subject_request("deletion_confirm", "rejected")
            logger.info("deletion_token_rejected")
            raise ConfirmationError()

        if not await self.tokens.discard(subject_id):
            # Consumed by a concurrent confirmation
            await self.db.rollback()
            record_subject_request("deletion_confirm", "rejected")
            raise ConfirmationError()
        request.transition(DeletionStatus.CONFIRMED)

        request.transition(DeletionStatus.EXECUTING)
        try:
            outcome = await self.execute(request)
        except Exception:
            await self.db.rollback()
            logger.exception("deletion_execution_failed")
            raise
        request.transition(DeletionStatus.DONE)

        record_subject_request("deletion_confirm", "completed")
        if outcome.branch == ErasureBranch.ANONYMIZED:
            message = ANONYMIZED_MESSAGE
        else:
            message = DELETED_MESSAGE
        return DeletionResponse(message=message, outcome=outcome)

    async def execute(self, request: DeletionRequest) -> DeletionOutcome:
        """Erase the subject's data for a confirmed request.

        Cart sessions are always deleted and the ledger always anonymized.
        With at least one order the profile is anonymized and the orders are
        kept; otherwise the profile is deleted. The remote CRM contact is
        deleted afterwards when enabled; its failure is recorded only.
        """
        if request.status != DeletionStatus.EXECUTING:
            raise ValidationError(
                f"Request is {request.status.value}, not executing", field="status"
            )
        subject_id = request.subject_id

        customer = await self.customers.get(subject_id)
        contact_id = customer.crm_contact_id if customer is not None else None

        cart_items_deleted = await self.customers.delete_cart_items(subject_id)
        orders_retained = 0
        if await self.policy_engine.has_legal_hold(subject_id):
            branch = ErasureBranch.ANONYMIZED
            orders_retained = await self.customers.count_orders(subject_id)
            if customer is not None:
                anonymize_profile(customer)
                await self.db.flush()
        else:
            branch = ErasureBranch.DELETED
            if customer is not None:
                await self.customers.delete(customer, commit=False)

        ledger_entries = await self.ledger.anonymize_for_subject(subject_id)
        await self.db.commit()

        crm_status, crm_error = await self._delete_crm_contact(contact_id)

        outcome = DeletionOutcome(
            branch=branch,
            orders_retained=orders_retained,
            cart_items_deleted=cart_items_deleted,
            ledger_entries_anonymized=ledger_entries,
            crm_status=crm_status,
            crm_error=crm_error,
            requested_at=request.issued_at,
            completed_at=utc_now(),
        )
        await self.ledger.record(
            SYSTEM_ACTOR_ID,
            AuditAction.DELETION_COMPLETED,
            AuditObjectType.GDPR,
            outcome,
        )
        await self.db.commit()

        logger.info(
            "deletion_completed",
            branch=branch.value,
            orders_retained=orders_retained,
            cart_items_deleted=cart_items_deleted,
            crm_status=crm_status.value,
        )
        return outcome

    async def _delete_crm_contact(
        self, contact_id: str | None
    ) -> tuple[CrmDeletionStatus, str | None]:
        if not self.settings.crm_delete_on_erasure or self.crm is None or not contact_id:
            return CrmDeletionStatus.SKIPPED, None
        try:
            await self.crm.delete_contact(contact_id)
        except Exception as exc:  # noqa: BLE001
            log_external_call(logger, "crm", "delete_contact", success=False, error=str(exc))
            return CrmDeletionStatus.FAILED, str(exc)
        log_external_call(logger, "crm", "delete_contact", success=True)
        return CrmDeletionStatus.DELETED, None
