"""Subject data aggregator.

Collects everything held about one subject across the local stores and the
remote CRM. Reads only. The CRM is best-effort: its failures are embedded in
the result instead of aborting the collection.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from storeguard.compliance.subject.types import SubjectData
from storeguard.core.audit import AuditLedger
from storeguard.core.logging import get_logger, log_external_call
from storeguard.db.models.audit import AuditEntry
from storeguard.db.models.commerce import CartItem, Customer, Order
from storeguard.db.repositories.customer import CustomerRepository
from storeguard.integrations.protocol import CRMClient

logger = get_logger(__name__)

NO_CRM_CONTACT_MESSAGE = "No CRM contact associated"


def profile_to_dict(customer: Customer) -> dict[str, Any]:
    return {
        "id": customer.id,
        "username": customer.username,
        "email": customer.email,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "display_name": customer.display_name,
        "registered": customer.created_at,
        "billing_address": customer.billing_address,
        "billing_city": customer.billing_city,
        "billing_state": customer.billing_state,
        "billing_zip": customer.billing_zip,
        "billing_country": customer.billing_country,
        "phone": customer.phone,
    }


def order_to_dict(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "date": order.created_at,
        "status": order.payment_status,
        "total": order.total,
        "currency": order.currency,
        "items": order.items,
        "billing_details": order.billing_details,
        "crm_deal_id": order.crm_deal_id,
        "crm_invoice_id": order.crm_invoice_id,
    }


def group_cart_sessions(items: list[CartItem]) -> list[dict[str, Any]]:
    """Group cart lines into sessions, oldest line first within each."""
    sessions: dict[str, dict[str, Any]] = {}
    for item in items:
        session = sessions.setdefault(
            item.session_id,
            {"session_id": item.session_id, "created_at": item.created_at, "items": []},
        )
        if item.created_at < session["created_at"]:
            session["created_at"] = item.created_at
        session["items"].append(
            {
                "product_id": item.product_id,
                "crm_product_id": item.crm_product_id,
                "quantity": item.quantity,
                "price": item.price,
                "added_at": item.created_at,
            }
        )
    return list(sessions.values())


def audit_entry_to_dict(entry: AuditEntry) -> dict[str, Any]:
    return {
        "action": entry.action,
        "object_type": entry.object_type,
        "object_id": entry.object_id,
        "detail": entry.detail,
        "source_address": entry.source_address,
        "created_at": entry.created_at,
    }


class SubjectDataAggregator:
    """Collects a subject's data for export and deletion preview."""

    def __init__(
        self,
        db: AsyncSession,
        ledger: AuditLedger,
        crm: CRMClient | None = None,
        audit_excerpt_limit: int = 100,
    ):
        self.customers = CustomerRepository(db)
        self.ledger = ledger
        self.crm = crm
        self.audit_excerpt_limit = audit_excerpt_limit

    async def collect(self, subject_id: int) -> SubjectData:
        """Collect all records belonging to ``subject_id``.

        An unknown subject yields an empty result (``found`` is False).
        """
        customer = await self.customers.get(subject_id)
        if customer is None:
            logger.debug("subject_not_found", subject_id=subject_id)
            return SubjectData(subject_id=subject_id)

        orders = await self.customers.get_orders(subject_id)
        cart_items = await self.customers.get_cart_items(subject_id)
        entries = await self.ledger.recent_for_subject(subject_id, limit=self.audit_excerpt_limit)

        return SubjectData(
            subject_id=subject_id,
            profile=profile_to_dict(customer),
            orders=[order_to_dict(order) for order in orders],
            cart_sessions=group_cart_sessions(cart_items),
            subscriptions=await self._subscriptions(customer),
            audit_entries=[audit_entry_to_dict(entry) for entry in entries],
            external_crm_snapshot=await self._crm_snapshot(customer),
        )

    async def _crm_snapshot(self, customer: Customer) -> dict[str, Any]:
        if not customer.crm_contact_id or self.crm is None:
            return {"message": NO_CRM_CONTACT_MESSAGE}

        try:
            contact = await self.crm.get_contact(customer.crm_contact_id)
        except Exception as exc:  # noqa: BLE001
            log_external_call(logger, "crm", "get_contact", success=False, error=str(exc))
            return {"error": str(exc)}

        log_external_call(logger, "crm", "get_contact", success=True)
        return {
            "contact_id": customer.crm_contact_id,
            "properties": contact.get("properties", {}),
            "last_synced": customer.crm_last_synced_at,
        }

    async def _subscriptions(self, customer: Customer) -> list[dict[str, Any]]:
        if not customer.crm_contact_id or self.crm is None:
            return []

        try:
            subscriptions = await self.crm.list_subscriptions(customer.crm_contact_id)
        except Exception as exc:  # noqa: BLE001
            log_external_call(logger, "crm", "list_subscriptions", success=False, error=str(exc))
            return []
        return list(subscriptions)
