"""Physical stores behind each retention-tracked entity class."""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from storeguard.compliance.types import EntityClass
from storeguard.db.models.audit import ArchivedAuditEntry, AuditEntry
from storeguard.db.models.base import Base
from storeguard.db.models.commerce import CartItem, Order


@dataclass(frozen=True)
class TrackedStore:
    """Active table, optional archive table and owner column of an entity class.

    The archive table must have the same columns as the active table.
    """

    entity_class: EntityClass
    active: type[Base]
    archive: type[Base] | None = None
    owner_column: str = "customer_id"

    @property
    def label(self) -> str:
        return self.entity_class.value


DEFAULT_STORES: Mapping[EntityClass, TrackedStore] = MappingProxyType(
    {
        EntityClass.CART_SESSIONS: TrackedStore(EntityClass.CART_SESSIONS, CartItem),
        EntityClass.AUDIT_LOGS: TrackedStore(
            EntityClass.AUDIT_LOGS,
            AuditEntry,
            archive=ArchivedAuditEntry,
            owner_column="actor_id",
        ),
        EntityClass.ORDERS: TrackedStore(EntityClass.ORDERS, Order),
    }
)
