"""Database models for Storeguard."""

from .audit import (
    ANONYMOUS_ACTOR_ID,
    ZERO_ADDRESS,
    ArchivedAuditEntry,
    AuditAction,
    AuditEntry,
    AuditObjectType,
)
from .base import Base
from .commerce import CartItem, Customer, Order, OrderPaymentStatus
from .compliance import CleanupRun, ComplianceSnapshotRecord, DeletionToken

__all__ = [
    "ANONYMOUS_ACTOR_ID",
    "ZERO_ADDRESS",
    "ArchivedAuditEntry",
    "AuditAction",
    "AuditEntry",
    "AuditObjectType",
    "Base",
    "CartItem",
    "CleanupRun",
    "ComplianceSnapshotRecord",
    "Customer",
    "DeletionToken",
    "Order",
    "OrderPaymentStatus",
]
