"""Enumerations shared across the compliance packages."""

from enum import Enum


class EntityClass(str, Enum):
    """Retention-tracked entity classes."""

    CART_SESSIONS = "cart_sessions"
    """Shopping-cart lines; purged directly once stale."""

    AUDIT_LOGS = "audit_logs"
    """Ledger entries; archived, then purged from the archive."""

    ORDERS = "orders"
    """Financial records; never removed automatically, only warned about."""


class TerminalAction(str, Enum):
    """Disposition a retention rule assigns to an entity class."""

    PURGE = "purge"
    ARCHIVE_THEN_PURGE = "archive_then_purge"
    WARN_ONLY = "warn_only"


class ExportFormat(str, Enum):
    """Subject export formats."""

    STRUCTURED = "structured"  # nested JSON document
    FLAT = "flat"  # sectioned CSV


class CleanupKind(str, Enum):
    """Cleanup run cadences."""

    DAILY = "daily"
    MONTHLY = "monthly"


class ErasureBranch(str, Enum):
    """Which erasure path a confirmed deletion took."""

    ANONYMIZED = "anonymized"
    DELETED = "deleted"


class CrmDeletionStatus(str, Enum):
    """Outcome of the optional remote contact deletion."""

    SKIPPED = "skipped"
    DELETED = "deleted"
    FAILED = "failed"
