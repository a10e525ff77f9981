"""Subject rights type definitions.

This module defines the types used by export and erasure:
- DeletionStatus: lifecycle of a deletion request, with its transition table
- DeletionRequest: in-memory view of one request as it moves through that lifecycle
- SubjectData: everything held about one subject
- ExportPayload / DeletionResponse: what the subject-facing calls return
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from storeguard.compliance.events import DeletionOutcome
from storeguard.compliance.types import ExportFormat
from storeguard.core.exceptions import InvalidStateTransitionError


class DeletionStatus(str, Enum):
    """Lifecycle of a deletion request."""

    REQUESTED = "requested"
    """Token issued, awaiting confirmation."""

    CONFIRMED = "confirmed"
    """Token verified and consumed."""

    EXECUTING = "executing"
    """Erasure in progress."""

    DONE = "done"
    """Erasure completed."""

    EXPIRED = "expired"
    """Token lifetime elapsed before confirmation."""

    REJECTED = "rejected"
    """Presented token did not match."""


DELETION_TRANSITIONS: dict[DeletionStatus, frozenset[DeletionStatus]] = {
    DeletionStatus.REQUESTED: frozenset(
        {DeletionStatus.CONFIRMED, DeletionStatus.EXPIRED, DeletionStatus.REJECTED}
    ),
    DeletionStatus.CONFIRMED: frozenset({DeletionStatus.EXECUTING}),
    DeletionStatus.EXECUTING: frozenset({DeletionStatus.DONE}),
    DeletionStatus.DONE: frozenset(),
    DeletionStatus.EXPIRED: frozenset(),
    DeletionStatus.REJECTED: frozenset(),
}


class DeletionRequest(BaseModel):
    """A deletion request as seen by one confirmation call.

    Only the token row is persisted; this tracks the status while the
    confirmation and execution run.
    """

    subject_id: int
    issued_at: datetime
    expires_at: datetime
    status: DeletionStatus = DeletionStatus.REQUESTED
    history: list[DeletionStatus] = Field(default_factory=list)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def transition(self, target: DeletionStatus) -> None:
        """Move to ``target``.

        Raises:
            InvalidStateTransitionError: If the transition table forbids it
        """
        if target not in DELETION_TRANSITIONS[self.status]:
            raise InvalidStateTransitionError("DeletionRequest", self.status.value, target.value)
        self.history.append(self.status)
        self.status = target


class SubjectData(BaseModel):
    """Everything held about one subject, as collected for export or preview."""

    subject_id: int
    profile: dict[str, Any] | None = None
    orders: list[dict[str, Any]] = Field(default_factory=list)
    cart_sessions: list[dict[str, Any]] = Field(default_factory=list)
    subscriptions: list[dict[str, Any]] = Field(default_factory=list)
    audit_entries: list[dict[str, Any]] = Field(default_factory=list)
    external_crm_snapshot: dict[str, Any] = Field(default_factory=dict)

    @property
    def found(self) -> bool:
        return self.profile is not None

    def sections(self) -> dict[str, Any]:
        """Export sections in presentation order."""
        return {
            "profile": self.profile or {},
            "orders": self.orders,
            "cart_sessions": self.cart_sessions,
            "subscriptions": self.subscriptions,
            "audit_logs": self.audit_entries,
            "crm_data": self.external_crm_snapshot,
        }


class ExportPayload(BaseModel):
    """Formatted export returned to the subject."""

    format: ExportFormat
    content: str
    media_type: str
    filename: str
    exported_at: datetime
    found: bool


class DeletionResponse(BaseModel):
    """Result of a deletion request or confirmation."""

    message: str
    outcome: DeletionOutcome | None = None
