"""Request context for subject-facing and scheduled operations.

Carries the authenticated actor, the caller's network address and a
correlation id through a ``ContextVar`` so that the ledger, the logs and the
authorization checks all see the same caller.

Usage:
    from storeguard.core.context import create_context, request_context

    ctx = create_context(actor_id=42, source_address="203.0.113.9")

    with request_context(ctx):
        await service.export(42, ExportFormat.STRUCTURED)
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_utils.compat import uuid7

from storeguard.core.exceptions import AuthorizationError, ContextNotSetError

SYSTEM_ACTOR_ID = 0
"""Actor id recorded for scheduled and system-initiated actions."""


class ActorType(str, Enum):
    """Type of actor performing the operation."""

    HUMAN = "human"  # Customer or administrator via the web layer
    SYSTEM = "system"  # Scheduler-initiated run


class RequestContext(BaseModel):
    """Context for a single request/operation."""

    request_id: UUID = Field(default_factory=uuid7)
    correlation_id: UUID = Field(default_factory=uuid7)

    actor_id: int | None = None
    """Authenticated actor; None means the caller is not logged in."""

    actor_type: ActorType = ActorType.HUMAN
    is_admin: bool = False

    source_address: str | None = None
    """Caller's network address as reported by the web layer (unvalidated)."""

    initiated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_authenticated(self) -> bool:
        return self.actor_id is not None

    def assert_can_act_for(self, subject_id: int) -> None:
        """Assert the caller may exercise rights for ``subject_id``.

        Raises:
            AuthorizationError: If the caller is anonymous, or is neither the
                subject nor an administrator
        """
        if self.actor_id is None:
            raise AuthorizationError("Authentication required")
        if self.actor_id != subject_id and not self.is_admin:
            raise AuthorizationError("Caller may only act on their own data")

    def assert_admin(self) -> None:
        """Assert the caller is an administrator.

        Raises:
            AuthorizationError: If the caller is not an administrator
        """
        if self.actor_type == ActorType.SYSTEM:
            return
        if not self.is_admin:
            raise AuthorizationError("Administrator privileges required")

    def to_audit_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for log binding."""
        return {
            "request_id": str(self.request_id),
            "correlation_id": str(self.correlation_id),
            "actor_id": self.actor_id,
            "actor_type": self.actor_type.value,
            "initiated_at": self.initiated_at.isoformat(),
        }


# =============================================================================
# Context Variable Management
# =============================================================================

_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def get_current_context() -> RequestContext:
    """Get the current request context.

    Raises:
        ContextNotSetError: If no context is set in the current execution context
    """
    ctx = _request_context.get()
    if ctx is None:
        raise ContextNotSetError(
            "No request context is set. Use request_context() context manager."
        )
    return ctx


def get_current_context_or_none() -> RequestContext | None:
    """Get the current request context, or None if not set."""
    return _request_context.get()


def set_context(ctx: RequestContext) -> Token[RequestContext | None]:
    """Set the request context and return a token for restoration."""
    return _request_context.set(ctx)


def reset_context(token: Token[RequestContext | None]) -> None:
    """Reset the context to its previous value using a token."""
    _request_context.reset(token)


@contextmanager
def request_context(ctx: RequestContext):
    """Context manager for setting request context.

    Works for both sync and async code because contextvars are propagated
    to async tasks.
    """
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        reset_context(token)


def create_context(
    *,
    actor_id: int | None,
    is_admin: bool = False,
    source_address: str | None = None,
    correlation_id: UUID | None = None,
) -> RequestContext:
    """Create a RequestContext for a web-layer caller."""
    return RequestContext(
        actor_id=actor_id,
        actor_type=ActorType.HUMAN,
        is_admin=is_admin,
        source_address=source_address,
        correlation_id=correlation_id or uuid7(),
    )


def system_context() -> RequestContext:
    """Create the context used by scheduler-initiated runs."""
    return RequestContext(actor_id=SYSTEM_ACTOR_ID, actor_type=ActorType.SYSTEM)
