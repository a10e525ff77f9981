"""Core services and utilities for Storeguard."""

from .audit import AuditLedger, sanitize_address
from .context import (
    SYSTEM_ACTOR_ID,
    ActorType,
    RequestContext,
    create_context,
    get_current_context,
    get_current_context_or_none,
    request_context,
    reset_context,
    set_context,
    system_context,
)
from .exceptions import (
    ArchivalIntegrityError,
    AuthorizationError,
    CollaboratorError,
    ConfirmationError,
    ContextNotSetError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    # Audit
    "AuditLedger",
    "sanitize_address",
    # Context
    "SYSTEM_ACTOR_ID",
    "ActorType",
    "RequestContext",
    "create_context",
    "get_current_context",
    "get_current_context_or_none",
    "request_context",
    "reset_context",
    "set_context",
    "system_context",
    # Exceptions
    "ArchivalIntegrityError",
    "AuthorizationError",
    "CollaboratorError",
    "ConfirmationError",
    "ContextNotSetError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "ValidationError",
]
