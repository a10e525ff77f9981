"""Core exceptions for Storeguard compliance operations.

The subject-facing surface maps these onto user-visible responses; the
administrative surface reports them per task.
"""

from storeguard.utils.exceptions import StoreguardError


class ContextNotSetError(StoreguardError):
    """Raised when attempting to access request context that is not set."""

    def __init__(self, message: str = "Request context is not set"):
        super().__init__(message)


class ValidationError(StoreguardError):
    """Raised for malformed input (subject id, token format, export format).

    Rejected immediately; nothing is written to the ledger.

    Attributes:
        field: Name of the offending input
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"ValidationError({self.field}): {self.args[0]}"
        return f"ValidationError: {self.args[0]}"


class AuthorizationError(StoreguardError):
    """Raised when the caller is unauthenticated or acting outside their rights.

    Attributes:
        reason: Why authorization failed
    """

    def __init__(self, reason: str = "Not authorized"):
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"AuthorizationError: {self.args[0]}"


class NotFoundError(StoreguardError):
    """Raised internally when a subject does not exist.

    Subject-facing operations translate this into an empty-but-successful
    result so that existence is not revealed.
    """

    def __init__(self, subject_id: int):
        super().__init__(f"Subject not found: {subject_id}")
        self.subject_id = subject_id


class ConfirmationError(StoreguardError):
    """Raised when a deletion token is wrong, superseded or expired.

    The message is deliberately the same in every case.
    """

    GENERIC_MESSAGE = "Invalid or expired confirmation token"

    def __init__(self) -> None:
        super().__init__(self.GENERIC_MESSAGE)


class CollaboratorError(StoreguardError):
    """Raised by an external collaborator (CRM, notification delivery).

    Never fatal to local state.

    Attributes:
        collaborator: Which collaborator failed (e.g. "crm", "notifications")
        operation: The operation that was attempted
    """

    def __init__(self, message: str, collaborator: str, operation: str):
        super().__init__(message)
        self.collaborator = collaborator
        self.operation = operation

    def __str__(self) -> str:
        return f"CollaboratorError({self.collaborator}.{self.operation}): {self.args[0]}"


class ArchivalIntegrityError(StoreguardError):
    """Raised when an archive insert/delete step fails part way.

    Attributes:
        entity_class: Entity class being processed
        phase: Which step failed ("insert" or "delete")
    """

    def __init__(self, message: str, entity_class: str, phase: str):
        super().__init__(message)
        self.entity_class = entity_class
        self.phase = phase

    def __str__(self) -> str:
        return f"ArchivalIntegrityError({self.entity_class}, {self.phase}): {self.args[0]}"


class InvalidStateTransitionError(StoreguardError):
    """Raised when a lifecycle transition is not in the transition table."""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"{entity} cannot move from {current} to {target}")
        self.entity = entity
        self.current = current
        self.target = target
