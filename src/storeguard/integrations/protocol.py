"""Contracts for the external collaborators the compliance engine calls.

Implementations live in the host application. Any exception raised by a
collaborator is treated as a non-fatal failure and recorded; implementations
are expected to enforce their own timeouts.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class CRMClient(Protocol):
    """Remote CRM holding the subject's contact record."""

    async def get_contact(self, contact_id: str) -> dict[str, Any]:
        """Fetch a contact's properties.

        Raises:
            CollaboratorError: If the CRM cannot be reached or rejects the call
        """
        ...

    async def delete_contact(self, contact_id: str) -> None:
        """Delete a contact.

        Raises:
            CollaboratorError: If the deletion did not happen
        """
        ...

    async def list_subscriptions(self, contact_id: str) -> list[dict[str, Any]]:
        """Subscriptions held by a contact."""
        ...


@runtime_checkable
class NotificationSender(Protocol):
    """Out-of-band message delivery (e-mail in the host application)."""

    async def send(self, recipient: str, subject: str, body: str, *, html: bool = False) -> None:
        """Deliver one message.

        Raises:
            CollaboratorError: If delivery failed
        """
        ...
