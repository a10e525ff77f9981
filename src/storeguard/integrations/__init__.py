"""External collaborator contracts."""

from storeguard.integrations.protocol import CRMClient, NotificationSender

__all__ = ["CRMClient", "NotificationSender"]
