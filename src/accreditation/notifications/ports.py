"""Notification sink port."""

from abc import ABC, abstractmethod
from typing import Any, Dict


class NotificationError(Exception):
    """Raised by adapters when a message could not be delivered."""
    pass


class NotificationPort(ABC):
    """Port interface for user notifications.

    Callers treat delivery as best effort: a failure is logged and counted,
    never allowed to undo the state change that triggered it.
    """

    @abstractmethod
    def notify(self, email: str, template: str, params: Dict[str, Any]) -> None:
        """Send a templated message.

        Args:
            email: Recipient address
            template: Template name (see notifications.templates.TEMPLATES)
            params: Template parameters

        Raises:
            NotificationError: If delivery fails
            KeyError: If the template is unknown
        """
        pass
