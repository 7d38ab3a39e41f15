"""User notifications (email)."""

from .email import LoggingNotifier, RecordingNotifier, SmtpNotifier, build_notifier
from .ports import NotificationError, NotificationPort

__all__ = [
    "NotificationPort",
    "NotificationError",
    "LoggingNotifier",
    "SmtpNotifier",
    "RecordingNotifier",
    "build_notifier",
]
