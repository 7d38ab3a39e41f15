"""Unit tests for notification templates and adapters"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from accreditation.config import Settings
from accreditation.notifications.email import (
    LoggingNotifier,
    RecordingNotifier,
    SmtpNotifier,
    build_notifier,
)
from accreditation.notifications.ports import NotificationError
from accreditation.notifications.templates import render


class TestVerificationStatusTemplate:
    """Test rendering of review outcome emails"""

    def test_approved(self):
        message = render("verification_status", {
            "status": "APPROVED",
            "first_name": "Ada",
            "expires_at": "2026-01-15",
            "verification_id": "abc",
        })
        assert "approved" in message.subject
        assert "Hello Ada" in message.text
        assert "2026-01-15" in message.text
        assert "abc" in message.text

    def test_rejected_includes_reason(self):
        message = render("verification_status", {
            "status": "REJECTED",
            "rejection_reason": "Documents illegible",
        })
        assert "not approved" in message.subject
        assert "Documents illegible" in message.text

    def test_in_review(self):
        message = render("verification_status", {"status": "IN_REVIEW"})
        assert "under review" in message.subject
        assert "Hello there" in message.text

    def test_reviewer_notes_appended(self):
        message = render("verification_status", {"status": "APPROVED", "reviewer_notes": "Thanks"})
        assert "Reviewer notes: Thanks" in message.text

    def test_unknown_template(self):
        with pytest.raises(KeyError):
            render("password_reset", {})


class TestAdapters:
    """Test notification adapters"""

    def test_logging_notifier_logs_subject(self, caplog):
        caplog.set_level("INFO")
        LoggingNotifier().notify("a@example.com", "verification_status", {"status": "APPROVED"})
        assert "a@example.com" in caplog.text
        assert "approved" in caplog.text

    def test_recording_notifier(self):
        notifier = RecordingNotifier()
        notifier.notify("a@example.com", "verification_status", {"status": "IN_REVIEW"})
        assert notifier.sent == [("a@example.com", "verification_status", {"status": "IN_REVIEW"})]

    def test_recording_notifier_failure_mode(self):
        with pytest.raises(NotificationError):
            RecordingNotifier(fail=True).notify("a@example.com", "verification_status", {"status": "APPROVED"})

    def test_smtp_notifier_sends_message(self):
        smtp = MagicMock()
        with patch("accreditation.notifications.email.smtplib.SMTP") as smtp_class:
            smtp_class.return_value.__enter__.return_value = smtp
            notifier = SmtpNotifier("smtp.example.com", username="u", password="p", sender="from@example.com")
            notifier.notify("to@example.com", "verification_status", {"status": "APPROVED"})

        smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("u", "p")
        sent = smtp.send_message.call_args[0][0]
        assert sent["To"] == "to@example.com"
        assert sent["From"] == "from@example.com"

    def test_smtp_failure_raises_notification_error(self):
        with patch("accreditation.notifications.email.smtplib.SMTP") as smtp_class:
            smtp_class.side_effect = smtplib.SMTPConnectError(421, "unavailable")
            with pytest.raises(NotificationError):
                SmtpNotifier("smtp.example.com").notify("to@example.com", "verification_status", {"status": "APPROVED"})

    def test_build_notifier(self):
        assert isinstance(build_notifier(Settings(_env_file=None)), LoggingNotifier)
        assert isinstance(build_notifier(Settings(_env_file=None, SMTP_HOST="smtp.example.com")), SmtpNotifier)
