"""Notification service factory.

Uses EmailNotificationService over FakeEmailAdapter by default; set
NOTIFICATION_EMAIL_ADAPTER=smtp and the SMTP_* variables to send real mail.
"""

import os

from ordering.notifications.service import EmailNotificationService, NotificationService

_current_notifier: NotificationService | None = None


def _email_adapter():
    adapter = os.environ.get("NOTIFICATION_EMAIL_ADAPTER", "fake")
    if adapter == "fake":
        from ordering.notifications.fake_email import FakeEmailAdapter

        return FakeEmailAdapter()
    if adapter == "smtp":
        from ordering.notifications.smtp_email import SmtpEmailAdapter

        return SmtpEmailAdapter(
            host=os.environ["SMTP_HOST"],
            port=int(os.environ.get("SMTP_PORT", "587")),
            username=os.environ.get("SMTP_USERNAME"),
            password=os.environ.get("SMTP_PASSWORD"),
            sender=os.environ.get("SMTP_SENDER", "no-reply@example.com"),
        )
    raise ValueError(f"Unknown email adapter: {adapter}")


def get_notifier() -> NotificationService:
    """Return the configured notification service (singleton)."""
    global _current_notifier
    if _current_notifier is None:
        from ordering.config import get_store_config

        _current_notifier = EmailNotificationService(_email_adapter(), get_store_config().admin_email)
    return _current_notifier


def set_notifier(notifier: NotificationService) -> None:
    """Override the active notification service (useful for tests)."""
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None
