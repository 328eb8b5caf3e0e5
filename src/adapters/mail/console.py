"""
Console notification sender adapter - Implements NotificationSender protocol.

This module provides a console-based implementation of the domain's
notification port, logging confirmations to stdout for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleNotificationSender:
    """
    Implements NotificationSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Used when Microsoft Graph is not configured.
    """

    def send_notification(self, email: str, subject: str, body: str) -> None:
        """
        Log the notification to console (simulates email delivery).

        Args:
            email: Recipient email address
            subject: Notification subject
            body: Notification text
        """
        logger.info("[NOTIFICATION] To: %s Subject: %s Body: %s", email, subject, body)
