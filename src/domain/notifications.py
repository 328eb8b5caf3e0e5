"""
Notification trigger - Best-effort confirmation after a ledger transition.

Runs only after the ledger has committed. Nothing raised here may reach
the dispatcher: the ledger outcome alone decides acknowledgment.
"""

import logging
from dataclasses import dataclass

from .commands import Command
from .exceptions import DeliveryError, DirectoryLookupError
from .ports import NotificationSender, RegistrationAction, UserDirectory

logger = logging.getLogger(__name__)

CONFIRMATIONS: dict[RegistrationAction, tuple[str, str]] = {
    RegistrationAction.REGISTER: (
        "Registration Confirmation",
        "You have successfully registered for the event.",
    ),
    RegistrationAction.UNREGISTER: (
        "Unregistration Confirmation",
        "You have successfully unregistered from the event.",
    ),
}


@dataclass
class NotificationTrigger:
    """Resolves the user's address and sends the confirmation for an applied command."""

    directory: UserDirectory
    sender: NotificationSender

    def notify(self, command: Command) -> bool:
        """
        Send the confirmation for an applied command.

        Returns:
            True if the notification was handed to the sender, False otherwise
        """
        if command.action is None:
            return False

        subject, body = CONFIRMATIONS[command.action]
        try:
            email = self.directory.resolve_email(command.user_id)
            if not email:
                logger.warning(
                    "No email address for user=%s, skipping notification (event=%s action=%s)",
                    command.user_id,
                    command.event_id,
                    command.action_name,
                )
                return False

            self.sender.send_notification(email, subject, body)
        except DirectoryLookupError as e:
            logger.error(
                "Directory lookup failed for user=%s event=%s action=%s: %s",
                command.user_id,
                command.event_id,
                command.action_name,
                e,
            )
            return False
        except DeliveryError as e:
            logger.error(
                "Notification delivery failed for user=%s event=%s action=%s: %s",
                command.user_id,
                command.event_id,
                command.action_name,
                e,
            )
            return False
        except Exception:
            logger.exception(
                "Unexpected notification failure for user=%s event=%s action=%s",
                command.user_id,
                command.event_id,
                command.action_name,
            )
            return False

        logger.info("Notification '%s' sent for user=%s event=%s", subject, command.user_id, command.event_id)
        return True
