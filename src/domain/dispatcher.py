"""
Command dispatcher - Registration message state machine.

Each message moves through:

    Received -> Applying -> {Completed, Deferred}

Outcomes
========

    Ledger OK               -> notify (best effort) -> COMPLETED
    Ledger STALE            -> COMPLETED (older command, nothing to do)
    Ledger EVENT_NOT_FOUND  -> DEFERRED, or COMPLETED if acknowledge_missing_events
    Ledger STORAGE_ERROR    -> DEFERRED (transport redelivers)
    Unrecognized action     -> COMPLETED, ledger untouched
    DecodeError             -> COMPLETED, or DEFERRED if not acknowledge_decode_errors

The dispatcher never retries. COMPLETED asks the transport to remove the
message; DEFERRED leaves redelivery and dead-lettering to the transport.
"""

import logging
from dataclasses import dataclass

from .commands import Command, decode_command
from .exceptions import DecodeError
from .notifications import NotificationTrigger
from .ports import (
    DispatchOutcome,
    LedgerResult,
    MessageActions,
    ReceivedMessage,
    RegistrationAction,
    RegistrationLedger,
)

logger = logging.getLogger(__name__)


@dataclass
class CommandDispatcher:
    """
    Routes decoded commands to the ledger and decides acknowledgment.

    Holds no per-message state, so one instance may serve concurrent
    invocations.
    """

    ledger: RegistrationLedger
    notifications: NotificationTrigger
    acknowledge_decode_errors: bool = True
    acknowledge_missing_events: bool = False

    def process(self, message: ReceivedMessage, actions: MessageActions) -> DispatchOutcome:
        """
        Dispatch one transport message and settle it.

        The message is completed with the transport only on COMPLETED.
        """
        logger.info(
            "Message received: id=%s delivery_count=%s", message.message_id, message.delivery_count
        )
        outcome = self.dispatch(message.body, message_id=message.message_id)
        if outcome is DispatchOutcome.COMPLETED:
            actions.complete_message(message)
        else:
            logger.info("Message left for redelivery: id=%s", message.message_id)
        return outcome

    def dispatch(self, body: bytes | str, message_id: str | None = None) -> DispatchOutcome:
        """Decode a raw payload and handle the resulting command."""
        try:
            command = decode_command(body, message_id=message_id)
        except DecodeError as e:
            logger.error("Rejected message id=%s: %s", message_id, e)
            if self.acknowledge_decode_errors:
                return DispatchOutcome.COMPLETED
            return DispatchOutcome.DEFERRED

        return self.handle(command)

    def handle(self, command: Command) -> DispatchOutcome:
        """
        Apply a decoded command.

        Args:
            command: Decoded registration command

        Returns:
            COMPLETED if the message should be acknowledged, DEFERRED otherwise
        """
        if command.action is None:
            logger.warning(
                "Unrecognized action '%s' for event=%s user=%s, acknowledging without changes",
                command.action_name,
                command.event_id,
                command.user_id,
            )
            return DispatchOutcome.COMPLETED

        result = self._apply(command)

        if result is LedgerResult.OK:
            logger.info(
                "Applied %s for user=%s event=%s",
                command.action_name,
                command.user_id,
                command.event_id,
            )
            self.notifications.notify(command)
            return DispatchOutcome.COMPLETED

        if result is LedgerResult.STALE:
            logger.warning(
                "Ignored stale %s (sequence=%s) for user=%s event=%s",
                command.action_name,
                command.sequence,
                command.user_id,
                command.event_id,
            )
            return DispatchOutcome.COMPLETED

        if result is LedgerResult.EVENT_NOT_FOUND:
            logger.error(
                "Event not found: event=%s user=%s action=%s",
                command.event_id,
                command.user_id,
                command.action_name,
            )
            if self.acknowledge_missing_events:
                return DispatchOutcome.COMPLETED
            return DispatchOutcome.DEFERRED

        logger.error(
            "Storage failure applying %s for user=%s event=%s, deferring",
            command.action_name,
            command.user_id,
            command.event_id,
        )
        return DispatchOutcome.DEFERRED

    def _apply(self, command: Command) -> LedgerResult:
        if command.action is RegistrationAction.REGISTER:
            operation = self.ledger.register
        else:
            operation = self.ledger.unregister
        return operation(
            command.event_id,
            command.user_id,
            sequence=command.sequence,
            message_id=command.message_id,
        )
