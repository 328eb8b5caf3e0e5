"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol
from uuid import UUID


class RegistrationAction(str, Enum):
    """
    Actions a registration command can request.

    Wire values are matched exactly. Anything else is a well-formed but
    unrecognized action and decodes to None.
    """

    REGISTER = "Register"
    UNREGISTER = "Unregister"

    @classmethod
    def from_wire(cls, value: str) -> "RegistrationAction | None":
        """Return the action for a wire value, or None if it is not modeled."""
        try:
            return cls(value)
        except ValueError:
            return None


class RegistrationState(str, Enum):
    """
    Current state of an (event, user) registration row.

    Transitions:
    - (absent) -> REGISTERED      (register, counter +1)
    - (absent) -> UNREGISTERED    (unregister before register, counter unchanged)
    - UNREGISTERED -> REGISTERED  (register, counter +1)
    - REGISTERED -> UNREGISTERED  (unregister, counter -1)

    Re-applying the current state is a no-op. Transitions are decided
    under the event row lock by the ledger.
    """

    REGISTERED = "Registered"
    UNREGISTERED = "Unregistered"


class LedgerResult(Enum):
    """
    Result of a ledger operation.

    Returned as values so the dispatcher can branch on them without
    exception-driven control flow.
    """

    OK = "ok"
    EVENT_NOT_FOUND = "event_not_found"
    STALE = "stale"
    STORAGE_ERROR = "storage_error"


class DispatchOutcome(Enum):
    """Terminal state of one message: acknowledge it or leave it for redelivery."""

    COMPLETED = "completed"
    DEFERRED = "deferred"


@dataclass(frozen=True)
class ReceivedMessage:
    """One message as handed over by the queue transport."""

    message_id: str | None
    body: bytes
    delivery_count: int = 1


class RegistrationLedger(Protocol):
    """Port interface for registration persistence."""

    def register(
        self,
        event_id: UUID,
        user_id: str,
        *,
        sequence: int | None = None,
        message_id: str | None = None,
    ) -> LedgerResult:
        """
        Mark the user as registered for the event.

        Implementation locks the event row (SELECT FOR UPDATE) and
        increments its counter only on an actual state transition, so
        redelivered commands never double count.

        Returns:
            OK, EVENT_NOT_FOUND, STALE or STORAGE_ERROR
        """
        ...

    def unregister(
        self,
        event_id: UUID,
        user_id: str,
        *,
        sequence: int | None = None,
        message_id: str | None = None,
    ) -> LedgerResult:
        """
        Mark the user as unregistered for the event.

        A pair with no prior row is recorded as UNREGISTERED without error.

        Returns:
            OK, STALE or STORAGE_ERROR
        """
        ...


class UserDirectory(Protocol):
    """Port interface for resolving a user identifier to a delivery address."""

    def resolve_email(self, user_id: str) -> str | None:
        """
        Return the user's email address, or None if the user has none.

        Raises:
            DirectoryLookupError: If the directory could not be queried
        """
        ...


class NotificationSender(Protocol):
    """Port interface for notification delivery."""

    def send_notification(self, email: str, subject: str, body: str) -> None:
        """
        Deliver a notification.

        Raises:
            DeliveryError: If delivery failed
        """
        ...


class MessageActions(Protocol):
    """Port interface for settling a message with the queue transport."""

    def complete_message(self, message: ReceivedMessage) -> None:
        """Tell the transport the message is fully processed and may be removed."""
        ...
