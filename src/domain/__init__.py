"""
Domain layer - Registration message state machine.

This package contains the core logic of the registration consumer:
decoding queue payloads, dispatching them to the ledger, and the
best-effort notification step. It defines its own port interfaces for
infrastructure abstraction, keeping the database, directory and mail
adapters swappable.
"""

from .commands import Command, decode_command
from .dispatcher import CommandDispatcher
from .exceptions import DecodeError, DeliveryError, DirectoryLookupError, RegistrationError
from .notifications import NotificationTrigger
from .ports import (
    DispatchOutcome,
    LedgerResult,
    MessageActions,
    NotificationSender,
    ReceivedMessage,
    RegistrationAction,
    RegistrationLedger,
    RegistrationState,
    UserDirectory,
)

__all__ = [
    "Command",
    "CommandDispatcher",
    "DecodeError",
    "DeliveryError",
    "DirectoryLookupError",
    "DispatchOutcome",
    "LedgerResult",
    "MessageActions",
    "NotificationSender",
    "NotificationTrigger",
    "ReceivedMessage",
    "RegistrationAction",
    "RegistrationError",
    "RegistrationLedger",
    "RegistrationState",
    "UserDirectory",
    "decode_command",
]
