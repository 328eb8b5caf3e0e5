"""
Domain exceptions - Semantic error types for registration processing.

This module defines domain-specific exceptions that communicate
failures at the core's boundaries without leaking infrastructure details.
Expected ledger outcomes (missing event, storage failure) are not
exceptions; they are LedgerResult values.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class DecodeError(RegistrationError):
    """Message payload is not a well-formed registration command."""

    pass


class DirectoryLookupError(RegistrationError):
    """User directory could not be queried."""

    pass


class DeliveryError(RegistrationError):
    """Notification could not be delivered."""

    pass
