"""
Static user directory adapter - Implements UserDirectory protocol.

Resolves addresses from an in-memory map (STATIC_USER_EMAILS) for
development setups without a real directory.
"""

from collections.abc import Mapping


class StaticUserDirectory:
    """Implements UserDirectory protocol from a fixed user id -> email map."""

    def __init__(self, addresses: Mapping[str, str] | None = None) -> None:
        self._addresses = dict(addresses or {})

    def resolve_email(self, user_id: str) -> str | None:
        return self._addresses.get(user_id)
