"""Microsoft Graph adapters - shared HTTP client and authentication."""

from .client import GraphAuthenticationError, GraphClient

__all__ = ["GraphAuthenticationError", "GraphClient"]
