"""
Graph user directory adapter - Implements UserDirectory protocol.

Resolves a user id to the mail attribute of the Microsoft Graph user.
"""

import logging
from urllib.parse import quote

import httpx

from src.adapters.graph.client import GraphAuthenticationError, GraphClient
from src.domain.exceptions import DirectoryLookupError

logger = logging.getLogger(__name__)


class GraphUserDirectory:
    """
    Implements UserDirectory protocol via GET /users/{id}.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: GraphClient) -> None:
        self._client = client

    def resolve_email(self, user_id: str) -> str | None:
        """
        Look up the user's mail address.

        Returns:
            Email address, or None if the user does not exist or has no mail

        Raises:
            DirectoryLookupError: If Graph could not be queried
        """
        try:
            response = self._client.request(
                "GET", f"users/{quote(user_id, safe='')}", params={"$select": "mail"}
            )
        except (httpx.HTTPError, GraphAuthenticationError) as e:
            raise DirectoryLookupError(f"Lookup of user {user_id} failed: {e}") from e

        if response.status_code == 404:
            logger.warning("User %s not found in directory", user_id)
            return None
        if response.is_error:
            raise DirectoryLookupError(
                f"Lookup of user {user_id} failed with HTTP {response.status_code}"
            )

        try:
            mail = response.json().get("mail")
        except ValueError as e:
            raise DirectoryLookupError(f"Lookup of user {user_id} returned invalid JSON") from e
        return mail or None
