"""
Microsoft Graph client - Authenticated access to the Graph REST API.

Access tokens come from an azure-identity credential (ClientSecretCredential
in production), which acquires, caches and refreshes them. One instance is
built at startup and shared by the directory and mail adapters.
"""

import logging

import httpx
from azure.core.credentials import TokenCredential
from azure.core.exceptions import AzureError
from azure.identity import ClientSecretCredential

logger = logging.getLogger(__name__)

GRAPH_SCOPE = "https://graph.microsoft.com/.default"


class GraphAuthenticationError(Exception):
    """The credential could not provide an access token."""

    pass


class GraphClient:
    """Thin Graph REST client over an httpx.Client."""

    def __init__(
        self,
        http: httpx.Client,
        credential: TokenCredential,
        base_url: str = "https://graph.microsoft.com/v1.0",
    ) -> None:
        self._http = http
        self._credential = credential
        self._base_url = base_url.rstrip("/")

    @classmethod
    def from_client_secret(
        cls,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        base_url: str = "https://graph.microsoft.com/v1.0",
        authority: str = "https://login.microsoftonline.com",
        timeout: float = 10.0,
    ) -> "GraphClient":
        """Build a client authenticating as an app registration."""
        credential = ClientSecretCredential(
            tenant_id, client_id, client_secret, authority=authority
        )
        return cls(httpx.Client(timeout=timeout), credential, base_url=base_url)

    def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Send an authenticated request to a Graph path.

        Raises:
            httpx.HTTPError: Transport failure
            GraphAuthenticationError: No access token could be obtained
        """
        headers = {"Authorization": f"Bearer {self._access_token()}"}
        url = f"{self._base_url}/{path.lstrip('/')}"
        return self._http.request(method, url, headers=headers, **kwargs)

    def close(self) -> None:
        self._http.close()
        close_credential = getattr(self._credential, "close", None)
        if close_credential is not None:
            close_credential()

    def _access_token(self) -> str:
        try:
            return self._credential.get_token(GRAPH_SCOPE).token
        except AzureError as e:
            logger.error("Graph token request failed: %s", e)
            raise GraphAuthenticationError(f"Graph token request failed: {e}") from e
