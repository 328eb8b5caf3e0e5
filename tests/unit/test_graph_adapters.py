"""
Unit tests for Microsoft Graph adapters.

Uses httpx.MockTransport and a fake azure-identity credential to verify:
- Bearer tokens are taken from the credential for the Graph scope
- Directory lookups and their failure mapping
- sendMail payloads and their failure mapping
"""

import json
import time
from collections.abc import Callable

import httpx
import pytest
from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import ClientSecretCredential

from src.adapters.directory.graph import GraphUserDirectory
from src.adapters.graph.client import GRAPH_SCOPE, GraphAuthenticationError, GraphClient
from src.adapters.mail.graph import GraphMailSender
from src.domain.exceptions import DeliveryError, DirectoryLookupError

Handler = Callable[[httpx.Request], httpx.Response]


class FakeCredential:
    """Stands in for ClientSecretCredential; records requested scopes."""

    def __init__(self, token: str = "token-abc", error: Exception | None = None) -> None:
        self.token = token
        self.error = error
        self.scopes: list[tuple[str, ...]] = []
        self.closed = False

    def get_token(self, *scopes: str, **kwargs) -> AccessToken:
        self.scopes.append(scopes)
        if self.error is not None:
            raise self.error
        return AccessToken(self.token, int(time.time()) + 3600)

    def close(self) -> None:
        self.closed = True


def make_client(handler: Handler, credential: FakeCredential | None = None) -> GraphClient:
    return GraphClient(
        http=httpx.Client(transport=httpx.MockTransport(handler)),
        credential=credential or FakeCredential(),
        base_url="https://graph.example.test/v1.0",
    )


class TestGraphClient:
    """Tests for request authentication."""

    def test_requests_token_for_graph_scope(self) -> None:
        credential = FakeCredential()
        client = make_client(lambda request: httpx.Response(200, json={}), credential)

        client.request("GET", "users/u1")

        assert credential.scopes == [(GRAPH_SCOPE,)]

    def test_sends_bearer_token(self) -> None:
        requests: list[httpx.Request] = []

        def api(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={})

        make_client(api).request("GET", "users/u1")

        assert requests[0].headers["Authorization"] == "Bearer token-abc"
        assert requests[0].url.host == "graph.example.test"
        assert requests[0].url.path == "/v1.0/users/u1"

    def test_credential_error_raises_authentication_error(self) -> None:
        credential = FakeCredential(error=ClientAuthenticationError(message="invalid_client"))
        client = make_client(lambda request: httpx.Response(200, json={}), credential)

        with pytest.raises(GraphAuthenticationError):
            client.request("GET", "users/u1")

    def test_close_closes_credential(self) -> None:
        credential = FakeCredential()
        client = make_client(lambda request: httpx.Response(200, json={}), credential)

        client.close()

        assert credential.closed is True

    def test_from_client_secret_uses_client_secret_credential(self) -> None:
        client = GraphClient.from_client_secret(
            tenant_id="tenant-1", client_id="client-1", client_secret="secret-1"
        )
        try:
            assert isinstance(client._credential, ClientSecretCredential)
        finally:
            client.close()


class TestGraphUserDirectory:
    """Tests for GraphUserDirectory."""

    def test_resolves_mail(self) -> None:
        def api(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/v1.0/users/u1"
            assert request.url.params["$select"] == "mail"
            return httpx.Response(200, json={"mail": "u1@example.com"})

        directory = GraphUserDirectory(make_client(api))

        assert directory.resolve_email("u1") == "u1@example.com"

    def test_user_not_found_returns_none(self) -> None:
        directory = GraphUserDirectory(
            make_client(lambda request: httpx.Response(404, json={}))
        )

        assert directory.resolve_email("ghost") is None

    @pytest.mark.parametrize("body", [{"mail": None}, {"mail": ""}, {}])
    def test_user_without_mail_returns_none(self, body: dict) -> None:
        directory = GraphUserDirectory(
            make_client(lambda request: httpx.Response(200, json=body))
        )

        assert directory.resolve_email("u1") is None

    def test_server_error_raises_lookup_error(self) -> None:
        directory = GraphUserDirectory(
            make_client(lambda request: httpx.Response(500, json={}))
        )

        with pytest.raises(DirectoryLookupError):
            directory.resolve_email("u1")

    def test_transport_error_raises_lookup_error(self) -> None:
        def api(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        directory = GraphUserDirectory(make_client(api))

        with pytest.raises(DirectoryLookupError):
            directory.resolve_email("u1")

    def test_token_failure_raises_lookup_error(self) -> None:
        credential = FakeCredential(error=ClientAuthenticationError(message="invalid_client"))
        client = make_client(lambda request: httpx.Response(200, json={}), credential)

        with pytest.raises(DirectoryLookupError):
            GraphUserDirectory(client).resolve_email("u1")


class TestGraphMailSender:
    """Tests for GraphMailSender."""

    def test_posts_send_mail_payload(self) -> None:
        captured: list[httpx.Request] = []

        def api(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(202)

        sender = GraphMailSender(make_client(api), from_email="events@example.com")

        sender.send_notification("u1@example.com", "Registration Confirmation", "Done & dusted")

        request = captured[0]
        assert request.method == "POST"
        assert request.url.path == "/v1.0/users/events@example.com/sendMail"
        payload = json.loads(request.content)
        assert payload == {
            "message": {
                "subject": "Registration Confirmation",
                "body": {"contentType": "HTML", "content": "<strong>Done &amp; dusted</strong>"},
                "toRecipients": [{"emailAddress": {"address": "u1@example.com"}}],
            },
            "saveToSentItems": False,
        }

    def test_rejected_mail_raises_delivery_error(self) -> None:
        sender = GraphMailSender(
            make_client(lambda request: httpx.Response(400, json={})),
            from_email="events@example.com",
        )

        with pytest.raises(DeliveryError):
            sender.send_notification("u1@example.com", "Subject", "Body")

    def test_transport_error_raises_delivery_error(self) -> None:
        def api(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        sender = GraphMailSender(make_client(api), from_email="events@example.com")

        with pytest.raises(DeliveryError):
            sender.send_notification("u1@example.com", "Subject", "Body")

    def test_token_failure_raises_delivery_error(self) -> None:
        credential = FakeCredential(error=ClientAuthenticationError(message="invalid_client"))
        sender = GraphMailSender(
            make_client(lambda request: httpx.Response(202), credential),
            from_email="events@example.com",
        )

        with pytest.raises(DeliveryError):
            sender.send_notification("u1@example.com", "Subject", "Body")
