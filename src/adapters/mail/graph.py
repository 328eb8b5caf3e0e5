"""
Graph mail sender adapter - Implements NotificationSender protocol.

Sends notifications as HTML mail from a fixed mailbox through
POST /users/{from}/sendMail.
"""

import html
import logging
from urllib.parse import quote

import httpx

from src.adapters.graph.client import GraphAuthenticationError, GraphClient
from src.domain.exceptions import DeliveryError

logger = logging.getLogger(__name__)


class GraphMailSender:
    """
    Implements NotificationSender protocol via Microsoft Graph sendMail.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, client: GraphClient, from_email: str) -> None:
        self._client = client
        self._from_email = from_email

    def send_notification(self, email: str, subject: str, body: str) -> None:
        """
        Send an HTML mail with the body in bold.

        Raises:
            DeliveryError: If Graph rejected the mail or could not be reached
        """
        payload = {
            "message": {
                "subject": subject,
                "body": {"contentType": "HTML", "content": f"<strong>{html.escape(body)}</strong>"},
                "toRecipients": [{"emailAddress": {"address": email}}],
            },
            "saveToSentItems": False,
        }

        try:
            response = self._client.request(
                "POST", f"users/{quote(self._from_email, safe='')}/sendMail", json=payload
            )
        except (httpx.HTTPError, GraphAuthenticationError) as e:
            raise DeliveryError(f"Sending mail to {email} failed: {e}") from e

        if response.is_error:
            raise DeliveryError(f"Sending mail to {email} failed with HTTP {response.status_code}")

        logger.info("Email sent to %s", email)
