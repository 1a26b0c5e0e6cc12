"""Microsoft Graph client for outbound transactional email."""

import logging
import httpx
from datetime import datetime, timedelta
from typing import List, Optional

from swophere.core.config import settings
from swophere.core.exceptions import InternalError

logger = logging.getLogger(__name__)

GRAPH_URL = "https://graph.microsoft.com/v1.0"
TOKEN_URL = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)
REQUEST_TIMEOUT = 30.0


def build_mail_payload(
    to_emails: List[str],
    subject: str,
    body_html: str,
    reply_to: Optional[str] = None,
) -> dict:
    """Graph `sendMail` body for an HTML message that is not kept in Sent Items."""
    message = {
        "subject": subject,
        "body": {"contentType": "HTML", "content": body_html},
        "toRecipients": [{"emailAddress": {"address": address}} for address in to_emails],
    }
    if reply_to:
        message["replyTo"] = [{"emailAddress": {"address": reply_to}}]
    return {"message": message, "saveToSentItems": "false"}


class GraphEmailClient:
    """
    Sends mail as one SwopHere sender mailbox using app-only
    (client credentials) tokens. Tokens are cached until shortly before
    they expire.
    """

    def __init__(self, tenant_id: str, client_id: str, client_secret: str, default_sender: str):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.default_sender = default_sender
        self._access_token: Optional[str] = None
        self._token_expiry: Optional[datetime] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)

    def _token_is_fresh(self) -> bool:
        return bool(
            self._access_token
            and self._token_expiry
            and datetime.utcnow() < self._token_expiry - TOKEN_REFRESH_MARGIN
        )

    async def _get_access_token(self, force_refresh: bool = False) -> str:
        if not force_refresh and self._token_is_fresh():
            return self._access_token

        async with httpx.AsyncClient() as client:
            response = await client.post(
                TOKEN_URL.format(tenant_id=self.tenant_id),
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "scope": "https://graph.microsoft.com/.default",
                    "grant_type": "client_credentials",
                },
                timeout=REQUEST_TIMEOUT,
            )

        if response.status_code != 200:
            raise InternalError(f"Failed to get access token: {response.text}")

        token_data = response.json()
        expires_in = token_data.get("expires_in", 3600)
        self._access_token = token_data["access_token"]
        self._token_expiry = datetime.utcnow() + timedelta(seconds=expires_in)

        logger.info(f"New Graph access token obtained, expires in {expires_in}s")
        return self._access_token

    def clear_token_cache(self):
        self._access_token = None
        self._token_expiry = None

    async def send_email(
        self,
        to_emails: List[str],
        subject: str,
        body_html: str,
        reply_to: Optional[str] = None,
        retry_with_refresh: bool = True,
    ) -> dict:
        """
        Send an HTML email from the default sender.

        A 403 usually means the cached token was revoked, so the send is
        retried once with a fresh token. Any other non-2xx status raises
        InternalError.
        """
        if not self.is_configured:
            raise InternalError("Email transport is not configured")

        token = await self._get_access_token()

        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{GRAPH_URL}/users/{self.default_sender}/sendMail",
                headers={"Authorization": f"Bearer {token}"},
                json=build_mail_payload(to_emails, subject, body_html, reply_to),
                timeout=REQUEST_TIMEOUT,
            )

        if response.status_code == 403 and retry_with_refresh:
            logger.warning("Email send got 403, refreshing token and retrying...")
            self.clear_token_cache()
            return await self.send_email(to_emails, subject, body_html, reply_to, retry_with_refresh=False)

        if response.status_code not in (200, 202):
            logger.error(f"Failed to send email: {response.status_code} - {response.text}")
            raise InternalError(f"Failed to send email: {response.status_code}")

        logger.info(f"Email '{subject}' sent to {', '.join(to_emails)}")
        return {"status": "sent", "from": self.default_sender, "to": to_emails, "subject": subject}

    async def send_email_with_template(
        self,
        to_emails: List[str],
        subject: str,
        template_html: str,
        template_vars: Optional[dict] = None,
        reply_to: Optional[str] = None,
    ) -> dict:
        """Fill `subject` and `template_html` with str.format placeholders, then send."""
        template_vars = template_vars or {}
        return await self.send_email(
            to_emails=to_emails,
            subject=subject.format(**template_vars),
            body_html=template_html.format(**template_vars),
            reply_to=reply_to,
        )


graph_client = GraphEmailClient(
    tenant_id=settings.MICROSOFT_TENANT_ID,
    client_id=settings.MICROSOFT_CLIENT_ID,
    client_secret=settings.MICROSOFT_CLIENT_SECRET,
    default_sender=settings.EMAIL_SENDER,
)
