"""Outbound HTML email through the Resend REST API."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

import httpx

from toyotron.config import EmailConfig
from toyotron.errors import ConfigurationError, MailerError
from toyotron.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    def to_api_dict(self) -> dict[str, str]:
        return {
            "filename": self.filename,
            "content": base64.b64encode(self.content).decode("ascii"),
            "content_type": self.content_type,
        }


class ResendMailer:
    def __init__(self, config: EmailConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._config = config
        self._http = httpx.AsyncClient(
            base_url=config.api_url.rstrip("/"), timeout=15.0, transport=transport
        )

    @property
    def configured(self) -> bool:
        return bool(self._config.resend_api_key)

    async def send_html(
        self,
        to: Union[str, Sequence[str]],
        subject: str,
        html: str,
        cc: Optional[Sequence[str]] = None,
        bcc: Optional[Sequence[str]] = None,
        reply_to: Optional[str] = None,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> dict[str, Any]:
        """Send one message. Returns the provider's response (contains ``id``)."""
        if not self._config.resend_api_key:
            raise ConfigurationError("Email delivery is not configured (missing Resend API key).")

        recipients = [to] if isinstance(to, str) else list(to)
        payload: dict[str, Any] = {
            "from": self._config.from_address,
            "to": recipients,
            "subject": subject,
            "html": html,
        }
        if cc:
            payload["cc"] = list(cc)
        if bcc:
            payload["bcc"] = list(bcc)
        if reply_to:
            payload["reply_to"] = reply_to
        if attachments:
            payload["attachments"] = [a.to_api_dict() for a in attachments]

        try:
            response = await self._http.post(
                "/emails",
                json=payload,
                headers={"Authorization": f"Bearer {self._config.resend_api_key}"},
            )
        except httpx.HTTPError as e:
            raise MailerError(f"Email request failed: {e}") from e

        if response.is_error:
            raise MailerError(f"Email provider returned {response.status_code}: {response.text}")

        data = response.json()
        logger.info("email_sent", to=recipients, subject=subject, email_id=data.get("id"))
        return data

    async def close(self) -> None:
        await self._http.aclose()
