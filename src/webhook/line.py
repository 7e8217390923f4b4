"""LINE Messaging API client.

Handles webhook signature verification and reply delivery. A reply token
is single-use; this client sends exactly one request per call and never
retries.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from typing import Any

import httpx

from src.models import ErrorKind, RelayError, ReplyMessage

logger = logging.getLogger(__name__)

_LINE_API_BASE = "https://api.line.me/v2/bot"
SIGNATURE_HEADER = "x-line-signature"


class LineClient:
    """Verifies LINE webhooks and replies through the reply API."""

    def __init__(
        self,
        channel_secret: str,
        channel_access_token: str,
        api_base: str = _LINE_API_BASE,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._channel_secret = channel_secret
        self._channel_access_token = channel_access_token
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def compute_signature(self, body: bytes) -> str:
        """Base64 HMAC-SHA256 of the raw body keyed by the channel secret."""
        digest = hmac.new(
            self._channel_secret.encode(), body, hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode()

    def verify_signature(self, body: bytes, signature: str | None) -> bool:
        """Check ``signature`` against the literal request body bytes.

        An unconfigured channel secret never validates.
        Uses constant-time comparison via hmac.compare_digest.
        """
        if not signature or not self._channel_secret:
            return False
        expected = self.compute_signature(body)
        return hmac.compare_digest(signature.encode(), expected.encode())

    async def reply_message(
        self, reply_token: str, message: ReplyMessage,
    ) -> dict[str, Any]:
        """Send one reply for ``reply_token`` and return the API's JSON body."""
        url = f"{self._api_base}/message/reply"
        payload = {
            "replyToken": reply_token,
            "messages": [message.model_dump()],
        }
        headers = {"Authorization": f"Bearer {self._channel_access_token}"}

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout, verify=True,
            ) as client:
                resp = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise RelayError(
                ErrorKind.TRANSPORT_ERROR, f"LINE reply request failed: {exc}",
            ) from exc

        if resp.status_code >= 400:
            raise RelayError(
                ErrorKind.TRANSPORT_ERROR,
                f"LINE reply API returned {resp.status_code}: {resp.text}",
            )
        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
