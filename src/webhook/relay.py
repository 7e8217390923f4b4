"""Webhook relay pipeline.

Handles one LINE webhook request end to end:

1. Liveness short-circuit for non-POST requests
2. Signature check over the raw body (403 on failure)
3. Payload parsing
4. Per-event handling, concurrently: generate a reply with the provider,
   falling back to a fixed text on any provider failure, then send exactly
   one reply with the event's reply token
5. Aggregate response; anything escaping the flow becomes a 500
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from src.config import DEFAULT_FALLBACK_TEXT, DEFAULT_SERVICE_NAME
from src.models import (
    AuditEvent,
    AuditEventType,
    ErrorKind,
    InboundEvent,
    RelayError,
    RelayResult,
    ReplyMessage,
    RiskLevel,
    WebhookPayload,
)
from src.webhook.line import SIGNATURE_HEADER
from src.webhook.models import RelayResponse

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger
    from src.provider.gemini import GeminiClient
    from src.webhook.line import LineClient

logger = logging.getLogger(__name__)


class WebhookRelay:
    """Bridges LINE chat events to a text-generation provider."""

    def __init__(
        self,
        line_client: LineClient,
        provider: GeminiClient,
        service_name: str = DEFAULT_SERVICE_NAME,
        fallback_text: str = DEFAULT_FALLBACK_TEXT,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._line = line_client
        self._provider = provider
        self._service_name = service_name
        self._fallback_text = fallback_text
        self._audit = audit_logger

    @property
    def liveness_text(self) -> str:
        return f"{self._service_name} is running!"

    async def handle_request(
        self,
        method: str,
        headers: Mapping[str, str],
        body: bytes,
        source_ip: str | None = None,
    ) -> RelayResponse:
        """Run the full pipeline for one HTTP request."""
        if method.upper() != "POST":
            return RelayResponse(status_code=200, body=self.liveness_text)

        try:
            signature = _header(headers, SIGNATURE_HEADER)
            valid = self._line.verify_signature(body, signature)
        except Exception as exc:  # signature check itself failed, not a mismatch
            return self._internal_error(exc, source_ip)

        if not valid:
            logger.warning("Invalid LINE signature from %s", source_ip or "unknown")
            self._log(AuditEvent(
                event_type=AuditEventType.SIGNATURE_FAILURE,
                source_ip=source_ip,
                action="verify_signature",
                result="failure",
                risk_level=RiskLevel.HIGH,
                details={
                    "kind": ErrorKind.SIGNATURE_INVALID.value,
                    "header_present": bool(signature),
                },
            ))
            return RelayResponse(
                status_code=403,
                body={
                    "success": False,
                    "message": "Forbidden",
                    "kind": ErrorKind.SIGNATURE_INVALID.value,
                },
            )

        try:
            payload = parse_payload(body)
            results = await asyncio.gather(
                *(self.handle_event(event) for event in payload.events),
            )
            result = RelayResult(success=True, results=list(results))
        except Exception as exc:  # single outer safety net for the request
            return self._internal_error(exc, source_ip)
        return RelayResponse(status_code=200, body=result.model_dump())

    def _internal_error(self, exc: Exception, source_ip: str | None) -> RelayResponse:
        kind = exc.kind.value if isinstance(exc, RelayError) else None
        logger.exception("Error processing LINE webhook")
        self._log(AuditEvent(
            event_type=AuditEventType.REQUEST_FAILED,
            source_ip=source_ip,
            action="handle_request",
            result="failure",
            risk_level=RiskLevel.MEDIUM,
            details={"kind": kind, "error": str(exc)},
        ))
        return RelayResponse(
            status_code=500,
            body={
                "success": False,
                "message": "Internal Server Error",
                "error": str(exc),
                "kind": kind,
            },
        )

    async def handle_event(self, event: InboundEvent) -> dict[str, Any] | None:
        """Reply to one text message event; anything else resolves to None."""
        if not event.is_text_message or event.message is None:
            return None
        if not event.reply_token:
            logger.warning("Text message event without replyToken; skipping")
            return None

        user_text = event.message.text or ""
        logger.info("Received message from user: %s", user_text)
        self._log(AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            action="message",
            result="success",
            risk_level=RiskLevel.INFO,
            details={"length": len(user_text)},
        ))

        reply_text, used_fallback = await self.generate_reply(user_text)
        result = await self._line.reply_message(
            event.reply_token, ReplyMessage(text=reply_text),
        )
        self._log(AuditEvent(
            event_type=AuditEventType.REPLY_SENT,
            action="reply",
            result="fallback" if used_fallback else "success",
            risk_level=RiskLevel.INFO,
        ))
        return result

    async def generate_reply(self, prompt: str) -> tuple[str, bool]:
        """Provider text for ``prompt``, or the fallback text on any failure.

        The flag is True when the fallback text was substituted.
        """
        try:
            text = await self._provider.generate(prompt)
        except Exception as exc:  # provider failures never abort the event
            kind = exc.kind if isinstance(exc, RelayError) else ErrorKind.PROVIDER_ERROR
            logger.error("Error calling text-generation provider: %s", exc, exc_info=True)
            self._log(AuditEvent(
                event_type=AuditEventType.PROVIDER_ERROR,
                action="generate",
                result="failure",
                risk_level=RiskLevel.LOW,
                details={"kind": kind.value, "error": str(exc)},
            ))
            return self._fallback_text, True

        if isinstance(text, str) and text != "":
            return text, False
        return self._fallback_text, True

    def _log(self, event: AuditEvent) -> None:
        if self._audit:
            self._audit.log(event)


def parse_payload(body: bytes) -> WebhookPayload:
    """Decode and validate the webhook body."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RelayError(
            ErrorKind.MALFORMED_PAYLOAD, f"Request body is not valid JSON: {exc}",
        ) from exc
    try:
        return WebhookPayload.model_validate(data)
    except ValidationError as exc:
        raise RelayError(
            ErrorKind.MALFORMED_PAYLOAD, f"Unexpected webhook payload: {exc}",
        ) from exc


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, val in headers.items():
        if key.lower() == lowered:
            return val
    return None
