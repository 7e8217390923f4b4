"""Shared test fixtures for the LINE relay."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.audit.logger import AuditLogger
from src.models import AuditEvent, AuditEventType, RiskLevel

CHANNEL_SECRET = "test-channel-secret"
FALLBACK_TEXT = "ขออภัยค่ะ เกิดข้อผิดพลาดในการเชื่อมต่อกับ AI"


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def mock_line_client() -> MagicMock:
    """LINE client that validates signatures for real and fakes replies."""
    from src.webhook.line import LineClient

    real = LineClient(channel_secret=CHANNEL_SECRET, channel_access_token="token")
    client = MagicMock(spec=LineClient)
    client.verify_signature.side_effect = real.verify_signature
    client.reply_message = AsyncMock(return_value={"sentMessages": []})
    return client


@pytest.fixture
def mock_provider() -> MagicMock:
    from src.provider.gemini import GeminiClient

    provider = MagicMock(spec=GeminiClient)
    provider.generate = AsyncMock(return_value="Hello!")
    return provider


# --- Factory functions for test data ---


def sign(body: bytes, secret: str = CHANNEL_SECRET) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def make_text_event(text: str = "hi", reply_token: str = "token-1", **kwargs: Any) -> dict[str, Any]:
    """Factory for a LINE text message event."""
    event: dict[str, Any] = {
        "type": "message",
        "mode": "active",
        "timestamp": 1700000000000,
        "source": {"type": "user", "userId": "U123"},
        "replyToken": reply_token,
        "message": {"id": "1", "type": "text", "text": text},
    }
    event.update(kwargs)
    return event


def make_sticker_event(reply_token: str = "token-s") -> dict[str, Any]:
    return {
        "type": "message",
        "replyToken": reply_token,
        "message": {"id": "2", "type": "sticker", "packageId": "1", "stickerId": "1"},
    }


def make_follow_event(reply_token: str = "token-f") -> dict[str, Any]:
    return {
        "type": "follow",
        "replyToken": reply_token,
        "source": {"type": "user", "userId": "U123"},
    }


def make_body(*events: dict[str, Any]) -> bytes:
    """Serialize a webhook payload the way LINE sends it."""
    payload = {"destination": "Uabc", "events": list(events)}
    return json.dumps(payload, ensure_ascii=False).encode()


def make_audit_event(**kwargs: Any) -> AuditEvent:
    """Factory for AuditEvent with sensible defaults."""
    defaults: dict[str, Any] = {
        "event_type": AuditEventType.SIGNATURE_FAILURE,
        "action": "verify_signature",
        "result": "failure",
        "risk_level": RiskLevel.HIGH,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)
