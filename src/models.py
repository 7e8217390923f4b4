"""Shared Pydantic data models for the LINE relay."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class ErrorKind(str, Enum):
    SIGNATURE_INVALID = "signature_invalid"
    PROVIDER_ERROR = "provider_error"
    TRANSPORT_ERROR = "transport_error"
    MALFORMED_PAYLOAD = "malformed_payload"


class AuditEventType(str, Enum):
    SIGNATURE_FAILURE = "signature_failure"
    MESSAGE_RECEIVED = "message_received"
    PROVIDER_ERROR = "provider_error"
    REPLY_SENT = "reply_sent"
    REQUEST_FAILED = "request_failed"


class RiskLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class RelayError(Exception):
    """Raised by relay components; ``kind`` says which boundary failed."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)


# --- LINE webhook models ---


class EventMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str | None = None
    text: str | None = None


class InboundEvent(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str
    message: EventMessage | None = None
    reply_token: str | None = Field(default=None, alias="replyToken")

    @property
    def is_text_message(self) -> bool:
        return (
            self.type == "message"
            and self.message is not None
            and self.message.type == "text"
            and isinstance(self.message.text, str)
        )


class WebhookPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    destination: str | None = None
    events: list[InboundEvent]


class ReplyMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "text"
    text: str


class RelayResult(BaseModel):
    success: bool = True
    results: list[dict[str, Any] | None]


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    action: str
    result: str  # "success" | "failure" | "fallback"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
