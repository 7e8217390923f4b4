"""Process configuration, read once from the environment at startup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_SERVICE_NAME = "LINE Chatbot"
DEFAULT_FALLBACK_TEXT = "ขออภัยค่ะ เกิดข้อผิดพลาดในการเชื่อมต่อกับ AI"


def load_local_env(environment: str | None = None) -> bool:
    """Load the local secrets file unless running in production.

    Variables already set in the process environment take precedence.
    Returns True when a file was found and loaded.
    """
    environment = environment or os.environ.get("ENVIRONMENT", "development")
    if environment == "production":
        return False
    env_path = Path(os.environ.get("ENV_FILE", ".env"))
    if not env_path.is_file():
        return False
    return load_dotenv(env_path, override=False)


@dataclass(frozen=True)
class RelayConfig:
    channel_secret: str
    channel_access_token: str
    gemini_api_key: str
    gemini_model: str = DEFAULT_MODEL
    service_name: str = DEFAULT_SERVICE_NAME
    fallback_text: str = DEFAULT_FALLBACK_TEXT
    environment: str = "development"
    audit_log_path: str | None = None
    log_level: str = "INFO"
    http_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> RelayConfig:
        environment = os.environ.get("ENVIRONMENT", "development")
        load_local_env(environment)

        config = cls(
            channel_secret=os.environ.get("LINE_CHANNEL_SECRET", ""),
            channel_access_token=os.environ.get("LINE_CHANNEL_ACCESS_TOKEN", ""),
            gemini_api_key=os.environ.get("GEMINI_API_KEY", ""),
            gemini_model=os.environ.get("GEMINI_MODEL", DEFAULT_MODEL),
            service_name=os.environ.get("SERVICE_NAME", DEFAULT_SERVICE_NAME),
            fallback_text=os.environ.get("RELAY_FALLBACK_TEXT", DEFAULT_FALLBACK_TEXT),
            environment=environment,
            audit_log_path=os.environ.get("AUDIT_LOG_PATH") or None,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            http_timeout=float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30")),
        )

        if not config.gemini_api_key:
            logger.warning(
                "GEMINI_API_KEY is not set; text messages will be answered "
                "with the fallback reply",
            )
        if not config.channel_secret:
            logger.warning("LINE_CHANNEL_SECRET is not set; every webhook will be rejected")
        return config
