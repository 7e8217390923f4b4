"""FastAPI application exposing the LINE webhook relay."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from src.audit.logger import AuditLogger
from src.config import RelayConfig
from src.provider.gemini import GeminiClient
from src.webhook.line import LineClient
from src.webhook.relay import WebhookRelay

WEBHOOK_PATHS = ("/", "/api/webhook")
_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    config = RelayConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return create_app(build_relay(config))


def build_relay(config: RelayConfig) -> WebhookRelay:
    """Construct the relay and its clients from a loaded configuration."""
    audit_logger = (
        AuditLogger.from_env(config.audit_log_path) if config.audit_log_path else None
    )
    line_client = LineClient(
        channel_secret=config.channel_secret,
        channel_access_token=config.channel_access_token,
        timeout=config.http_timeout,
    )
    provider = GeminiClient(
        api_key=config.gemini_api_key,
        model=config.gemini_model,
        timeout=config.http_timeout,
    )
    return WebhookRelay(
        line_client=line_client,
        provider=provider,
        service_name=config.service_name,
        fallback_text=config.fallback_text,
        audit_logger=audit_logger,
    )


def create_app(relay: WebhookRelay) -> FastAPI:
    """Create the webhook app around an already-built relay."""
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    async def webhook(request: Request) -> Response:
        # Signature is computed over these exact bytes, never a re-serialized form.
        body = await request.body()
        result = await relay.handle_request(
            request.method,
            request.headers,
            body,
            source_ip=request.client.host if request.client else None,
        )
        if isinstance(result.body, str):
            return PlainTextResponse(result.body, status_code=result.status_code)
        return JSONResponse(result.body, status_code=result.status_code)

    for path in WEBHOOK_PATHS:
        app.add_api_route(path, webhook, methods=_METHODS)

    return app
