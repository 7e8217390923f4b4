"""Gemini text-generation client (REST ``generateContent``)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.models import ErrorKind, RelayError

logger = logging.getLogger(__name__)

_GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GeminiClient:
    """Sends single-turn prompts to one configured Gemini model."""

    def __init__(
        self,
        api_key: str,
        model: str,
        api_base: str = _GEMINI_API_BASE,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def build_request(self, prompt: str) -> dict[str, Any]:
        """Single user turn, no history attached."""
        return {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

    async def generate(self, prompt: str) -> str:
        """Return the model's text for ``prompt``.

        Raises RelayError(TRANSPORT_ERROR) on network failure and
        RelayError(PROVIDER_ERROR) on an error status or a response that
        carries no text.
        """
        if not self._api_key:
            raise RelayError(ErrorKind.PROVIDER_ERROR, "Gemini API key is not configured")

        url = f"{self._api_base}/models/{self.model}:generateContent"
        headers = {"x-goog-api-key": self._api_key}

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout,
            ) as client:
                resp = await client.post(
                    url, json=self.build_request(prompt), headers=headers,
                )
        except httpx.HTTPError as exc:
            raise RelayError(
                ErrorKind.TRANSPORT_ERROR, f"Gemini request failed: {exc}",
            ) from exc

        if resp.status_code >= 400:
            raise RelayError(
                ErrorKind.PROVIDER_ERROR,
                f"Gemini API returned {resp.status_code}: {resp.text}",
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise RelayError(
                ErrorKind.PROVIDER_ERROR, "Gemini response is not JSON",
            ) from exc

        text = extract_text(data)
        if not text:
            raise RelayError(ErrorKind.PROVIDER_ERROR, "Gemini response contained no text")
        return text


def extract_text(data: object) -> str:
    """Concatenate the text parts of the first candidate; "" when absent."""
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    if not isinstance(first, dict):
        return ""
    content = first.get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    return "".join(
        part["text"] for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )
