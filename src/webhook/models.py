"""Data models for the webhook relay pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class RelayResponse:
    """Outcome of one webhook request, independent of the web framework.

    A ``str`` body is sent as plain text, a ``dict`` body as JSON.
    """

    status_code: int
    body: dict[str, Any] | str
