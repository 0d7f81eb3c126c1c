"""Shared JSON-over-HTTP transport for the provider clients."""

from __future__ import annotations

import http.client
import json
import logging
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple


LOGGER = logging.getLogger(__name__)


@dataclass
class ProviderError(Exception):
    """Raised when a provider request fails at the transport, HTTP or parse level."""

    message: str
    status_code: Optional[int] = None
    response_text: Optional[str] = None
    provider: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


def post_json(
    url: str,
    body: Mapping[str, Any],
    *,
    headers: Mapping[str, str],
    timeout: float,
    label: str,
) -> Tuple[Dict[str, Any], str]:
    """POST ``body`` as JSON and return the decoded object plus the raw text.

    ``label`` prefixes diagnostics, e.g. ``"OpenAI API error (401): ..."``.
    """

    data = json.dumps(dict(body)).encode("utf-8")
    request_headers = {"Content-Type": "application/json"}
    request_headers.update(headers)

    request = urllib.request.Request(url=url, data=data, headers=request_headers, method="POST")

    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            raw_bytes = response.read()
            status = response.getcode()
    except urllib.error.HTTPError as exc:
        error_bytes = exc.read()
        error_text = error_bytes.decode("utf-8", errors="ignore") if error_bytes else ""
        raise ProviderError(
            message=f"{label} API error ({exc.code}): {error_text}".rstrip(),
            status_code=exc.code,
            response_text=error_text or None,
            provider=label,
        ) from None
    except urllib.error.URLError as exc:
        human = getattr(exc, "reason", None) or str(exc)
        raise ProviderError(message=f"{label} request failed: {human}", provider=label) from exc
    except (socket.timeout, TimeoutError) as exc:
        raise ProviderError(message=f"{label} request timed out", provider=label) from exc
    except (OSError, http.client.HTTPException) as exc:
        raise ProviderError(message=f"{label} request failed: {str(exc) or type(exc).__name__}", provider=label) from exc

    response_text = raw_bytes.decode("utf-8", errors="replace") if raw_bytes else ""
    try:
        payload = json.loads(response_text) if response_text else {}
    except json.JSONDecodeError as exc:
        raise ProviderError(
            message=f"{label} response was not valid JSON.",
            status_code=status,
            response_text=response_text,
            provider=label,
        ) from exc

    if not isinstance(payload, dict):
        raise ProviderError(
            message=f"{label} response was not a JSON object.",
            status_code=status,
            response_text=response_text,
            provider=label,
        )

    LOGGER.debug("%s responded with status %s (%d bytes)", label, status, len(raw_bytes or b""))
    return payload, response_text
