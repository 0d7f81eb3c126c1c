from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .http import ProviderError, post_json
from .types import ChatMessage, ChatResult, UsageMetrics, safe_int


LOGGER = logging.getLogger(__name__)

OPENROUTER_HEADERS = {
    "HTTP-Referer": "persona-dialogue",
    "X-Title": "Persona Dialogue",
}


class OpenAICompatibleClient:
    """Client for any endpoint speaking the OpenAI ``/chat/completions`` contract."""

    def __init__(
        self,
        *,
        api_key: str,
        endpoint: str,
        label: str = "OpenAI",
        extra_headers: Optional[Mapping[str, str]] = None,
        timeout: float = 60.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        resolved_key = (api_key or "").strip()
        if not resolved_key:
            raise ValueError("Missing API key for OpenAI-compatible client")

        self.api_key = resolved_key
        self.endpoint = endpoint
        self.label = label
        self.extra_headers = dict(extra_headers or {})
        self.timeout = timeout
        self.logger = logger or LOGGER

    def send_messages(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: Optional[float] = None,
    ) -> ChatResult:
        """Post the full message list and normalize the first choice."""

        if not messages:
            raise ValueError("At least one message must be supplied.")

        body: Dict[str, Any] = {
            "model": model,
            "messages": [message.to_payload() for message in messages],
        }
        if temperature is not None:
            body["temperature"] = float(temperature)

        payload, response_text = self._http_request(body)
        return self._normalise_response(payload, response_text)

    def _http_request(self, body: Dict[str, Any]) -> Tuple[Dict[str, Any], str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        headers.update(self.extra_headers)
        return post_json(self.endpoint, body, headers=headers, timeout=self.timeout, label=self.label)

    def _normalise_response(self, payload: Mapping[str, Any], response_text: str) -> ChatResult:
        choices = payload.get("choices")
        if choices is not None and not isinstance(choices, list):
            raise ProviderError(
                message=f"{self.label} response had an unexpected 'choices' shape.",
                response_text=response_text,
                provider=self.label,
            )

        text = ""
        finish_reason: Optional[str] = None
        if choices and isinstance(choices[0], dict):
            first = choices[0]
            finish_reason = first.get("finish_reason")
            message = first.get("message") or {}
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                text = message["content"].strip()

        usage = None
        usage_payload = payload.get("usage")
        if isinstance(usage_payload, dict) and usage_payload:
            usage = UsageMetrics(
                input_tokens=safe_int(usage_payload.get("prompt_tokens")),
                output_tokens=safe_int(usage_payload.get("completion_tokens")),
                total_tokens=safe_int(usage_payload.get("total_tokens")),
            )

        return ChatResult(
            text=text,
            model=payload.get("model"),
            finish_reason=finish_reason,
            usage=usage,
            raw={"response": dict(payload), "text": response_text},
        )
