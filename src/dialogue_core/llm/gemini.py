from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .http import ProviderError, post_json
from .types import ChatResult, UsageMetrics, safe_int


LOGGER = logging.getLogger(__name__)

GEMINI_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

# Native Gemini content entry: {"role": "user" | "model", "parts": [{"text": ...}]}
GeminiContent = Dict[str, Any]


def text_content(role: str, text: str) -> GeminiContent:
    return {"role": role, "parts": [{"text": text}]}


class GeminiClient:
    """Thin wrapper around the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        resolved_key = (api_key or os.environ.get("GEMINI_API_KEY") or "").strip()
        if not resolved_key:
            raise ValueError("Missing Gemini API key (set GEMINI_API_KEY)")

        self.api_key = resolved_key
        self.base_url = (base_url or os.environ.get("GEMINI_API_URL") or GEMINI_DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.logger = logger or LOGGER

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def generate_content(
        self,
        contents: Sequence[Mapping[str, Any]],
        *,
        model: str,
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> ChatResult:
        """Send a native ``contents`` history and normalize the reply."""

        if not contents:
            raise ValueError("At least one content entry must be supplied.")

        body: Dict[str, Any] = {"contents": [dict(entry) for entry in contents]}
        if system_instruction and system_instruction.strip():
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if temperature is not None:
            body["generationConfig"] = {"temperature": float(temperature)}

        payload, response_text = self._http_request(model, body)
        return self._normalise_response(payload, response_text, model=model)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _auth_headers(self) -> Dict[str, str]:
        # OAuth access tokens go in the Authorization header, API keys in x-goog-api-key.
        if self.api_key.lower().startswith("ya29."):
            return {"Authorization": f"Bearer {self.api_key}"}
        return {"x-goog-api-key": self.api_key}

    def _http_request(self, model: str, body: Dict[str, Any]) -> Tuple[Dict[str, Any], str]:
        url = f"{self.base_url}/models/{model}:generateContent"
        return post_json(url, body, headers=self._auth_headers(), timeout=self.timeout, label="Gemini")

    def _normalise_response(self, payload: Mapping[str, Any], response_text: str, *, model: str) -> ChatResult:
        candidates = payload.get("candidates")
        if candidates is not None and not isinstance(candidates, list):
            raise ProviderError(
                message="Gemini response had an unexpected 'candidates' shape.",
                response_text=response_text,
                provider="Gemini",
            )

        fragments: List[str] = []
        finish_reason: Optional[str] = None
        if candidates:
            first = candidates[0] if isinstance(candidates[0], dict) else {}
            finish_reason = first.get("finishReason")
            content = first.get("content") or {}
            parts = content.get("parts") if isinstance(content, dict) else None
            for part in parts or []:
                if isinstance(part, dict) and part.get("text"):
                    fragments.append(str(part["text"]))

        usage = None
        usage_payload = payload.get("usageMetadata")
        if isinstance(usage_payload, dict) and usage_payload:
            usage = UsageMetrics(
                input_tokens=safe_int(usage_payload.get("promptTokenCount")),
                output_tokens=safe_int(usage_payload.get("candidatesTokenCount")),
                total_tokens=safe_int(usage_payload.get("totalTokenCount")),
            )

        return ChatResult(
            text="".join(fragments).strip(),
            model=str(payload.get("modelVersion") or model),
            finish_reason=finish_reason,
            usage=usage,
            raw={"response": dict(payload), "text": response_text},
        )
