from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional


MessageRole = Literal["system", "user", "assistant"]


@dataclass
class ChatMessage:
    """Provider-neutral chat message used by session histories."""

    role: MessageRole
    content: str

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class UsageMetrics:
    """Token accounting returned by a provider, when it reports any."""

    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


@dataclass
class ChatResult:
    """Normalized model response."""

    text: str
    model: Optional[str] = None
    finish_reason: Optional[str] = None
    usage: Optional[UsageMetrics] = None
    raw: Optional[Dict[str, Any]] = None

    def has_text(self) -> bool:
        return bool(self.text.strip())


def safe_int(value: Any) -> Optional[int]:
    try:
        if value is None:
            return None
        return int(value)
    except (TypeError, ValueError):
        return None
