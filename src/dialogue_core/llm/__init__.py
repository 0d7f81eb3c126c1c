"""
LLM provider integrations for the dialogue runtime.

Two wire contracts are covered: Gemini's native ``generateContent`` API and
the OpenAI ``/chat/completions`` contract shared by OpenAI, Groq, Perplexity,
OpenRouter and compatible gateways.
"""

from .gemini import GeminiClient
from .http import ProviderError
from .openai_compatible import OpenAICompatibleClient
from .types import ChatMessage, ChatResult, UsageMetrics

__all__ = [
    "GeminiClient",
    "OpenAICompatibleClient",
    "ProviderError",
    "ChatMessage",
    "ChatResult",
    "UsageMetrics",
]
