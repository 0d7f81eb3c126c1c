"""Provider detection and static model catalogs."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, NamedTuple, Optional


class ProviderId(str, Enum):
    """Provider identities a credential can resolve to."""

    GEMINI = "gemini"
    OPENAI = "openai"
    GROQ = "groq"
    PERPLEXITY = "perplexity"
    OPENROUTER = "openrouter"
    OPENAI_COMPATIBLE = "openai-compatible"


class ModelOption(NamedTuple):
    id: str
    name: str


DEFAULT_PROVIDER = ProviderId.GEMINI

# Checked in order, first match wins.
_PREFIX_RULES = (
    (ProviderId.GEMINI, ("AIza",), ("ya29.",)),
    (ProviderId.GROQ, ("gsk_",), ()),
    (ProviderId.PERPLEXITY, ("pplx-",), ()),
    (ProviderId.OPENROUTER, ("sk-or-", "or-"), ()),
    (ProviderId.OPENAI, ("sk-",), ()),
)

PROVIDER_MODEL_OPTIONS: Dict[ProviderId, List[ModelOption]] = {
    ProviderId.GEMINI: [
        ModelOption("gemini-2.5-flash", "Gemini 2.5 Flash"),
        ModelOption("gemini-2.0-flash", "Gemini 2.0 Flash"),
        ModelOption("gemini-2.0-flash-lite-preview-02-04", "Gemini 2.0 Flash Lite"),
        ModelOption("gemini-1.5-pro", "Gemini 1.5 Pro"),
        ModelOption("gemini-1.5-flash", "Gemini 1.5 Flash"),
    ],
    ProviderId.OPENAI: [
        ModelOption("gpt-4o-mini", "GPT-4o Mini"),
        ModelOption("gpt-4o", "GPT-4o"),
    ],
    ProviderId.GROQ: [
        ModelOption("llama-3.3-70b-versatile", "Llama 3.3 70B Versatile"),
        ModelOption("mixtral-8x7b-32768", "Mixtral 8x7B"),
    ],
    ProviderId.PERPLEXITY: [
        ModelOption("llama-3.1-sonar-large-128k-chat", "Llama 3.1 Sonar Large"),
        ModelOption("llama-3.1-70b-instruct", "Llama 3.1 70B Instruct"),
    ],
    ProviderId.OPENROUTER: [
        ModelOption("gpt-4o-mini", "GPT-4o Mini (via OpenRouter)"),
        ModelOption("deepseek-chat", "DeepSeek Chat"),
    ],
    ProviderId.OPENAI_COMPATIBLE: [
        ModelOption("gpt-4o-mini", "GPT-4o Mini"),
        ModelOption("gpt-3.5-turbo", "GPT-3.5 Turbo"),
    ],
}

CHAT_COMPLETION_ENDPOINTS: Dict[ProviderId, str] = {
    ProviderId.OPENAI: "https://api.openai.com/v1/chat/completions",
    ProviderId.OPENAI_COMPATIBLE: "https://api.openai.com/v1/chat/completions",
    ProviderId.GROQ: "https://api.groq.com/openai/v1/chat/completions",
    ProviderId.PERPLEXITY: "https://api.perplexity.ai/chat/completions",
    ProviderId.OPENROUTER: "https://openrouter.ai/api/v1/chat/completions",
}

_PROVIDER_LABELS: Dict[ProviderId, str] = {
    ProviderId.GEMINI: "Gemini",
    ProviderId.OPENAI: "OpenAI",
    ProviderId.GROQ: "Groq",
    ProviderId.PERPLEXITY: "Perplexity",
    ProviderId.OPENROUTER: "OpenRouter",
    ProviderId.OPENAI_COMPATIBLE: "OpenAI Compatible",
}


def resolve_provider(credential: Optional[str]) -> ProviderId:
    """Map a credential string to a provider identity.

    Total and side-effect free: blank input resolves to the default provider,
    unrecognised prefixes fall through to the generic compatible provider.
    """

    trimmed = (credential or "").strip()
    if not trimmed:
        return DEFAULT_PROVIDER

    lowered = trimmed.lower()
    for provider, prefixes, lower_prefixes in _PREFIX_RULES:
        if trimmed.startswith(prefixes) or (lower_prefixes and lowered.startswith(lower_prefixes)):
            return provider

    return ProviderId.OPENAI_COMPATIBLE


def default_model(provider: ProviderId) -> str:
    """Return the first entry of the provider's model catalog."""

    return PROVIDER_MODEL_OPTIONS[ProviderId(provider)][0].id


def model_options(provider: ProviderId) -> List[ModelOption]:
    return list(PROVIDER_MODEL_OPTIONS[ProviderId(provider)])


def resolve_model(provider: ProviderId, requested: Optional[str] = None) -> str:
    """Keep ``requested`` when the provider can serve it, else use the default.

    The generic compatible provider points at arbitrary endpoints, so any
    non-blank model name is accepted for it.
    """

    provider = ProviderId(provider)
    model = (requested or "").strip()
    if not model:
        return default_model(provider)
    if provider is ProviderId.OPENAI_COMPATIBLE:
        return model
    if any(option.id == model for option in PROVIDER_MODEL_OPTIONS[provider]):
        return model
    return default_model(provider)


def provider_label(provider: ProviderId) -> str:
    return _PROVIDER_LABELS.get(ProviderId(provider), "OpenAI")


def chat_completion_endpoint(provider: ProviderId) -> str:
    return CHAT_COMPLETION_ENDPOINTS.get(
        ProviderId(provider),
        CHAT_COMPLETION_ENDPOINTS[ProviderId.OPENAI_COMPATIBLE],
    )


__all__ = [
    "ProviderId",
    "ModelOption",
    "DEFAULT_PROVIDER",
    "PROVIDER_MODEL_OPTIONS",
    "CHAT_COMPLETION_ENDPOINTS",
    "resolve_provider",
    "default_model",
    "model_options",
    "resolve_model",
    "provider_label",
    "chat_completion_endpoint",
]
