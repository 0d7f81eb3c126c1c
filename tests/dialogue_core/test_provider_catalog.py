"""Tests for credential-prefix provider resolution and model catalogs."""

import pytest

from dialogue_core.provider_catalog import (
    DEFAULT_PROVIDER,
    PROVIDER_MODEL_OPTIONS,
    ProviderId,
    chat_completion_endpoint,
    default_model,
    provider_label,
    resolve_model,
    resolve_provider,
)


@pytest.mark.parametrize(
    "credential, expected",
    [
        ("AIzaSyExample", ProviderId.GEMINI),
        ("ya29.token", ProviderId.GEMINI),
        ("YA29.token", ProviderId.GEMINI),
        ("gsk_abc", ProviderId.GROQ),
        ("pplx-abc", ProviderId.PERPLEXITY),
        ("sk-or-v1-abc", ProviderId.OPENROUTER),
        ("or-abc", ProviderId.OPENROUTER),
        ("sk-proj-abc", ProviderId.OPENAI),
        ("  sk-abc  ", ProviderId.OPENAI),
        ("custom-token", ProviderId.OPENAI_COMPATIBLE),
    ],
)
def test_resolve_provider_by_prefix(credential, expected):
    assert resolve_provider(credential) is expected


@pytest.mark.parametrize("credential", [None, "", "   "])
def test_blank_credential_resolves_to_default(credential):
    assert resolve_provider(credential) is DEFAULT_PROVIDER


def test_openrouter_wins_over_openai_prefix():
    # "sk-or-" also starts with "sk-"; the more specific rule is checked first.
    assert resolve_provider("sk-or-abc") is ProviderId.OPENROUTER


def test_default_model_is_first_catalog_entry():
    for provider, options in PROVIDER_MODEL_OPTIONS.items():
        assert default_model(provider) == options[0].id


def test_resolve_model_rules():
    assert resolve_model(ProviderId.OPENAI, "gpt-4o") == "gpt-4o"
    assert resolve_model(ProviderId.OPENAI, "gemini-1.5-pro") == "gpt-4o-mini"
    assert resolve_model(ProviderId.GEMINI, None) == "gemini-2.5-flash"
    assert resolve_model(ProviderId.OPENAI_COMPATIBLE, "my-local-model") == "my-local-model"


def test_labels_and_endpoints():
    assert provider_label(ProviderId.GROQ) == "Groq"
    assert chat_completion_endpoint(ProviderId.GROQ) == "https://api.groq.com/openai/v1/chat/completions"
    assert chat_completion_endpoint(ProviderId.GEMINI).endswith("/chat/completions")
