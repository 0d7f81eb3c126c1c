"""Tests for meeting summary generation and its local fallback."""

from datetime import datetime, timezone

import pytest

from dialogue_agents.roundtable import AgentConfig, Message, SpeakerDirectory, SummaryGenerator
from dialogue_agents.roundtable.models import SYSTEM_SENDER_ID, USER_SENDER_ID
from dialogue_agents.roundtable.summary import (
    FALLBACK_LINE_CHARS,
    SUMMARY_UNAVAILABLE,
    build_local_summary,
    build_summary_prompt,
    format_fallback_summary,
)
from dialogue_core.llm import ProviderError
from dialogue_core.session_store import ConfigurationError


def _message(index: int, sender_id: str, text: str) -> Message:
    return Message(id=str(index), sender_id=sender_id, text=text, timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc))


DIRECTORY = SpeakerDirectory.from_agents([AgentConfig(id="A", name="Analyst", system_prompt="a")])


def test_prompt_embeds_non_system_transcript_and_four_sections():
    transcript = [
        _message(1, SYSTEM_SENDER_ID, "Discussion started"),
        _message(2, "A", "Charge per seat"),
        _message(3, USER_SENDER_ID, "Agreed"),
    ]

    prompt = build_summary_prompt(transcript, "Pricing", "Be brief.", language="German", directory=DIRECTORY)

    assert "Analyst: Charge per seat" in prompt
    assert "User: Agreed" in prompt
    assert "Discussion started" not in prompt
    assert "in German" in prompt
    for heading in ("Decisions", "Open items", "Action items and owners", "Next steps"):
        assert heading in prompt


def test_local_summary_keeps_last_six_messages_and_truncates():
    transcript = [_message(i, "A", f"point {i}") for i in range(8)]
    transcript.append(_message(9, "A", "x" * (FALLBACK_LINE_CHARS + 30)))

    local = build_local_summary(transcript, "Pricing", DIRECTORY)

    lines = local.splitlines()
    assert lines[0] == "Topic: Pricing"
    assert lines[1] == "Recent highlights:"
    bullets = lines[2:]
    assert len(bullets) == 6
    assert bullets[0] == "• Analyst: point 3"
    assert bullets[-1] == "• Analyst: " + "x" * FALLBACK_LINE_CHARS + "…"


def test_local_summary_without_remarks():
    local = build_local_summary([_message(1, SYSTEM_SENDER_ID, "started")], "", DIRECTORY)

    assert local == "Topic: (not set)\nNo recent remarks."


def test_fallback_format_includes_reason():
    assert format_fallback_summary("boom", "Topic: x") == "Summary generation failed: boom\n\nLocal summary:\nTopic: x"


def test_summarize_requires_credential(router_factory):
    generator = SummaryGenerator(router_factory())

    with pytest.raises(ConfigurationError):
        generator.summarize([], "Pricing", "", "  ")


def test_summarize_uses_provider_completion(router_factory):
    router = router_factory(summary="- Decided on seats")
    generator = SummaryGenerator(router)

    text = generator.summarize([_message(1, "A", "Seats")], "Pricing", "", "gsk_test", directory=DIRECTORY)

    assert text == "- Decided on seats"
    binding = router.bindings[0]
    assert binding.provider.value == "groq"
    assert binding.model == "llama-3.3-70b-versatile"


def test_summarize_or_fallback_never_raises(router_factory):
    router = router_factory(summary=ProviderError(message="OpenAI API error (429): slow down"))
    generator = SummaryGenerator(router)

    text = generator.summarize_or_fallback([_message(1, "A", "Seats")], "Pricing", "", "sk-test", directory=DIRECTORY)

    assert text.startswith("Summary generation failed: OpenAI API error (429): slow down")
    assert "• Analyst: Seats" in text


def test_whitespace_only_completion_reports_unavailable(router_factory):
    generator = SummaryGenerator(router_factory(summary="  \n "))

    text = generator.summarize([_message(1, "A", "Seats")], "Pricing", "", "sk-test", directory=DIRECTORY)

    assert text == SUMMARY_UNAVAILABLE
