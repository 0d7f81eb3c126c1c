"""Meeting summary generation with a deterministic local fallback."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Sequence

from dialogue_core.provider_catalog import ProviderId, resolve_model, resolve_provider
from dialogue_core.provider_router import ProviderBinding, ProviderRouter
from dialogue_core.session_store import ConfigurationError

from .models import USER_SENDER_ID, Message, SpeakerDirectory

logger = logging.getLogger(__name__)

SUMMARY_TEMPERATURE = 0.4
SUMMARY_UNAVAILABLE = "The summary could not be generated."
FALLBACK_MESSAGE_LIMIT = 6
FALLBACK_LINE_CHARS = 120

_WHITESPACE = re.compile(r"\s+")


def format_transcript(transcript: Iterable[Message], directory: SpeakerDirectory) -> str:
    return "\n".join(
        f"{directory.label(message.sender_id)}: {message.text}"
        for message in transcript
        if not message.is_system
    )


def build_summary_prompt(
    transcript: Sequence[Message],
    topic: str,
    rules: str,
    *,
    language: str = "English",
    directory: Optional[SpeakerDirectory] = None,
) -> str:
    directory = directory or SpeakerDirectory()
    return (
        "Read the conversation log below and write the meeting minutes.\n"
        f"- Topic: {topic}\n"
        f"- Rules: {rules}\n"
        f"- Format: short bullet points in {language} under four headings: "
        "1) Decisions 2) Open items 3) Action items and owners 4) Next steps.\n\n"
        "[Conversation log]\n"
        f"{format_transcript(transcript, directory)}"
    )


def summary_system_prompt(language: str) -> str:
    return f"You are the meeting note taker. Reply with short bullet-point minutes in {language}."


def build_local_summary(
    transcript: Sequence[Message],
    topic: str,
    directory: Optional[SpeakerDirectory] = None,
) -> str:
    """Topic line plus highlights of the last few non-system messages.

    Pure string formatting; never raises for well-formed messages.
    """

    directory = directory or SpeakerDirectory()
    recent = [message for message in transcript if not message.is_system][-FALLBACK_MESSAGE_LIMIT:]

    bullets: List[str] = []
    for message in recent:
        if message.sender_id == USER_SENDER_ID or message.sender_id in directory.agents:
            name = directory.label(message.sender_id)
        else:
            name = message.sender_id
        text = _WHITESPACE.sub(" ", message.text).strip()
        clipped = text[:FALLBACK_LINE_CHARS]
        ellipsis = "…" if len(text) > FALLBACK_LINE_CHARS else ""
        bullets.append(f"• {name}: {clipped}{ellipsis}")

    lines = [f"Topic: {topic or '(not set)'}"]
    if bullets:
        lines.append("Recent highlights:\n" + "\n".join(bullets))
    else:
        lines.append("No recent remarks.")
    return "\n".join(lines)


def format_fallback_summary(reason: str, local_summary: str) -> str:
    return f"Summary generation failed: {reason}\n\nLocal summary:\n{local_summary}"


class SummaryGenerator:
    """Send the full transcript to a provider for structured minutes."""

    def __init__(self, router: Optional[ProviderRouter] = None) -> None:
        self._router = router or ProviderRouter.lazy_default()

    def summarize(
        self,
        transcript: Sequence[Message],
        topic: str,
        rules: str,
        credential: Optional[str],
        provider: Optional[ProviderId] = None,
        model: Optional[str] = None,
        *,
        language: str = "English",
        directory: Optional[SpeakerDirectory] = None,
        base_url: Optional[str] = None,
    ) -> str:
        """Return provider-written minutes. Raises on missing key or provider failure."""

        key = (credential or "").strip()
        if not key:
            raise ConfigurationError("API key is missing for summary generation.")

        summary_provider = ProviderId(provider) if provider else resolve_provider(key)
        binding = ProviderBinding(
            provider=summary_provider,
            model=resolve_model(summary_provider, model),
            api_key=key,
            base_url=base_url or None,
            temperature=SUMMARY_TEMPERATURE,
        )
        backend = self._router.backend_for(binding)

        prompt = build_summary_prompt(transcript, topic, rules, language=language, directory=directory)
        result = backend.complete(prompt, system=summary_system_prompt(language), temperature=SUMMARY_TEMPERATURE)
        return result.text.strip() if result.has_text() else SUMMARY_UNAVAILABLE

    def summarize_or_fallback(
        self,
        transcript: Sequence[Message],
        topic: str,
        rules: str,
        credential: Optional[str],
        provider: Optional[ProviderId] = None,
        model: Optional[str] = None,
        *,
        language: str = "English",
        directory: Optional[SpeakerDirectory] = None,
        base_url: Optional[str] = None,
    ) -> str:
        """Like :meth:`summarize`, but any failure yields the local summary."""

        try:
            return self.summarize(
                transcript,
                topic,
                rules,
                credential,
                provider,
                model,
                language=language,
                directory=directory,
                base_url=base_url,
            )
        except Exception as exc:
            logger.warning("Summary generation failed; using local fallback: %s", exc)
            reason = str(exc) or type(exc).__name__
            return format_fallback_summary(reason, build_local_summary(transcript, topic, directory))
