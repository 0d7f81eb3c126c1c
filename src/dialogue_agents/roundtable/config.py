"""Conversation configuration."""

from __future__ import annotations

import os
from typing import List, Optional

from pydantic import (
    BaseModel,
    Field,
    SecretStr,
    SerializationInfo,
    field_serializer,
    field_validator,
    model_validator,
)

from dialogue_core.provider_catalog import ProviderId, resolve_model, resolve_provider

from .models import AgentConfig

API_KEY_ENV_VARS = ("DIALOGUE_API_KEY", "GEMINI_API_KEY", "API_KEY")
DEFAULT_TURN_DELAY_SECONDS = 1.5
REDACTED_API_KEY = "********"


def api_key_from_env() -> str:
    for name in API_KEY_ENV_VARS:
        value = (os.environ.get(name) or "").strip()
        if value:
            return value
    return ""


class ConversationConfig(BaseModel):
    """User-editable settings for one conversation.

    Attributes:
        api_key: Provider credential. Falls back to the environment when blank.
        provider: Provider derived from the effective credential.
        model: Requested model; replaced by the provider default if unsupported.
        base_url: Optional endpoint override for OpenAI-compatible gateways.
        agents: Ordered roster. Order defines the round-robin rotation.
        topic: Subject announced at start and used as the opening prompt.
        max_turns: Turns per agent; the total budget is ``max_turns * len(agents)``.
        global_rules: Rules appended to every agent persona.
        language: Working language requested for the meeting summary.
        temperature: Sampling temperature for agent turns.
        turn_delay_seconds: Pacing interval observed before each generation call.
        complete_on_stop: When set, ``stop`` ends the conversation instead of pausing it.
    """

    api_key: Optional[SecretStr] = Field(default=None)
    provider: Optional[ProviderId] = Field(default=None)
    model: Optional[str] = Field(default=None)
    base_url: Optional[str] = Field(default=None)
    agents: List[AgentConfig] = Field(default_factory=list)
    topic: str = Field(default="")
    max_turns: int = Field(default=8, ge=1)
    global_rules: str = Field(default="")
    language: str = Field(default="English")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    turn_delay_seconds: float = Field(default=DEFAULT_TURN_DELAY_SECONDS, ge=0.0)
    complete_on_stop: bool = Field(default=False)

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, provider: ProviderId | str | None) -> ProviderId | None:
        if provider is None or isinstance(provider, ProviderId):
            return provider
        if isinstance(provider, str):
            normalized = provider.strip().lower()
            if not normalized:
                return None
            try:
                return ProviderId(normalized)
            except ValueError as exc:
                raise ValueError(f"Unsupported provider '{provider}'") from exc
        raise ValueError(f"Unsupported provider type '{type(provider)}'")

    @model_validator(mode="after")
    def _check_unique_agent_ids(self) -> "ConversationConfig":
        seen = set()
        for agent in self.agents:
            if agent.id in seen:
                raise ValueError(f"Duplicate agent id '{agent.id}'")
            seen.add(agent.id)
        return self

    @field_serializer("api_key")
    def _serialize_api_key(self, api_key: SecretStr | None, info: SerializationInfo):
        """Redact the key unless ``expose_secrets`` is set in the serialization context."""
        if api_key is None:
            return None
        context = info.context
        if context and context.get("expose_secrets", False):
            return api_key.get_secret_value()
        return REDACTED_API_KEY if api_key.get_secret_value() else ""

    # ------------------------------------------------------------------ #
    # Derived values
    # ------------------------------------------------------------------ #

    def effective_api_key(self) -> str:
        provided = self.api_key.get_secret_value().strip() if self.api_key else ""
        return provided or api_key_from_env()

    @property
    def turn_budget(self) -> int:
        return self.max_turns * len(self.agents)

    def agent_ids(self) -> List[str]:
        return [agent.id for agent in self.agents]

    def with_resolved_provider(self) -> "ConversationConfig":
        """Copy with provider and model derived from the effective credential."""

        provider = resolve_provider(self.effective_api_key())
        return self.model_copy(update={"provider": provider, "model": resolve_model(provider, self.model)})

    def with_secret_from(self, previous: "ConversationConfig") -> "ConversationConfig":
        """Keep ``previous``'s key when this copy carries none or the redacted form.

        Configs read back from a redacted dump round-trip without losing the
        credential; an explicit empty string still clears it.
        """

        if self.api_key is None or self.api_key.get_secret_value() == REDACTED_API_KEY:
            return self.model_copy(update={"api_key": previous.api_key})
        return self

    def roster_differs(self, other: "ConversationConfig") -> bool:
        return [agent.model_dump() for agent in self.agents] != [agent.model_dump() for agent in other.agents]
