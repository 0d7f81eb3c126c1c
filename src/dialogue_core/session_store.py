"""Per-conversation store of agent chat sessions.

A store instance belongs to exactly one conversation. The provider binding
captured by :meth:`SessionStore.initialize` lives on the instance, so two
conversations never share provider, model or credential.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Protocol

from .provider_catalog import resolve_model, resolve_provider
from .provider_router import AgentSession, ChatBackend, ProviderBinding, ProviderRouter, DEFAULT_TEMPERATURE

logger = logging.getLogger(__name__)

RULES_SEPARATOR = "### Ground rules for the whole conversation"


class ConfigurationError(ValueError):
    """Raised for user-correctable configuration problems (topic, credential, roster)."""


class SessionNotFoundError(LookupError):
    """Raised when generation is requested for an agent without a session."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Chat session for agent '{agent_id}' is not initialized")
        self.agent_id = agent_id


class PersonaSource(Protocol):
    id: str
    system_prompt: str


def compose_persona(system_prompt: str, global_rules: str) -> str:
    """Persona text, a labeled separator, then the conversation-wide rules."""

    return f"{system_prompt.strip()}\n\n{RULES_SEPARATOR}\n{global_rules.strip()}\n"


class SessionStore:
    """Holds one session per agent plus the binding they were created with."""

    def __init__(self, router: Optional[ProviderRouter] = None) -> None:
        self._router = router or ProviderRouter.lazy_default()
        self._sessions: Dict[str, AgentSession] = {}
        self._binding: Optional[ProviderBinding] = None
        self._backend: Optional[ChatBackend] = None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def initialize(
        self,
        credential: Optional[str],
        model: Optional[str],
        agents: Iterable[PersonaSource],
        global_rules: str,
        *,
        base_url: Optional[str] = None,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> ProviderBinding:
        """Discard every session and build fresh ones for ``agents``.

        The credential is validated before any existing state is touched.
        """

        normalized_key = (credential or "").strip()
        if not normalized_key:
            raise ConfigurationError("API key is required")

        provider = resolve_provider(normalized_key)
        binding = ProviderBinding(
            provider=provider,
            model=resolve_model(provider, model),
            api_key=normalized_key,
            base_url=base_url or None,
            temperature=temperature,
        )
        backend = self._router.backend_for(binding)

        sessions: Dict[str, AgentSession] = {}
        for agent in agents:
            persona = compose_persona(agent.system_prompt, global_rules)
            sessions[agent.id] = backend.initialize_session(agent.id, persona)

        if self._binding is not None and self._binding != binding:
            self._router.evict(self._binding)
        self._sessions = sessions
        self._binding = binding
        self._backend = backend
        logger.info("Initialized %d agent sessions on %s", len(sessions), binding.describe())
        return binding

    def clear(self) -> None:
        if self._sessions:
            logger.debug("Discarding %d agent sessions", len(self._sessions))
        if self._binding is not None:
            self._router.evict(self._binding)
        self._sessions = {}
        self._binding = None
        self._backend = None

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    @property
    def binding(self) -> Optional[ProviderBinding]:
        return self._binding

    @property
    def backend(self) -> Optional[ChatBackend]:
        return self._backend

    @property
    def router(self) -> ProviderRouter:
        return self._router

    def get(self, agent_id: str) -> AgentSession:
        session = self._sessions.get(agent_id)
        if session is None:
            raise SessionNotFoundError(agent_id)
        return session

    def agent_ids(self) -> List[str]:
        return list(self._sessions)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
