"""Route a provider binding to the chat backend that shapes its requests.

Two backend variants share one contract:

- ``GeminiChatBackend`` keeps the provider-native ``contents`` history and
  sends the persona as ``systemInstruction``.
- ``MessageListBackend`` keeps a generic role/content message list with the
  persona as the leading system message (OpenAI, Groq, Perplexity,
  OpenRouter, compatible gateways).
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .llm import ChatMessage, ChatResult, GeminiClient, OpenAICompatibleClient
from .llm.gemini import GeminiContent, text_content
from .llm.openai_compatible import OPENROUTER_HEADERS
from .provider_catalog import ProviderId, chat_completion_endpoint, provider_label

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_CACHED_BACKENDS = 32


@dataclass(frozen=True)
class ProviderBinding:
    """Provider, model and credential captured for one conversation instance."""

    provider: ProviderId
    model: str
    api_key: str = field(repr=False)
    base_url: Optional[str] = None
    temperature: float = DEFAULT_TEMPERATURE

    def describe(self) -> str:
        return f"{provider_label(self.provider)}/{self.model}"


# ---------------------------------------------------------------------- #
# Session representations
# ---------------------------------------------------------------------- #


@dataclass
class AgentSession:
    """Per-agent conversational memory. Subclasses hold the provider shape."""

    agent_id: str
    persona: str

    def record_exchange(self, prompt: str, answer: str) -> None:
        raise NotImplementedError

    def exchange_count(self) -> int:
        raise NotImplementedError


@dataclass
class GeminiChatSession(AgentSession):
    contents: List[GeminiContent] = field(default_factory=list)

    def record_exchange(self, prompt: str, answer: str) -> None:
        self.contents.append(text_content("user", prompt))
        self.contents.append(text_content("model", answer))

    def exchange_count(self) -> int:
        return len(self.contents) // 2


@dataclass
class MessageListSession(AgentSession):
    messages: List[ChatMessage] = field(default_factory=list)

    def record_exchange(self, prompt: str, answer: str) -> None:
        self.messages.append(ChatMessage(role="user", content=prompt))
        self.messages.append(ChatMessage(role="assistant", content=answer))

    def exchange_count(self) -> int:
        return sum(1 for message in self.messages if message.role == "assistant")


# ---------------------------------------------------------------------- #
# Backends
# ---------------------------------------------------------------------- #


class ChatBackend(ABC):
    """Provider-specific request shaping behind a single contract."""

    def __init__(self, binding: ProviderBinding) -> None:
        self.binding = binding

    @abstractmethod
    def initialize_session(self, agent_id: str, persona: str) -> AgentSession:
        """Create an empty session carrying ``persona`` as its instructions."""

    @abstractmethod
    def send(self, session: AgentSession, prompt: str) -> ChatResult:
        """Send ``prompt`` on top of the session history without mutating it."""

    @abstractmethod
    def complete(self, prompt: str, *, system: Optional[str] = None, temperature: Optional[float] = None) -> ChatResult:
        """One-shot request outside of any session."""


class GeminiChatBackend(ChatBackend):
    def __init__(self, binding: ProviderBinding, client: GeminiClient) -> None:
        super().__init__(binding)
        self.client = client

    def initialize_session(self, agent_id: str, persona: str) -> AgentSession:
        return GeminiChatSession(agent_id=agent_id, persona=persona)

    def send(self, session: AgentSession, prompt: str) -> ChatResult:
        if not isinstance(session, GeminiChatSession):
            raise TypeError(f"Gemini backend cannot use session type {type(session).__name__}")
        contents = list(session.contents)
        contents.append(text_content("user", prompt))
        return self.client.generate_content(
            contents,
            model=self.binding.model,
            system_instruction=session.persona,
            temperature=self.binding.temperature,
        )

    def complete(self, prompt: str, *, system: Optional[str] = None, temperature: Optional[float] = None) -> ChatResult:
        return self.client.generate_content(
            [text_content("user", prompt)],
            model=self.binding.model,
            system_instruction=system,
            temperature=temperature,
        )


class MessageListBackend(ChatBackend):
    def __init__(self, binding: ProviderBinding, client: OpenAICompatibleClient) -> None:
        super().__init__(binding)
        self.client = client

    def initialize_session(self, agent_id: str, persona: str) -> AgentSession:
        return MessageListSession(
            agent_id=agent_id,
            persona=persona,
            messages=[ChatMessage(role="system", content=persona)],
        )

    def send(self, session: AgentSession, prompt: str) -> ChatResult:
        if not isinstance(session, MessageListSession):
            raise TypeError(f"Message-list backend cannot use session type {type(session).__name__}")
        messages = list(session.messages)
        messages.append(ChatMessage(role="user", content=prompt))
        return self.client.send_messages(messages, model=self.binding.model, temperature=self.binding.temperature)

    def complete(self, prompt: str, *, system: Optional[str] = None, temperature: Optional[float] = None) -> ChatResult:
        messages: List[ChatMessage] = []
        if system:
            messages.append(ChatMessage(role="system", content=system))
        messages.append(ChatMessage(role="user", content=prompt))
        return self.client.send_messages(messages, model=self.binding.model, temperature=temperature)


# ---------------------------------------------------------------------- #
# Router
# ---------------------------------------------------------------------- #

GeminiClientFactory = Callable[[ProviderBinding], GeminiClient]
OpenAIClientFactory = Callable[[ProviderBinding], OpenAICompatibleClient]


class ProviderRouter:
    """Build (and cache) the chat backend for a provider binding."""

    def __init__(
        self,
        *,
        gemini_client_factory: Optional[GeminiClientFactory] = None,
        openai_client_factory: Optional[OpenAIClientFactory] = None,
        timeout: float = 60.0,
        max_cached_backends: int = DEFAULT_MAX_CACHED_BACKENDS,
    ) -> None:
        self.timeout = timeout
        self.max_cached_backends = max(1, max_cached_backends)
        self._gemini_client_factory = gemini_client_factory or self._default_gemini_client
        self._openai_client_factory = openai_client_factory or self._default_openai_client
        # Least recently used first.
        self._backends: "OrderedDict[ProviderBinding, ChatBackend]" = OrderedDict()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def backend_for(self, binding: ProviderBinding) -> ChatBackend:
        with self._lock:
            backend = self._backends.get(binding)
            if backend is not None:
                self._backends.move_to_end(binding)
                return backend
            backend = self._build_backend(binding)
            self._backends[binding] = backend
            logger.debug("Created %s backend for %s", type(backend).__name__, binding.describe())
            while len(self._backends) > self.max_cached_backends:
                evicted, _ = self._backends.popitem(last=False)
                logger.debug("Evicted backend for %s", evicted.describe())
            return backend

    def evict(self, binding: ProviderBinding) -> None:
        """Forget the cached backend for ``binding`` (and its credential)."""

        with self._lock:
            self._backends.pop(binding, None)

    def cached_backend_count(self) -> int:
        with self._lock:
            return len(self._backends)

    @classmethod
    def lazy_default(cls) -> "ProviderRouter":
        return cls()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _build_backend(self, binding: ProviderBinding) -> ChatBackend:
        if binding.provider is ProviderId.GEMINI:
            return GeminiChatBackend(binding, self._gemini_client_factory(binding))
        return MessageListBackend(binding, self._openai_client_factory(binding))

    def _default_gemini_client(self, binding: ProviderBinding) -> GeminiClient:
        return GeminiClient(api_key=binding.api_key, base_url=binding.base_url, timeout=self.timeout)

    def _default_openai_client(self, binding: ProviderBinding) -> OpenAICompatibleClient:
        return OpenAICompatibleClient(
            api_key=binding.api_key,
            endpoint=_endpoint_for(binding),
            label=provider_label(binding.provider),
            extra_headers=OPENROUTER_HEADERS if binding.provider is ProviderId.OPENROUTER else None,
            timeout=self.timeout,
        )


def _endpoint_for(binding: ProviderBinding) -> str:
    if not binding.base_url:
        return chat_completion_endpoint(binding.provider)
    base = binding.base_url.rstrip("/")
    if base.endswith("/chat/completions"):
        return base
    return f"{base}/chat/completions"
