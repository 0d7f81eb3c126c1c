from __future__ import annotations

import threading
from typing import Callable, List, Optional, Tuple, Union

import pytest

from dialogue_agents.roundtable.config import API_KEY_ENV_VARS
from dialogue_core.llm import ChatMessage, ChatResult
from dialogue_core.provider_router import (
    AgentSession,
    ChatBackend,
    MessageListSession,
    ProviderBinding,
    ProviderRouter,
)

Outcome = Union[str, Exception]
Script = Callable[[str, str, int], Outcome]


def echo_script(agent_id: str, prompt: str, call_number: int) -> Outcome:
    return f"{agent_id} reply {call_number}"


class ScriptedBackend(ChatBackend):
    """Chat backend that answers from a script and records every request."""

    def __init__(
        self,
        binding: ProviderBinding,
        script: Script = echo_script,
        *,
        summary: Outcome = "1) Decisions\n- Ship the MVP",
        gate: Optional[threading.Event] = None,
    ) -> None:
        super().__init__(binding)
        self.script = script
        self.summary = summary
        self.gate = gate
        self.entered = threading.Event()
        self.finished = threading.Event()
        self.calls: List[Tuple[str, str]] = []
        self.summary_prompts: List[str] = []

    def initialize_session(self, agent_id: str, persona: str) -> AgentSession:
        return MessageListSession(
            agent_id=agent_id,
            persona=persona,
            messages=[ChatMessage(role="system", content=persona)],
        )

    def send(self, session: AgentSession, prompt: str) -> ChatResult:
        self.calls.append((session.agent_id, prompt))
        self.entered.set()
        try:
            if self.gate is not None:
                self.gate.wait(timeout=5)
            outcome = self.script(session.agent_id, prompt, len(self.calls))
            if isinstance(outcome, Exception):
                raise outcome
            return ChatResult(text=outcome)
        finally:
            self.finished.set()

    def complete(self, prompt: str, *, system: Optional[str] = None, temperature: Optional[float] = None) -> ChatResult:
        self.summary_prompts.append(prompt)
        if isinstance(self.summary, Exception):
            raise self.summary
        return ChatResult(text=self.summary)


class ScriptedRouter(ProviderRouter):
    """Router that hands out one shared ScriptedBackend for every binding."""

    def __init__(self, script: Script = echo_script, **backend_kwargs) -> None:
        super().__init__()
        self.script = script
        self.backend_kwargs = backend_kwargs
        self.backend: Optional[ScriptedBackend] = None
        self.bindings: List[ProviderBinding] = []

    def backend_for(self, binding: ProviderBinding) -> ChatBackend:  # type: ignore[override]
        self.bindings.append(binding)
        if self.backend is None:
            self.backend = ScriptedBackend(binding, self.script, **self.backend_kwargs)
        return self.backend


@pytest.fixture(autouse=True)
def clear_api_key_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in API_KEY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def router_factory() -> Callable[..., ScriptedRouter]:
    return ScriptedRouter
