from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import SecretStr

from dialogue_agents.roundtable.config import ConversationConfig
from dialogue_agents.roundtable.messages import ConversationStatusPayload, CreateConversationPayload
from dialogue_agents.roundtable.orchestrator import TurnOrchestrator
from dialogue_agents.roundtable.presets import build_config_from_preset
from dialogue_core.provider_router import ProviderRouter


class ConversationRegistry:
    """Owns one ``TurnOrchestrator`` per conversation id."""

    def __init__(self, *, router: Optional[ProviderRouter] = None) -> None:
        self.router = router or ProviderRouter.lazy_default()
        self._conversations: Dict[str, TurnOrchestrator] = {}

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def create(self, payload: CreateConversationPayload) -> TurnOrchestrator:
        if payload.config is not None:
            config = payload.config
            if payload.api_key and config.api_key is None:
                config = config.model_copy(update={"api_key": SecretStr(payload.api_key)})
            config = config.with_resolved_provider()
        else:
            config = build_config_from_preset(payload.preset_id, api_key=payload.api_key)
        orchestrator = TurnOrchestrator(config, router=self.router)
        self._conversations[orchestrator.conversation_id] = orchestrator
        return orchestrator

    def get(self, conversation_id: str) -> TurnOrchestrator:
        return self._conversations[conversation_id]

    def list_ids(self) -> List[str]:
        return list(self._conversations)

    async def remove(self, conversation_id: str) -> None:
        orchestrator = self._conversations.pop(conversation_id)
        await orchestrator.close()

    def describe(self, conversation_id: str) -> Dict[str, Any]:
        orchestrator = self.get(conversation_id)
        return describe_conversation(orchestrator)


def describe_conversation(orchestrator: TurnOrchestrator) -> Dict[str, Any]:
    snapshot = orchestrator.snapshot().to_dict()
    payload = ConversationStatusPayload(
        conversation_id=orchestrator.conversation_id,
        config=_public_config(orchestrator.config),
        **snapshot,
    )
    return payload.model_dump()


def _public_config(config: ConversationConfig) -> Dict[str, Any]:
    return config.model_dump(mode="json")
