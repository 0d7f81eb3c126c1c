from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse

from dialogue_agents.roundtable.config import ConversationConfig
from dialogue_agents.roundtable.messages import (
    CreateConversationPayload,
    ProviderResolutionPayload,
    UserMessagePayload,
)
from dialogue_agents.roundtable.orchestrator import TurnOrchestrator
from dialogue_agents.roundtable.presets import get_default_presets
from dialogue_core.provider_catalog import (
    PROVIDER_MODEL_OPTIONS,
    ProviderId,
    default_model,
    model_options,
    provider_label,
    resolve_provider,
)
from dialogue_core.provider_router import ProviderRouter
from dialogue_core.session_store import ConfigurationError

from .log_export import render_html, render_text
from .registry import ConversationRegistry, describe_conversation

logger = logging.getLogger(__name__)


def create_app(router: Optional[ProviderRouter] = None) -> FastAPI:
    registry = ConversationRegistry(router=router)
    app = FastAPI(title="Persona Dialogue API", version="0.1.0")
    app.state.registry = registry

    def lookup(conversation_id: str) -> TurnOrchestrator:
        try:
            return registry.get(conversation_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"Conversation '{conversation_id}' not found") from exc

    @app.get("/api/presets")
    def list_presets() -> list[dict]:
        return [
            {
                "id": preset.id,
                "name": preset.name,
                "description": preset.description,
                "topic": preset.topic,
                "max_turns": preset.max_turns,
                "global_rules": preset.global_rules,
                "agents": [agent.model_dump(mode="json") for agent in preset.agents],
            }
            for preset in get_default_presets().values()
        ]

    @app.get("/api/providers")
    def list_providers() -> list[dict]:
        return [_describe_provider(provider) for provider in PROVIDER_MODEL_OPTIONS]

    @app.get("/api/providers/resolve")
    def resolve(api_key: str = "") -> dict:
        return _describe_provider(resolve_provider(api_key))

    @app.post("/api/conversations")
    def create_conversation(payload: CreateConversationPayload) -> dict:
        orchestrator = registry.create(payload)
        logger.info("Created conversation %s", orchestrator.conversation_id)
        return describe_conversation(orchestrator)

    @app.get("/api/conversations")
    def list_conversations() -> list[dict]:
        return [registry.describe(conversation_id) for conversation_id in registry.list_ids()]

    @app.get("/api/conversations/{conversation_id}")
    def get_conversation(conversation_id: str) -> dict:
        return describe_conversation(lookup(conversation_id))

    @app.delete("/api/conversations/{conversation_id}", status_code=204)
    async def delete_conversation(conversation_id: str) -> None:
        try:
            await registry.remove(conversation_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"Conversation '{conversation_id}' not found") from exc
        logger.info("Deleted conversation %s", conversation_id)

    @app.put("/api/conversations/{conversation_id}/config")
    def update_config(conversation_id: str, config: ConversationConfig) -> dict:
        orchestrator = lookup(conversation_id)
        try:
            orchestrator.update_config(config)
        except ConfigurationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return describe_conversation(orchestrator)

    @app.post("/api/conversations/{conversation_id}/start")
    async def start(conversation_id: str) -> dict:
        orchestrator = lookup(conversation_id)
        await orchestrator.start()
        return describe_conversation(orchestrator)

    @app.post("/api/conversations/{conversation_id}/stop")
    async def stop(conversation_id: str) -> dict:
        orchestrator = lookup(conversation_id)
        await orchestrator.stop()
        return describe_conversation(orchestrator)

    @app.post("/api/conversations/{conversation_id}/reset")
    async def reset(conversation_id: str) -> dict:
        orchestrator = lookup(conversation_id)
        await orchestrator.reset()
        return describe_conversation(orchestrator)

    @app.post("/api/conversations/{conversation_id}/messages")
    async def submit_message(conversation_id: str, payload: UserMessagePayload) -> dict:
        orchestrator = lookup(conversation_id)
        try:
            await orchestrator.user_submit(payload.text)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return describe_conversation(orchestrator)

    @app.get("/api/conversations/{conversation_id}/log.txt", response_class=PlainTextResponse)
    def download_text_log(conversation_id: str) -> str:
        orchestrator = lookup(conversation_id)
        snapshot = orchestrator.snapshot()
        return render_text(snapshot.transcript, orchestrator.speaker_directory(), topic=orchestrator.config.topic)

    @app.get("/api/conversations/{conversation_id}/log.html", response_class=HTMLResponse)
    def download_html_log(conversation_id: str) -> str:
        orchestrator = lookup(conversation_id)
        snapshot = orchestrator.snapshot()
        return render_html(snapshot.transcript, orchestrator.speaker_directory(), topic=orchestrator.config.topic)

    return app


def _describe_provider(provider: ProviderId) -> dict:
    payload = ProviderResolutionPayload(
        provider=provider.value,
        label=provider_label(provider),
        default_model=default_model(provider),
        models=[{"id": option.id, "name": option.name} for option in model_options(provider)],
    )
    return payload.model_dump()


app = create_app()
