"""Request and response models used by the dialogue HTTP handlers."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .config import ConversationConfig


class CreateConversationPayload(BaseModel):
    """Client payload for creating a conversation.

    Either ``config`` or ``preset_id`` may be given. When both are omitted the
    default preset is used.
    """

    preset_id: Optional[str] = None
    api_key: Optional[str] = None
    config: Optional[ConversationConfig] = None


class UserMessagePayload(BaseModel):
    """Client payload for sending a user message into the conversation."""

    text: str


class ConversationStatusPayload(BaseModel):
    """Server message describing the current conversation."""

    conversation_id: str
    status: str
    turn_count: int
    turn_budget: int
    current_speaker_id: Optional[str] = None
    summarized: bool = False
    messages: List[Dict[str, Any]] = []
    config: Dict[str, Any] = {}


class ProviderResolutionPayload(BaseModel):
    """Server message describing which provider a credential maps to."""

    provider: str
    label: str
    default_model: str
    models: List[Dict[str, str]]
