"""Roundtable conversations between configured personas.

This module provides the turn-taking orchestrator, its state and coordinator,
scenario presets and the meeting summary generator.
"""

from .config import ConversationConfig, api_key_from_env
from .conversation_state import ConversationState
from .models import (
    AgentColor,
    AgentConfig,
    ConversationSnapshot,
    ConversationStatus,
    Message,
    SpeakerDirectory,
)
from .orchestrator import TurnOrchestrator
from .presets import ScenarioPreset, build_config_from_preset, get_default_presets, get_preset
from .summary import SummaryGenerator
from .turn_coordinator import TurnCoordinator
from .messages import (
    ConversationStatusPayload,
    CreateConversationPayload,
    ProviderResolutionPayload,
    UserMessagePayload,
)

__all__ = [
    "ConversationConfig",
    "api_key_from_env",
    "ConversationState",
    "AgentColor",
    "AgentConfig",
    "ConversationSnapshot",
    "ConversationStatus",
    "Message",
    "SpeakerDirectory",
    "TurnOrchestrator",
    "ScenarioPreset",
    "build_config_from_preset",
    "get_default_presets",
    "get_preset",
    "SummaryGenerator",
    "TurnCoordinator",
    "ConversationStatusPayload",
    "CreateConversationPayload",
    "ProviderResolutionPayload",
    "UserMessagePayload",
]
