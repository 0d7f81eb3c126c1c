"""Data model shared by the roundtable orchestrator and its presentation layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

USER_SENDER_ID = "USER"
SYSTEM_SENDER_ID = "SYSTEM"
SUMMARY_SENDER_ID = "SUMMARY"
RESERVED_SENDER_IDS = frozenset({USER_SENDER_ID, SYSTEM_SENDER_ID, SUMMARY_SENDER_ID})

USER_LABEL = "User"
SYSTEM_LABEL = "System"
SUMMARY_AGENT_NAME = "Summary Agent"
UNKNOWN_SPEAKER_LABEL = "Other"


class AgentColor(str, Enum):
    """Presentation-only colour tag for an agent."""

    CYAN = "cyan"
    PINK = "pink"
    EMERALD = "emerald"
    AMBER = "amber"
    VIOLET = "violet"
    ROSE = "rose"


COLOR_PALETTE = [
    AgentColor.CYAN,
    AgentColor.PINK,
    AgentColor.EMERALD,
    AgentColor.AMBER,
    AgentColor.VIOLET,
    AgentColor.ROSE,
]


class ConversationStatus(str, Enum):
    """Status of the turn-taking state machine."""

    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


class AgentConfig(BaseModel):
    """A configured persona taking part in the conversation."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    system_prompt: str
    color: AgentColor = AgentColor.CYAN
    avatar_emoji: str = ""

    @field_validator("id")
    @classmethod
    def _validate_id(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Agent id must not be blank")
        if cleaned in RESERVED_SENDER_IDS:
            raise ValueError(f"Agent id '{cleaned}' is reserved")
        return cleaned


@dataclass(frozen=True)
class Message:
    """A single transcript entry. Never mutated once appended."""

    id: str
    sender_id: str
    text: str
    timestamp: datetime

    @property
    def is_system(self) -> bool:
        return self.sender_id == SYSTEM_SENDER_ID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ConversationSnapshot:
    """Read-only view of the conversation handed to the presentation layer."""

    status: ConversationStatus
    turn_count: int
    current_speaker_id: Optional[str]
    transcript: Tuple[Message, ...] = field(default_factory=tuple)
    turn_budget: int = 0
    summarized: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "turn_count": self.turn_count,
            "turn_budget": self.turn_budget,
            "current_speaker_id": self.current_speaker_id,
            "summarized": self.summarized,
            "messages": [message.to_dict() for message in self.transcript],
        }


class SpeakerDirectory(BaseModel):
    """Resolves sender ids to display labels for prompts, summaries and logs."""

    agents: Dict[str, AgentConfig] = Field(default_factory=dict)

    @classmethod
    def from_agents(cls, agents: Iterable[AgentConfig]) -> "SpeakerDirectory":
        return cls(agents={agent.id: agent for agent in agents})

    def label(self, sender_id: str) -> str:
        if sender_id == USER_SENDER_ID:
            return USER_LABEL
        if sender_id == SYSTEM_SENDER_ID:
            return SYSTEM_LABEL
        if sender_id == SUMMARY_SENDER_ID:
            return SUMMARY_AGENT_NAME
        agent = self.agents.get(sender_id)
        return agent.name if agent else UNKNOWN_SPEAKER_LABEL
