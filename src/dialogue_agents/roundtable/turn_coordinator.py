"""Turn Coordinator - Round-robin speaker rotation and turn context.

Speakers rotate strictly in roster order, wrapping after the last agent. A
single-agent roster is a round robin of period one.
"""

from typing import Iterable, List, Optional, Sequence
import logging

from .models import Message, SpeakerDirectory

logger = logging.getLogger(__name__)


class TurnCoordinator:
    """Decides who speaks next and what context that speaker receives."""

    def __init__(self, agent_ids: Iterable[str]):
        """Initialize turn coordinator.

        Args:
            agent_ids: Agent ids in rotation order
        """
        self.agent_ids: List[str] = list(agent_ids)

    def first_speaker(self) -> Optional[str]:
        """Index 0 of the roster, or None for an empty roster."""
        return self.agent_ids[0] if self.agent_ids else None

    def next_speaker(self, current_id: Optional[str]) -> Optional[str]:
        """Get the agent after ``current_id`` in round-robin order.

        An id that is not in the roster counts as no match and the rotation
        restarts at index 0.
        """
        if not self.agent_ids:
            return None
        try:
            next_index = (self.agent_ids.index(current_id) + 1) % len(self.agent_ids)
        except ValueError:
            logger.debug("Speaker %s not in roster; restarting rotation", current_id)
            next_index = 0
        return self.agent_ids[next_index]

    def build_prompt(
        self,
        transcript: Sequence[Message],
        speaker_id: str,
        topic: str,
        directory: SpeakerDirectory,
        pending: Sequence[Message] = (),
    ) -> Optional[str]:
        """Derive the speaker's input from the conversation so far.

        User messages queued since the last prompt take precedence, one
        ``"<label>: <text>"`` line each, even when an agent reply landed after
        them. Otherwise returns ``"<label>: <text>"`` for the most recent
        non-system message. With no such message, the raw topic opens the
        conversation, but only for the first agent; any other speaker gets
        None and the turn is skipped.
        """
        if pending:
            return "\n".join(f"{directory.label(message.sender_id)}: {message.text}" for message in pending)

        latest = last_content_message(transcript)
        if latest is not None:
            return f"{directory.label(latest.sender_id)}: {latest.text}"

        if speaker_id != self.first_speaker():
            logger.debug("Skipping opening turn for non-initial speaker %s", speaker_id)
            return None
        return topic


def last_content_message(transcript: Sequence[Message]) -> Optional[Message]:
    for message in reversed(transcript):
        if not message.is_system:
            return message
    return None
