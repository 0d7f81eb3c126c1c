"""Conversation State - The mutable aggregate owned by the orchestrator.

Holds status, turn count, speaker pointer and the append-only transcript,
plus the one-shot summary latch and the run epoch used to discard stale
completions.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import logging
import uuid

from .models import USER_SENDER_ID, ConversationSnapshot, ConversationStatus, Message

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationState:
    """Status machine data and transcript for one conversation instance.

    Responsibilities:
    - Track status, turn count and the current speaker
    - Append messages with unique ids and non-decreasing timestamps
    - Carry the summary latch and the run epoch
    - Produce immutable snapshots for the presentation layer
    """

    def __init__(self, conversation_id: Optional[str] = None, clock: Optional[Clock] = None):
        self.conversation_id = conversation_id or str(uuid.uuid4())
        self._clock = clock or utc_now

        self.status = ConversationStatus.IDLE
        self.turn_count = 0
        self.current_speaker_id: Optional[str] = None
        self.transcript: List[Message] = []
        self.summarized = False
        self.epoch = 0
        # User messages not yet used as a turn prompt.
        self.pending_user_messages: List[Message] = []

        self.started_at: Optional[datetime] = None
        self.completed_at: Optional[datetime] = None

    def set_status(self, status: ConversationStatus):
        """Move to ``status``, recording timing for ACTIVE and COMPLETED."""
        if status == self.status:
            return
        previous = self.status
        self.status = status
        if status == ConversationStatus.ACTIVE and self.started_at is None:
            self.started_at = self._clock()
        if status == ConversationStatus.COMPLETED:
            self.completed_at = self._clock()
        logger.info(f"Conversation {self.conversation_id}: {previous.value} -> {status.value}")

    def add_message(self, sender_id: str, text: str) -> Message:
        """Append a message to the transcript.

        Args:
            sender_id: Agent id or one of the reserved sender ids
            text: Message text

        Returns:
            The appended Message
        """
        timestamp = self._clock()
        if self.transcript and timestamp < self.transcript[-1].timestamp:
            timestamp = self.transcript[-1].timestamp

        message = Message(
            id=str(uuid.uuid4()),
            sender_id=sender_id,
            text=text,
            timestamp=timestamp,
        )
        self.transcript.append(message)
        logger.debug(f"Added message from {sender_id} (turn {self.turn_count})")
        return message

    def clear_conversation(self):
        """Drop transcript, turn count, speaker pointer and summary latch."""
        self.transcript = []
        self.turn_count = 0
        self.current_speaker_id = None
        self.summarized = False
        self.pending_user_messages = []
        self.started_at = None
        self.completed_at = None

    def next_epoch(self) -> int:
        """Invalidate every in-flight completion from earlier runs."""
        self.epoch += 1
        return self.epoch

    def add_user_message(self, text: str) -> Message:
        """Append a USER message and queue it as context for the next turn."""
        message = self.add_message(USER_SENDER_ID, text)
        self.pending_user_messages.append(message)
        return message

    def take_pending_user_messages(self) -> List[Message]:
        pending, self.pending_user_messages = self.pending_user_messages, []
        return pending

    def snapshot(self, turn_budget: int = 0) -> ConversationSnapshot:
        return ConversationSnapshot(
            status=self.status,
            turn_count=self.turn_count,
            current_speaker_id=self.current_speaker_id,
            transcript=tuple(self.transcript),
            turn_budget=turn_budget,
            summarized=self.summarized,
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Get conversation statistics.

        Returns:
            Dictionary with statistics
        """
        duration = None
        if self.started_at:
            end_time = self.completed_at or self._clock()
            duration = (end_time - self.started_at).total_seconds()

        return {
            "conversation_id": self.conversation_id,
            "status": self.status.value,
            "turn_count": self.turn_count,
            "total_messages": len(self.transcript),
            "duration_seconds": duration,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
