"""The single point of external I/O for agent turns."""

from __future__ import annotations

import logging

from .session_store import SessionNotFoundError, SessionStore

logger = logging.getLogger(__name__)

NO_RESPONSE_PLACEHOLDER = "[No response generated]"


class ResponseGenerator:
    """Ask an agent for its next utterance using the store's captured binding."""

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    def generate(self, agent_id: str, prompt: str) -> str:
        """Return the agent's reply and append the exchange to its session.

        Raises ``SessionNotFoundError`` when the agent has no session and
        ``ProviderError`` on transport, HTTP or parse failures. The session is
        only extended after a successful call.
        """

        session = self.store.get(agent_id)
        backend = self.store.backend
        if backend is None:
            raise SessionNotFoundError(agent_id)

        result = backend.send(session, prompt)
        if result.has_text():
            answer = result.text.strip()
        else:
            answer = NO_RESPONSE_PLACEHOLDER
            logger.warning("Empty response from %s for agent %s", backend.binding.describe(), agent_id)

        session.record_exchange(prompt, answer)
        return answer
