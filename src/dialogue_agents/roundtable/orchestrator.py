"""Turn Orchestrator - The control loop for a roundtable conversation.

A single driver task advances the conversation one turn at a time. The task
is (re)spawned only on ``(status, current_speaker_id)`` transitions that make
work available, so a new turn never starts while a generation call for the
same conversation is outstanding. Every await is followed by an epoch check:
completions that arrive after ``reset`` or re-initialization are discarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

from dialogue_core.llm import ProviderError
from dialogue_core.provider_router import ProviderRouter
from dialogue_core.response_generator import ResponseGenerator
from dialogue_core.session_store import ConfigurationError, SessionNotFoundError, SessionStore

from .config import ConversationConfig
from .conversation_state import Clock, ConversationState
from .models import (
    SUMMARY_SENDER_ID,
    SYSTEM_SENDER_ID,
    ConversationSnapshot,
    ConversationStatus,
    Message,
    SpeakerDirectory,
)
from .summary import SummaryGenerator
from .turn_coordinator import TurnCoordinator

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]

LIMIT_REACHED_NOTICE = "Conversation limit reached."
PAUSED_NOTICE = "The conversation was paused by the user."
ENDED_NOTICE = "The conversation was ended by the user."
SUMMARIZING_NOTICE = "Writing up the meeting minutes..."
MISSING_KEY_NOTICE = "Please enter an API key to start."


def announcement(topic: str) -> str:
    return f'Discussion started: "{topic}"'


class TurnOrchestrator:
    """Owns the conversation state and drives agent turns.

    The presentation layer issues intents (``start``, ``stop``, ``reset``,
    ``user_submit``) and reads immutable snapshots; it never touches the
    state directly.
    """

    def __init__(
        self,
        config: ConversationConfig,
        *,
        router: Optional[ProviderRouter] = None,
        summary_generator: Optional[SummaryGenerator] = None,
        conversation_id: Optional[str] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self._config = config
        self._run_config: Optional[ConversationConfig] = None
        self._state = ConversationState(conversation_id=conversation_id, clock=clock)

        self._router = router or ProviderRouter.lazy_default()
        self._sessions = SessionStore(self._router)
        self._generator = ResponseGenerator(self._sessions)
        self._summary_generator = summary_generator or SummaryGenerator(self._router)

        self._coordinator = TurnCoordinator(config.agent_ids())
        self._directory = SpeakerDirectory.from_agents(config.agents)
        self._sleep = sleep or asyncio.sleep
        self._driver: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------ #
    # Observation
    # ------------------------------------------------------------------ #

    @property
    def conversation_id(self) -> str:
        return self._state.conversation_id

    @property
    def config(self) -> ConversationConfig:
        return self._config

    @property
    def status(self) -> ConversationStatus:
        return self._state.status

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    def snapshot(self) -> ConversationSnapshot:
        config = self._run_config or self._config
        return self._state.snapshot(turn_budget=config.turn_budget)

    def speaker_directory(self) -> SpeakerDirectory:
        return self._directory

    def statistics(self) -> dict:
        return self._state.get_statistics()

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    def update_config(self, config: ConversationConfig) -> None:
        """Replace the editable configuration. Rejected while ACTIVE."""

        if self._state.status is ConversationStatus.ACTIVE:
            raise ConfigurationError("Configuration cannot be changed while the conversation is active.")
        config = config.with_secret_from(self._config)
        if config.roster_differs(self._config):
            self._sessions.clear()
        self._config = config
        if self._run_config is None:
            self._coordinator = TurnCoordinator(config.agent_ids())
            self._directory = SpeakerDirectory.from_agents(config.agents)

    # ------------------------------------------------------------------ #
    # Intents
    # ------------------------------------------------------------------ #

    async def start(self) -> ConversationSnapshot:
        """Begin a fresh run: new sessions, empty transcript, first speaker."""

        config = self._config.with_resolved_provider()
        try:
            self._validate_start(config)
            self._teardown()
            self._initialize_run(config)
        except (ConfigurationError, ValueError) as exc:
            self._teardown()
            logger.warning("Conversation %s failed to start: %s", self.conversation_id, exc)
            self._state.add_message(SYSTEM_SENDER_ID, f"Failed to initialize the agents: {exc}")
            self._state.set_status(ConversationStatus.ERROR)
            return self.snapshot()

        self._state.clear_conversation()
        self._state.add_message(SYSTEM_SENDER_ID, announcement(config.topic))
        self._state.current_speaker_id = self._coordinator.first_speaker()
        self._state.set_status(ConversationStatus.ACTIVE)
        self._schedule()
        return self.snapshot()

    async def stop(self) -> ConversationSnapshot:
        """Stop taking new turns. An in-flight generation call is not cancelled."""

        if self._state.status is not ConversationStatus.ACTIVE:
            logger.debug("Ignoring stop in state %s", self._state.status.value)
            return self.snapshot()

        config = self._run_config or self._config
        self._state.current_speaker_id = None
        if config.complete_on_stop:
            self._state.add_message(SYSTEM_SENDER_ID, ENDED_NOTICE)
            self._state.set_status(ConversationStatus.COMPLETED)
            self._schedule()
        else:
            self._state.add_message(SYSTEM_SENDER_ID, PAUSED_NOTICE)
            self._state.set_status(ConversationStatus.PAUSED)
        return self.snapshot()

    async def reset(self) -> ConversationSnapshot:
        """Return to IDLE from any state, dropping transcript and sessions."""

        self._teardown()
        self._sessions.clear()
        self._run_config = None
        self._coordinator = TurnCoordinator(self._config.agent_ids())
        self._directory = SpeakerDirectory.from_agents(self._config.agents)
        self._state.clear_conversation()
        self._state.set_status(ConversationStatus.IDLE)
        return self.snapshot()

    async def user_submit(self, text: str) -> ConversationSnapshot:
        """Append a user message and (re)activate the conversation as needed."""

        if not text or not text.strip():
            raise ValueError("Message text must not be blank")

        self._state.add_user_message(text)
        status = self._state.status

        if status in (ConversationStatus.IDLE, ConversationStatus.ERROR):
            config = self._config.with_resolved_provider()
            if not config.effective_api_key():
                self._state.add_message(SYSTEM_SENDER_ID, MISSING_KEY_NOTICE)
                return self.snapshot()
            try:
                if not config.agents:
                    raise ConfigurationError("At least one agent is required.")
                self._teardown()
                self._initialize_run(config)
            except (ConfigurationError, ValueError) as exc:
                logger.warning("Implicit start failed for %s: %s", self.conversation_id, exc)
                self._state.add_message(SYSTEM_SENDER_ID, f"Failed to initialize the conversation: {exc}")
                return self.snapshot()
            self._activate()
        elif status in (ConversationStatus.PAUSED, ConversationStatus.COMPLETED):
            self._activate()

        return self.snapshot()

    async def close(self) -> None:
        """Cancel any running turn and release the sessions. The state is kept."""

        self._teardown()
        self._sessions.clear()
        self._run_config = None

    async def wait_until_settled(self) -> None:
        """Wait until no driver task is running (useful for callers and tests)."""

        while self._driver is not None and not self._driver.done():
            task = self._driver
            try:
                await task
            except asyncio.CancelledError:
                if task is self._driver:
                    raise

    # ------------------------------------------------------------------ #
    # Driver
    # ------------------------------------------------------------------ #

    def _schedule(self) -> None:
        if not self._has_work():
            return
        if self._driver is not None and not self._driver.done():
            # The running driver re-checks state after every await.
            return
        epoch = self._state.epoch
        self._driver = asyncio.get_running_loop().create_task(self._drive(epoch))

    def _has_work(self) -> bool:
        state = self._state
        if state.status is ConversationStatus.ACTIVE and state.current_speaker_id:
            return True
        return self._summary_pending()

    def _summary_pending(self) -> bool:
        state = self._state
        return state.status is ConversationStatus.COMPLETED and not state.summarized and bool(state.transcript)

    async def _drive(self, epoch: int) -> None:
        while self._is_live(epoch):
            if self._summary_pending():
                await self._summarize(epoch)
                continue
            if self._state.status is not ConversationStatus.ACTIVE or not self._state.current_speaker_id:
                break
            if not await self._execute_turn(epoch):
                break

    async def _execute_turn(self, epoch: int) -> bool:
        """Run one turn. Returns False when the driver should go idle."""

        state = self._state
        config = self._run_config or self._config
        speaker_id = state.current_speaker_id

        if state.turn_count >= config.turn_budget:
            state.set_status(ConversationStatus.COMPLETED)
            state.add_message(SYSTEM_SENDER_ID, LIMIT_REACHED_NOTICE)
            return True

        if self._build_prompt(speaker_id, state.pending_user_messages) is None:
            return False

        await self._sleep(config.turn_delay_seconds)
        if not self._is_live(epoch):
            return False
        if state.status is not ConversationStatus.ACTIVE or state.current_speaker_id != speaker_id:
            # Stopped or re-pointed during the pacing interval; re-evaluate.
            return True

        # Messages submitted during the pacing interval or while the previous
        # call was in flight become this turn's context.
        prompt = self._build_prompt(speaker_id, state.take_pending_user_messages())
        if prompt is None:
            return False

        logger.debug("Turn %d: %s responding", state.turn_count + 1, speaker_id)
        try:
            response = await asyncio.to_thread(self._generator.generate, speaker_id, prompt)
        except (ProviderError, SessionNotFoundError) as exc:
            return self._record_failure(epoch, speaker_id, exc)
        except Exception as exc:
            logger.exception("Unexpected failure while generating for %s", speaker_id)
            return self._record_failure(epoch, speaker_id, exc)

        if not self._is_live(epoch):
            logger.info("Discarding stale response from %s", speaker_id)
            return False

        state.add_message(speaker_id, response)
        state.turn_count += 1
        if state.status is ConversationStatus.ACTIVE and state.current_speaker_id == speaker_id:
            state.current_speaker_id = self._coordinator.next_speaker(speaker_id)
        return True

    def _record_failure(self, epoch: int, speaker_id: Optional[str], exc: Exception) -> bool:
        if not self._is_live(epoch):
            logger.info("Discarding stale failure from %s: %s", speaker_id, exc)
            return False
        logger.error("Generation failed for %s: %s", speaker_id, exc)
        detail = str(exc) or "Unknown error. Check the API key and model."
        self._state.add_message(SYSTEM_SENDER_ID, f"LLM API error: {detail}")
        self._state.set_status(ConversationStatus.ERROR)
        return False

    async def _summarize(self, epoch: int) -> None:
        state = self._state
        config = self._run_config or self._config
        state.summarized = True
        state.add_message(SYSTEM_SENDER_ID, SUMMARIZING_NOTICE)

        text = await asyncio.to_thread(
            self._summary_generator.summarize_or_fallback,
            tuple(state.transcript),
            config.topic,
            config.global_rules,
            config.effective_api_key(),
            config.provider,
            config.model,
            language=config.language,
            directory=self._directory,
            base_url=config.base_url,
        )
        if not self._is_live(epoch):
            logger.info("Discarding stale summary for %s", self.conversation_id)
            return
        state.add_message(SUMMARY_SENDER_ID, text)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _validate_start(self, config: ConversationConfig) -> None:
        if not config.topic.strip():
            raise ConfigurationError("A topic is required to start the conversation.")
        if not config.effective_api_key():
            raise ConfigurationError("API key is missing. Please check the configuration.")
        if not config.agents:
            raise ConfigurationError("At least one agent is required.")

    def _initialize_run(self, config: ConversationConfig) -> None:
        binding = self._sessions.initialize(
            config.effective_api_key(),
            config.model,
            config.agents,
            config.global_rules,
            base_url=config.base_url,
            temperature=config.temperature,
        )
        run_config = config.model_copy(update={"provider": binding.provider, "model": binding.model})
        self._run_config = run_config
        self._config = self._config.model_copy(update={"provider": binding.provider, "model": binding.model})
        self._coordinator = TurnCoordinator(run_config.agent_ids())
        self._directory = SpeakerDirectory.from_agents(run_config.agents)

    def _build_prompt(self, speaker_id: str, pending: Sequence[Message]) -> Optional[str]:
        config = self._run_config or self._config
        return self._coordinator.build_prompt(self._state.transcript, speaker_id, config.topic, self._directory, pending)

    def _activate(self) -> None:
        if self._state.current_speaker_id is None:
            self._state.current_speaker_id = self._coordinator.first_speaker()
        self._state.set_status(ConversationStatus.ACTIVE)
        self._schedule()

    def _teardown(self) -> None:
        self._state.next_epoch()
        task, self._driver = self._driver, None
        if task is not None and not task.done():
            task.cancel()

    def _is_live(self, epoch: int) -> bool:
        return epoch == self._state.epoch
