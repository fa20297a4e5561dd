"""Virtual message orchestration.

Wires the context store, topic detector, memory pipeline and message queue
into one policy: emotional directives always wait in the queue for a turn
boundary, while retrieved memories interrupt the AI if it is speaking when
they arrive.
"""

import asyncio
import logging
from collections.abc import Coroutine, Sequence
from typing import Any

from contextweaver.application.message_builder import VirtualMessageBuilder
from contextweaver.config.models import OrchestratorConfig, SessionConfig
from contextweaver.domain.entities import (
    ConversationContext,
    Emotion,
    EmotionalState,
    PendingMemory,
    TopicDetectionResult,
    VirtualMessagePriority,
    VirtualMessageType,
)
from contextweaver.domain.entities.message import DEFAULT_TYPE_PRIORITY
from contextweaver.domain.services import (
    ClientContentRole,
    ConversationContextStore,
    MemoryPipeline,
    MemoryRetriever,
    SpeechSession,
    TopicClassifier,
    TopicDetector,
    VirtualMessageQueue,
    generate_context_message,
)
from contextweaver.domain.time_utils import Clock, now_millis

logger = logging.getLogger(__name__)

# Emotion used when memories are retrieved without a detection result.
MANUAL_RETRIEVAL_EMOTION = EmotionalState(primary=Emotion.NEUTRAL, intensity=0.5)

ACTION_MESSAGE_TYPES = {
    "listen": VirtualMessageType.LISTEN_FIRST,
    "accept_stop": VirtualMessageType.ACCEPT_STOP,
    "tiny_step": VirtualMessageType.PUSH_TINY_STEP,
    "tone_shift": VirtualMessageType.TONE_SHIFT,
}


class VirtualMessageOrchestrator:
    """Decides what gets injected into a live voice conversation, and when.

    Entry points are synchronous and never raise. Detection and memory
    retrieval run as background tasks on the running event loop; their
    results are dropped if reset() was called in the meantime.
    """

    def __init__(
        self,
        speech_session: SpeechSession,
        classifier: TopicClassifier,
        retriever: MemoryRetriever | None,
        session: SessionConfig,
        config: OrchestratorConfig | None = None,
        retrieval_limit: int = 5,
        enabled: bool = True,
        clock: Clock = now_millis,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            speech_session: Live speech session to inject content into.
            classifier: Topic classification service.
            retriever: Memory retrieval service; None disables retrieval.
            session: Session settings.
            config: Orchestration policy settings.
            retrieval_limit: Maximum memories per retrieval.
            enabled: When False every entry point is a no-op.
            clock: Epoch-millisecond clock.
        """
        self._speech_session = speech_session
        self._session = session
        self._config = config or OrchestratorConfig()
        self._enabled = enabled

        self._store = ConversationContextStore(
            task_description=session.task_description,
            planned_duration_seconds=session.planned_duration_seconds,
            max_recent_messages=self._config.max_recent_messages,
            max_topic_history=self._config.max_topic_history,
            clock=clock,
        )
        self._detector = TopicDetector(classifier, clock=clock)
        self._pipeline = (
            MemoryPipeline(retriever, session.user_id, limit=retrieval_limit, clock=clock)
            if retriever is not None
            else None
        )
        self._queue = VirtualMessageQueue(
            send=self._send_queued,
            cooldown_ms=self._config.cooldown_ms,
            expiry_ms=self._config.message_expiry_ms,
            clock=clock,
        )
        self._builder = VirtualMessageBuilder(session.preferred_language)

        self._tasks: set[asyncio.Task[None]] = set()
        self._generation = 0
        self._utterance_seq = 0
        self._last_applied_seq = 0
        self._pending_memory: PendingMemory | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    @property
    def is_detecting_topic(self) -> bool:
        """Whether a topic detection call is in flight."""
        return self._detector.is_detecting

    @property
    def pending_memory(self) -> PendingMemory | None:
        """Memory context waiting in the queue, if any."""
        return self._pending_memory

    @property
    def is_retrieval_enabled(self) -> bool:
        return (
            self._config.enable_memory_retrieval
            and self._pipeline is not None
            and bool(self._session.user_id)
        )

    # Entry points

    def on_user_speech(self, text: str) -> None:
        """Record a user utterance and start detection in the background.

        Must be called from within a running event loop.
        """
        if not self._enabled:
            return
        self._store.add_user_message(text)
        self._utterance_seq += 1
        logger.debug("User speech #%d: %s", self._utterance_seq, text[:50])
        self._spawn(self._detect(text, self._generation, self._utterance_seq))

    def on_ai_speech(self, text: str) -> None:
        """Record an AI utterance."""
        if not self._enabled:
            return
        self._store.add_ai_message(text)

    def on_turn_complete(self) -> None:
        """Release at most one queued message at a turn boundary."""
        if not self._enabled:
            return
        self._queue.try_flush()
        pending = self._pending_memory
        if pending is not None and not self._queue.contains(pending.item_id):
            logger.debug("Pending memory for %s left the queue", pending.topic)
            self._pending_memory = None

    async def trigger_memory_retrieval(
        self, topic: str, keywords: Sequence[str] | None = None
    ) -> None:
        """Retrieve memories for a topic outside of topic detection.

        Delivery follows the same interrupt-or-queue rule as detected topics.
        """
        if not self._enabled:
            return
        if not self.is_retrieval_enabled:
            logger.info("Memory retrieval disabled, ignoring manual trigger")
            return
        await self._retrieve(
            topic, list(keywords or []), (), MANUAL_RETRIEVAL_EMOTION, self._generation
        )

    def send_message_for_action(self, action: str) -> str | None:
        """Queue the directive for a suggested coaching action.

        Args:
            action: One of "listen", "accept_stop", "tiny_step" or
                "tone_shift". "empathy" is handled by emotion detection.

        Returns:
            The queued item's id, or None if the action has no directive.
        """
        if not self._enabled:
            return None
        message_type = ACTION_MESSAGE_TYPES.get(action)
        if message_type is None:
            logger.debug("No directive for action: %s", action)
            return None

        context = self._store.get_virtual_message_context()
        if message_type is VirtualMessageType.LISTEN_FIRST:
            content = self._builder.listen_first(context)
        elif message_type is VirtualMessageType.ACCEPT_STOP:
            content = self._builder.accept_stop(context)
        elif message_type is VirtualMessageType.PUSH_TINY_STEP:
            content = self._builder.push_tiny_step(context)
        else:
            content = self._builder.tone_shift(context)
        return self._enqueue(message_type, content)

    def send_gentle_redirect(self) -> str | None:
        if not self._enabled:
            return None
        content = self._builder.gentle_redirect(
            self._store.get_virtual_message_context(), self._store.elapsed_ms()
        )
        return self._enqueue(VirtualMessageType.GENTLE_REDIRECT, content)

    def send_checkpoint(self) -> str | None:
        """Queue a low-priority progress check-in."""
        if not self._enabled:
            return None
        content = self._builder.checkpoint(self._store.get_virtual_message_context())
        return self._enqueue(VirtualMessageType.CHECKPOINT, content)

    def update_summary(self, summary: str) -> None:
        self._store.update_summary(summary)

    def get_queue_size(self) -> int:
        return self._queue.size()

    def get_context(self) -> ConversationContext:
        """Return a copy of the conversation context."""
        return self._store.get_context()

    def reset(self) -> None:
        """Return to a fresh session.

        Results of detections and retrievals started before the reset are
        ignored when they arrive.
        """
        self._generation += 1
        self._store.reset()
        self._detector.reset()
        self._queue.clear()
        self._pending_memory = None
        self._utterance_seq = 0
        self._last_applied_seq = 0
        if self._pipeline is not None:
            self._pipeline.cancel()
        for task in list(self._tasks):
            task.cancel()
        logger.info("Orchestrator reset (generation %d)", self._generation)

    async def wait_until_idle(self) -> None:
        """Wait for all background detection and retrieval tasks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # Background work

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _detect(self, text: str, generation: int, seq: int) -> None:
        try:
            result = await self._detector.detect(
                text, self._store.get_recent_messages_summary()
            )
        except Exception:
            logger.exception("Topic detection failed")
            result = TopicDetectionResult(
                topic=None, emotional_state=self._detector.detect_emotion_locally(text)
            )

        if generation != self._generation:
            logger.debug("Ignoring detection result from before reset")
            return
        if self._config.discard_stale_results:
            if seq < self._last_applied_seq:
                logger.info("Discarding stale detection result #%d", seq)
                return
            self._last_applied_seq = seq

        try:
            self._apply_detection(result, generation)
        except Exception:
            logger.exception("Error handling detection result")

    def _apply_detection(self, result: TopicDetectionResult, generation: int) -> None:
        state = result.emotional_state
        topic = result.topic

        if not state.is_neutral:
            self._store.update_emotional_state(state)

            if state.intensity >= self._config.emotion_response_threshold:
                logger.info(
                    "Strong emotion: %s (%.2f), queueing empathy",
                    state.primary.value,
                    state.intensity,
                )
                content = self._builder.empathy(
                    self._store.get_virtual_message_context(),
                    state.primary,
                    state.intensity,
                    state.trigger,
                )
                self._queue.enqueue(
                    VirtualMessageType.EMPATHY,
                    VirtualMessagePriority.URGENT,
                    content,
                    related_topic=topic.name if topic else None,
                    metadata={"emotion": state.primary.value, "intensity": state.intensity},
                )

        if topic is None:
            return
        self._store.update_topic(topic)

        if result.is_topic_changed and self.is_retrieval_enabled:
            self._spawn(
                self._retrieve(
                    topic.name, [], result.memory_questions, state, generation
                )
            )

    async def _retrieve(
        self,
        topic: str,
        keywords: list[str],
        seed_questions: Sequence[str],
        emotion: EmotionalState,
        generation: int,
    ) -> None:
        if self._pipeline is None:
            return
        try:
            memories = await self._pipeline.fetch_memories_for_topic(
                topic, keywords, self._store.summary, list(seed_questions)
            )
        except Exception:
            logger.exception("Memory retrieval failed: topic=%s", topic)
            return

        if generation != self._generation:
            logger.debug("Ignoring memories for %s from before reset", topic)
            return
        if not memories:
            return

        content = generate_context_message(
            memories, topic, emotion.primary, emotion.intensity
        )
        self._deliver_context(content, topic, len(memories))

    def _deliver_context(self, content: str, topic: str, count: int) -> None:
        if self._speech_session.is_speaking:
            try:
                self._speech_session.send_client_content(
                    content, force_new_turn=True, role=ClientContentRole.SYSTEM
                )
                logger.info("AI speaking, interrupted with %d memories: topic=%s", count, topic)
                return
            except Exception:
                logger.exception("Interrupt failed, queueing memory context instead")

        item_id = self._queue.enqueue(
            VirtualMessageType.CONTEXT,
            VirtualMessagePriority.NORMAL,
            content,
            related_topic=topic,
        )
        if item_id:
            self._pending_memory = PendingMemory(topic=topic, count=count, item_id=item_id)
            logger.info("Queued %d memories for next turn: topic=%s", count, topic)

    def _enqueue(self, message_type: VirtualMessageType, content: str) -> str | None:
        current_topic = self._detector.current_topic
        item_id = self._queue.enqueue(
            message_type,
            DEFAULT_TYPE_PRIORITY[message_type],
            content,
            related_topic=current_topic.name if current_topic else None,
        )
        return item_id or None

    def _send_queued(self, content: str) -> bool:
        return self._speech_session.inject_context_silently(content)
