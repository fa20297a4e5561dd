"""Conversation context store."""

import copy
import logging

from contextweaver.domain.entities import (
    ContextMessage,
    ConversationContext,
    ConversationPhase,
    EmotionalState,
    Role,
    TopicInfo,
    VirtualMessageContext,
)
from contextweaver.domain.time_utils import (
    Clock,
    format_duration,
    format_local_time,
    now_millis,
)

logger = logging.getLogger(__name__)

# Emotions above this intensity put the conversation into the emotional phase.
EMOTIONAL_PHASE_INTENSITY = 0.6

# Share of the planned duration after which the session is wrapping up.
WRAP_UP_RATIO = 0.8


class ConversationContextStore:
    """Single source of truth for what has been said in the session.

    Holds one mutable ConversationContext. Only the orchestrator writes to
    it; readers get copies through get_context() or
    get_virtual_message_context().
    """

    def __init__(
        self,
        task_description: str = "",
        planned_duration_seconds: int = 0,
        max_recent_messages: int = 10,
        max_topic_history: int = 5,
        clock: Clock = now_millis,
        session_start_time: int | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            task_description: What the user is working on in this session.
            planned_duration_seconds: Planned session length; 0 disables the
                wrapping-up phase.
            max_recent_messages: Number of messages kept.
            max_topic_history: Number of past topics kept.
            clock: Epoch-millisecond clock.
            session_start_time: Session start, defaults to now.
        """
        self._task_description = task_description
        self._planned_duration_ms = planned_duration_seconds * 1000
        self._max_recent_messages = max_recent_messages
        self._max_topic_history = max_topic_history
        self._clock = clock
        start = session_start_time if session_start_time is not None else clock()
        self._context = ConversationContext(
            session_start_time=start, last_activity_time=start
        )

    def add_user_message(self, text: str, is_system_injected: bool = False) -> None:
        """Record a user utterance."""
        self._append(Role.USER, text, is_system_injected)
        self._context.last_user_speech = text
        logger.debug("Added user message: %s", text[:50])

    def add_ai_message(self, text: str, is_system_injected: bool = False) -> None:
        """Record an AI utterance."""
        self._append(Role.ASSISTANT, text, is_system_injected)
        self._context.last_ai_speech = text
        logger.debug("Added AI message: %s", text[:50])

    def _append(self, role: Role, text: str, is_system_injected: bool) -> None:
        now = self._clock()
        ctx = self._context
        ctx.recent_messages.append(
            ContextMessage(
                role=role,
                text=text,
                timestamp=now,
                is_system_injected=is_system_injected,
            )
        )
        overflow = len(ctx.recent_messages) - self._max_recent_messages
        if overflow > 0:
            del ctx.recent_messages[:overflow]
        ctx.last_activity_time = now
        ctx.phase = self._derive_phase(now)

    def _derive_phase(self, now: int) -> ConversationPhase:
        ctx = self._context
        emotion = ctx.emotional_state
        if emotion.intensity > EMOTIONAL_PHASE_INTENSITY and not emotion.is_neutral:
            return ConversationPhase.EMOTIONAL

        message_count = len(ctx.recent_messages)
        if message_count <= 2:
            return ConversationPhase.GREETING
        if message_count <= 6:
            return ConversationPhase.EXPLORING

        elapsed = now - ctx.session_start_time
        if self._planned_duration_ms > 0 and elapsed > self._planned_duration_ms * WRAP_UP_RATIO:
            return ConversationPhase.WRAPPING_UP
        return ConversationPhase.DEEP_DISCUSSION

    def update_topic(self, topic: TopicInfo) -> None:
        """Replace the current topic.

        When the topic id changes, the previous topic is pushed onto the
        topic flow first.
        """
        ctx = self._context
        previous = ctx.current_topic
        if previous is not None and previous.id != topic.id:
            ctx.topic_flow.append(previous)
            overflow = len(ctx.topic_flow) - self._max_topic_history
            if overflow > 0:
                del ctx.topic_flow[:overflow]
            logger.info("Topic changed: %s -> %s", previous.name, topic.name)
        elif previous is None:
            logger.info("Topic detected: %s", topic.name)
        ctx.current_topic = topic

    def update_emotional_state(self, state: EmotionalState) -> None:
        """Replace the emotional state.

        A strong non-neutral emotion moves the conversation into the
        emotional phase right away.
        """
        ctx = self._context
        ctx.emotional_state = state
        if state.intensity > EMOTIONAL_PHASE_INTENSITY and not state.is_neutral:
            ctx.phase = ConversationPhase.EMOTIONAL
        logger.debug(
            "Emotional state updated: %s (%.2f)", state.primary.value, state.intensity
        )

    def update_summary(self, summary: str) -> None:
        """Set the externally generated conversation summary."""
        self._context.summary = summary
        logger.debug("Summary updated: %s", summary)

    @property
    def summary(self) -> str | None:
        return self._context.summary

    def elapsed_ms(self) -> int:
        """Milliseconds since the session started."""
        return self._clock() - self._context.session_start_time

    def get_context(self) -> ConversationContext:
        """Return a deep copy of the current context."""
        return copy.deepcopy(self._context)

    def get_virtual_message_context(self) -> VirtualMessageContext:
        """Build the read-only snapshot used for prompt construction."""
        ctx = self._context
        now = self._clock()
        elapsed = now - ctx.session_start_time
        remaining = self._planned_duration_ms - elapsed
        return VirtualMessageContext(
            task_description=self._task_description,
            elapsed_time=format_duration(elapsed),
            remaining_time=format_duration(remaining),
            recent_user_speech=ctx.last_user_speech,
            recent_ai_speech=ctx.last_ai_speech,
            current_emotion=ctx.emotional_state.primary,
            emotion_intensity=ctx.emotional_state.intensity,
            current_topic=ctx.current_topic.name if ctx.current_topic else None,
            topic_flow=tuple(topic.name for topic in ctx.topic_flow),
            conversation_phase=ctx.phase,
            conversation_summary=ctx.summary,
            current_time=format_local_time(now),
        )

    def get_recent_messages_summary(self, count: int = 5) -> str:
        """Format the last messages as "User: ..." / "AI: ..." lines.

        Args:
            count: Number of messages to include.

        Returns:
            Newline-joined lines, oldest first. Empty string if no messages.
        """
        if count <= 0:
            return ""
        lines = []
        for message in self._context.recent_messages[-count:]:
            speaker = "User" if message.role is Role.USER else "AI"
            lines.append(f"{speaker}: {message.text}")
        return "\n".join(lines)

    def reset(self) -> None:
        """Restore session-start defaults, starting the session clock anew."""
        now = self._clock()
        self._context = ConversationContext(session_start_time=now, last_activity_time=now)
        logger.info("Conversation context reset")
