"""Conversation context entities."""

from dataclasses import dataclass, field
from enum import Enum


class Role(Enum):
    """Speaker of a tracked message."""

    USER = "user"
    ASSISTANT = "assistant"


class Emotion(Enum):
    """Primary emotion labels."""

    NEUTRAL = "neutral"
    HAPPY = "happy"
    SAD = "sad"
    ANXIOUS = "anxious"
    FRUSTRATED = "frustrated"
    TIRED = "tired"


class ConversationPhase(Enum):
    """Coarse phase of the conversation.

    IDLE is part of the vocabulary shared with prompt consumers; the
    phase derivation never produces it.
    """

    GREETING = "greeting"
    EXPLORING = "exploring"
    DEEP_DISCUSSION = "deep_discussion"
    EMOTIONAL = "emotional"
    WRAPPING_UP = "wrapping_up"
    IDLE = "idle"


@dataclass(frozen=True)
class ContextMessage:
    """A single tracked utterance.

    Attributes:
        role: Who said it.
        text: Utterance text.
        timestamp: Epoch milliseconds when it was recorded.
        is_system_injected: True when the utterance was produced in response
            to injected context rather than spontaneous conversation.
    """

    role: Role
    text: str
    timestamp: int
    is_system_injected: bool = False


@dataclass(frozen=True)
class TopicInfo:
    """A detected conversation topic.

    Topics are compared by ``id`` only; ``name`` is for display.
    """

    id: str
    name: str
    detected_at: int
    matched_keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class EmotionalState:
    """Detected emotional state of the user.

    Attributes:
        primary: Primary emotion.
        intensity: Strength in the range 0.0 - 1.0.
        detected_at: Epoch milliseconds of detection.
        trigger: Word that triggered a lexical detection, if any.
    """

    primary: Emotion = Emotion.NEUTRAL
    intensity: float = 0.0
    detected_at: int = 0
    trigger: str | None = None

    @property
    def is_neutral(self) -> bool:
        return self.primary is Emotion.NEUTRAL


@dataclass
class ConversationContext:
    """Mutable record of the conversation so far.

    Owned by ConversationContextStore; other components only ever see
    copies of it.
    """

    session_start_time: int
    last_activity_time: int
    recent_messages: list[ContextMessage] = field(default_factory=list)
    current_topic: TopicInfo | None = None
    topic_flow: list[TopicInfo] = field(default_factory=list)
    emotional_state: EmotionalState = field(default_factory=EmotionalState)
    phase: ConversationPhase = ConversationPhase.GREETING
    last_user_speech: str | None = None
    last_ai_speech: str | None = None
    summary: str | None = None


@dataclass(frozen=True)
class VirtualMessageContext:
    """Read-only snapshot of the context, shaped for prompt construction.

    Attributes:
        task_description: What the user is working on in this session.
        elapsed_time: Time since session start, e.g. "3m12s".
        remaining_time: Time left of the planned duration, e.g. "1m48s".
        recent_user_speech: Last user utterance.
        recent_ai_speech: Last AI utterance.
        current_emotion: Current primary emotion.
        emotion_intensity: Current emotion intensity.
        current_topic: Current topic name.
        topic_flow: Names of previous topics, oldest first.
        conversation_phase: Current phase.
        conversation_summary: Externally provided summary.
        current_time: Local time "HH:MM".
    """

    task_description: str
    elapsed_time: str
    remaining_time: str
    recent_user_speech: str | None
    recent_ai_speech: str | None
    current_emotion: Emotion
    emotion_intensity: float
    current_topic: str | None
    topic_flow: tuple[str, ...]
    conversation_phase: ConversationPhase
    conversation_summary: str | None
    current_time: str
