"""Topic detection entities."""

from dataclasses import dataclass, field

from contextweaver.domain.entities.context import EmotionalState, TopicInfo


@dataclass(frozen=True)
class ClassificationRequest:
    """Request sent to the topic classification service.

    Attributes:
        utterance: The user utterance to classify.
        recent_context: Recent conversation lines, for disambiguation.
    """

    utterance: str
    recent_context: str = ""


@dataclass(frozen=True)
class ClassificationResponse:
    """Response of the topic classification service.

    Attributes:
        topic: Candidate topic, or None when nothing matched.
        confidence: Match confidence (0.0 - 1.0).
        emotional_state: Emotion associated with the utterance, if reported.
        memory_questions: Seed questions for memory retrieval on this topic.
    """

    topic: TopicInfo | None = None
    confidence: float = 0.0
    emotional_state: EmotionalState | None = None
    memory_questions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TopicDetectionResult:
    """Result of detecting topic and emotion in one utterance.

    Attributes:
        topic: Detected topic, or None.
        emotional_state: Detected emotional state.
        is_topic_changed: True if a topic was found and differs from the
            previously detected one.
        matched_keywords: Keywords that matched, if any.
        confidence: Classifier confidence (0.0 when it did not answer).
        memory_questions: Seed questions for memory retrieval.
    """

    topic: TopicInfo | None
    emotional_state: EmotionalState
    is_topic_changed: bool = False
    matched_keywords: tuple[str, ...] = ()
    confidence: float = 0.0
    memory_questions: tuple[str, ...] = ()
