"""Domain services."""

from contextweaver.domain.services.context_store import ConversationContextStore
from contextweaver.domain.services.emotion_lexicon import detect_emotion
from contextweaver.domain.services.memory_pipeline import (
    MemoryPipeline,
    generate_context_message,
)
from contextweaver.domain.services.message_queue import VirtualMessageQueue
from contextweaver.domain.services.protocols import (
    ClientContentRole,
    MemoryRetriever,
    SpeechSession,
    TopicClassifier,
)
from contextweaver.domain.services.topic_detector import TopicDetector

__all__ = [
    "ClientContentRole",
    "ConversationContextStore",
    "MemoryPipeline",
    "MemoryRetriever",
    "SpeechSession",
    "TopicClassifier",
    "TopicDetector",
    "VirtualMessageQueue",
    "detect_emotion",
    "generate_context_message",
]
