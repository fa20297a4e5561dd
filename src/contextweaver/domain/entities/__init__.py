"""Domain entities."""

from contextweaver.domain.entities.context import (
    ContextMessage,
    ConversationContext,
    ConversationPhase,
    Emotion,
    EmotionalState,
    Role,
    TopicInfo,
    VirtualMessageContext,
)
from contextweaver.domain.entities.detection import (
    ClassificationRequest,
    ClassificationResponse,
    TopicDetectionResult,
)
from contextweaver.domain.entities.memory import (
    MemoryRetrievalRequest,
    MemoryRetrievalResponse,
    MemoryRetrievalResult,
)
from contextweaver.domain.entities.message import (
    MessageQueueState,
    PendingMemory,
    VirtualMessageItem,
    VirtualMessagePriority,
    VirtualMessageType,
)
from contextweaver.domain.entities.topic import TOPIC_RULES, TopicRule, find_topic_rule

__all__ = [
    "TOPIC_RULES",
    "ClassificationRequest",
    "ClassificationResponse",
    "ContextMessage",
    "ConversationContext",
    "ConversationPhase",
    "Emotion",
    "EmotionalState",
    "MemoryRetrievalRequest",
    "MemoryRetrievalResponse",
    "MemoryRetrievalResult",
    "MessageQueueState",
    "PendingMemory",
    "Role",
    "TopicDetectionResult",
    "TopicInfo",
    "TopicRule",
    "VirtualMessageContext",
    "VirtualMessageItem",
    "VirtualMessagePriority",
    "VirtualMessageType",
    "find_topic_rule",
]
