"""Virtual message entities."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class VirtualMessageType(Enum):
    """Kind of injected message."""

    EMPATHY = "EMPATHY"
    DIRECTIVE = "DIRECTIVE"
    CONTEXT = "CONTEXT"
    CHECKPOINT = "CHECKPOINT"
    LISTEN_FIRST = "LISTEN_FIRST"
    ACCEPT_STOP = "ACCEPT_STOP"
    GENTLE_REDIRECT = "GENTLE_REDIRECT"
    PUSH_TINY_STEP = "PUSH_TINY_STEP"
    TONE_SHIFT = "TONE_SHIFT"


class VirtualMessagePriority(Enum):
    """Delivery priority of a queued message."""

    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


PRIORITY_WEIGHT: dict[VirtualMessagePriority, int] = {
    VirtualMessagePriority.URGENT: 4,
    VirtualMessagePriority.HIGH: 3,
    VirtualMessagePriority.NORMAL: 2,
    VirtualMessagePriority.LOW: 1,
}

TYPE_WEIGHT: dict[VirtualMessageType, int] = {
    VirtualMessageType.EMPATHY: 5,
    VirtualMessageType.LISTEN_FIRST: 5,
    VirtualMessageType.ACCEPT_STOP: 4,
    VirtualMessageType.GENTLE_REDIRECT: 4,
    VirtualMessageType.PUSH_TINY_STEP: 3,
    VirtualMessageType.TONE_SHIFT: 3,
    VirtualMessageType.DIRECTIVE: 3,
    VirtualMessageType.CHECKPOINT: 2,
    VirtualMessageType.CONTEXT: 1,
}

# Default priority used when a message type is queued without an explicit one.
DEFAULT_TYPE_PRIORITY: dict[VirtualMessageType, VirtualMessagePriority] = {
    VirtualMessageType.EMPATHY: VirtualMessagePriority.URGENT,
    VirtualMessageType.LISTEN_FIRST: VirtualMessagePriority.HIGH,
    VirtualMessageType.ACCEPT_STOP: VirtualMessagePriority.HIGH,
    VirtualMessageType.DIRECTIVE: VirtualMessagePriority.HIGH,
    VirtualMessageType.GENTLE_REDIRECT: VirtualMessagePriority.NORMAL,
    VirtualMessageType.PUSH_TINY_STEP: VirtualMessagePriority.NORMAL,
    VirtualMessageType.TONE_SHIFT: VirtualMessagePriority.NORMAL,
    VirtualMessageType.CONTEXT: VirtualMessagePriority.NORMAL,
    VirtualMessageType.CHECKPOINT: VirtualMessagePriority.LOW,
}


@dataclass(frozen=True)
class VirtualMessageItem:
    """A queued outbound message.

    Attributes:
        id: Opaque unique identifier.
        type: Message type.
        priority: Delivery priority.
        content: Fully rendered text, ready to send.
        created_at: Epoch milliseconds of creation.
        expires_at: Epoch milliseconds after which the item is dropped.
        related_topic: Topic name the message refers to, if any.
        metadata: Free-form extra data for logging and debugging.
    """

    id: str
    type: VirtualMessageType
    priority: VirtualMessagePriority
    content: str
    created_at: int
    expires_at: int
    related_topic: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: int) -> bool:
        """Check whether the item may no longer be sent."""
        return now >= self.expires_at

    def sort_key(self) -> tuple[int, int, int]:
        """Key ordering items by priority, type weight, then age."""
        return (
            -PRIORITY_WEIGHT[self.priority],
            -TYPE_WEIGHT[self.type],
            self.created_at,
        )


@dataclass(frozen=True)
class MessageQueueState:
    """Snapshot of the message queue."""

    queue: tuple[VirtualMessageItem, ...]
    last_sent: VirtualMessageItem | None
    last_sent_at: int | None
    cooldown_until: int | None
    is_sending: bool


@dataclass(frozen=True)
class PendingMemory:
    """A memory injection that is waiting in the queue for a turn boundary."""

    topic: str
    count: int
    item_id: str
