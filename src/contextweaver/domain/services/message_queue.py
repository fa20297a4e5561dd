"""Priority queue for outbound virtual messages."""

import logging
import uuid
from collections.abc import Callable
from typing import Any

from contextweaver.domain.entities import (
    MessageQueueState,
    VirtualMessageItem,
    VirtualMessagePriority,
    VirtualMessageType,
)
from contextweaver.domain.time_utils import Clock, now_millis

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_MS = 15_000
DEFAULT_EXPIRY_MS = 60_000

# Delivers message content; returns True when the content was accepted.
SendCallback = Callable[[str], bool]


def generate_message_id() -> str:
    """Generate a unique virtual message id."""
    return f"vm_{uuid.uuid4().hex[:12]}"


class VirtualMessageQueue:
    """Buffers outbound messages and releases at most one per flush.

    Ordering: priority, then type weight, then creation time (FIFO among
    equals). Expired items are dropped, never sent. After each successful
    delivery a cooldown window opens during which nothing is released.

    The queue is expected to hold only a handful of items, so it is simply
    re-sorted on every enqueue.
    """

    def __init__(
        self,
        send: SendCallback,
        cooldown_ms: int = DEFAULT_COOLDOWN_MS,
        expiry_ms: int = DEFAULT_EXPIRY_MS,
        enabled: bool = True,
        clock: Clock = now_millis,
    ) -> None:
        """Initialize the queue.

        Args:
            send: Delivery callback, called with the message content.
            cooldown_ms: Minimum time between two deliveries.
            expiry_ms: Default time-to-live of an enqueued item.
            enabled: When False, enqueue and try_flush do nothing.
            clock: Epoch-millisecond clock.
        """
        self._send = send
        self._cooldown_ms = cooldown_ms
        self._expiry_ms = expiry_ms
        self._enabled = enabled
        self._clock = clock

        self._queue: list[VirtualMessageItem] = []
        self._last_sent: VirtualMessageItem | None = None
        self._last_sent_at: int | None = None
        self._cooldown_until: int | None = None
        self._is_sending = False

    @property
    def state(self) -> MessageQueueState:
        """Snapshot of the queue state."""
        return MessageQueueState(
            queue=tuple(self._queue),
            last_sent=self._last_sent,
            last_sent_at=self._last_sent_at,
            cooldown_until=self._cooldown_until,
            is_sending=self._is_sending,
        )

    def enqueue(
        self,
        message_type: VirtualMessageType,
        priority: VirtualMessagePriority,
        content: str,
        *,
        related_topic: str | None = None,
        expires_at: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Add a message to the queue.

        Args:
            message_type: Message type.
            priority: Delivery priority.
            content: Rendered message text.
            related_topic: Topic the message refers to.
            expires_at: Explicit expiry (epoch ms); defaults to now + TTL.
            metadata: Extra data kept with the item.

        Returns:
            The new item's id, or "" when the queue is disabled.
        """
        if not self._enabled:
            return ""

        now = self._clock()
        item = VirtualMessageItem(
            id=generate_message_id(),
            type=message_type,
            priority=priority,
            content=content,
            created_at=now,
            expires_at=expires_at if expires_at is not None else now + self._expiry_ms,
            related_topic=related_topic,
            metadata=dict(metadata or {}),
        )

        self._purge_expired(now)
        self._queue.append(item)
        # list.sort is stable, which keeps FIFO order among equal keys.
        self._queue.sort(key=VirtualMessageItem.sort_key)

        logger.info(
            "Enqueued %s (%s): id=%s, queue_size=%d",
            message_type.value,
            priority.value,
            item.id,
            len(self._queue),
        )
        return item.id

    def _purge_expired(self, now: int) -> None:
        kept = [item for item in self._queue if not item.is_expired(now)]
        dropped = len(self._queue) - len(kept)
        if dropped:
            logger.info("Dropped %d expired message(s)", dropped)
        self._queue = kept

    def is_in_cooldown(self) -> bool:
        """Whether a recent delivery still blocks the next one."""
        return self._cooldown_until is not None and self._clock() < self._cooldown_until

    def try_flush(self) -> bool:
        """Deliver the head of the queue if allowed.

        Call this right after a turn boundary. Expired items are purged
        first. On delivery failure the item stays at the head for the next
        attempt.

        Returns:
            True if a message was delivered.
        """
        if not self._enabled:
            return False

        now = self._clock()
        self._purge_expired(now)

        if self._cooldown_until is not None and now < self._cooldown_until:
            logger.debug("In cooldown, %dms remaining", self._cooldown_until - now)
            return False

        if not self._queue:
            return False

        head = self._queue[0]
        self._is_sending = True
        try:
            delivered = self._send(head.content)
        except Exception:
            logger.exception("Error delivering %s message %s", head.type.value, head.id)
            delivered = False
        finally:
            self._is_sending = False

        if not delivered:
            logger.info("Delivery failed, keeping %s message %s", head.type.value, head.id)
            return False

        self._queue.pop(0)
        sent_at = self._clock()
        self._last_sent = head
        self._last_sent_at = sent_at
        self._cooldown_until = sent_at + self._cooldown_ms

        logger.info(
            "Sent %s (%s): id=%s, topic=%s, remaining=%d, cooldown=%dms",
            head.type.value,
            head.priority.value,
            head.id,
            head.related_topic or "-",
            len(self._queue),
            self._cooldown_ms,
        )
        logger.debug("Sent content:\n%s", head.content)
        return True

    def peek(self) -> VirtualMessageItem | None:
        """Return the head item without removing it."""
        return self._queue[0] if self._queue else None

    def contains(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self._queue)

    def remove(self, item_id: str) -> None:
        """Remove one item without sending it."""
        self._queue = [item for item in self._queue if item.id != item_id]

    def clear(self) -> None:
        """Drop every queued item without sending."""
        self._queue = []
        logger.info("Message queue cleared")

    def size(self) -> int:
        return len(self._queue)
