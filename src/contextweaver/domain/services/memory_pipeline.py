"""Asynchronous memory retrieval pipeline."""

import asyncio
import logging
import re
from collections.abc import Sequence

from contextweaver.domain.entities import (
    Emotion,
    MemoryRetrievalRequest,
    MemoryRetrievalResponse,
    MemoryRetrievalResult,
)
from contextweaver.domain.services.protocols import MemoryRetriever
from contextweaver.domain.time_utils import Clock, now_millis

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5


class MemoryPipeline:
    """Fetches long-term memories for a topic without blocking the caller.

    At most one retrieval request is in flight: starting a new one cancels
    the previous one, whose caller then receives an empty list.
    """

    def __init__(
        self,
        retriever: MemoryRetriever,
        user_id: str | None,
        limit: int = DEFAULT_LIMIT,
        clock: Clock = now_millis,
    ) -> None:
        """Initialize the pipeline.

        Args:
            retriever: Memory retrieval service.
            user_id: Identified user, or None when nobody is signed in.
            limit: Maximum number of memories requested.
            clock: Epoch-millisecond clock.
        """
        self._retriever = retriever
        self._user_id = user_id
        self._limit = limit
        self._clock = clock
        self._in_flight: asyncio.Task[MemoryRetrievalResponse] | None = None

        # Observability only.
        self.last_result: list[MemoryRetrievalResult] | None = None
        self.last_duration_ms: int | None = None
        self.last_topic: str | None = None

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def is_loading(self) -> bool:
        """Whether a retrieval request is in flight."""
        return self._in_flight is not None and not self._in_flight.done()

    async def fetch_memories_for_topic(
        self,
        topic: str,
        keywords: Sequence[str] = (),
        summary: str | None = None,
        seed_questions: Sequence[str] | None = None,
    ) -> list[MemoryRetrievalResult]:
        """Retrieve memories relevant to a topic.

        Args:
            topic: Topic name.
            keywords: Extra keywords.
            summary: Running conversation summary.
            seed_questions: Questions guiding the retrieval query.

        Returns:
            Retrieved memories. Empty when the user is unknown, when the
            request fails, or when a newer request superseded this one.
        """
        if not self._user_id:
            logger.info("No user identified, skipping memory retrieval")
            return []

        self.cancel()

        request = MemoryRetrievalRequest(
            user_id=self._user_id,
            current_topic=topic,
            keywords=tuple(keywords),
            conversation_summary=summary,
            seed_questions=tuple(seed_questions or ()),
            limit=self._limit,
        )
        self.last_topic = topic
        started_at = self._clock()
        logger.info(
            "Retrieving memories: topic=%s, keywords=%s", topic, ",".join(keywords)
        )

        task = asyncio.ensure_future(self._retriever.retrieve(request))
        self._in_flight = task
        try:
            response = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            logger.info("Memory retrieval superseded: topic=%s", topic)
            return []
        except Exception as e:
            logger.warning("Memory retrieval failed: topic=%s, error=%s", topic, e)
            return []
        finally:
            if self._in_flight is task:
                self._in_flight = None

        duration_ms = self._clock() - started_at
        self.last_duration_ms = duration_ms
        self.last_result = list(response.memories)

        if not response.memories:
            logger.info("No relevant memories found: topic=%s", topic)
            return []

        logger.info(
            "Retrieved %d memories in %dms: topic=%s",
            len(response.memories),
            duration_ms,
            topic,
        )
        if response.synthesized_questions:
            logger.debug("Synthesized questions: %s", response.synthesized_questions)
        return list(response.memories)

    def cancel(self) -> None:
        """Cancel the in-flight request, if any."""
        if self._in_flight is not None and not self._in_flight.done():
            self._in_flight.cancel()
            logger.debug("Cancelled in-flight memory retrieval")
        self._in_flight = None


PAST_EXPERIENCE_MARKERS = ("before", "last time", "previously", "used to", "去过", "上次", "之前")
PREFERENCE_PATTERN = re.compile(r"\blik(?:e|es|ed)\b|\bprefer|喜欢|偏好", re.IGNORECASE)
PATTERN_TAGS = ("PROC", "EMO", "SAB")


def _group_by_tag(
    memories: Sequence[MemoryRetrievalResult],
) -> dict[str, list[MemoryRetrievalResult]]:
    grouped: dict[str, list[MemoryRetrievalResult]] = {}
    for memory in memories:
        grouped.setdefault(memory.tag, []).append(memory)
    return grouped


def _join(memories: Sequence[MemoryRetrievalResult]) -> str:
    return "; ".join(memory.content for memory in memories)


def generate_context_message(
    memories: Sequence[MemoryRetrievalResult],
    topic: str,
    emotion: Emotion | str,
    intensity: float,
) -> str:
    """Format retrieved memories as a [CONTEXT] directive.

    Memories are bucketed for presentation only: effective strategies first,
    then past experiences, preferences and behaviour patterns. Memories no
    bucket claimed are listed under [Other memories], or as a flat list when
    nothing matched at all, so bucketing never decides whether a memory is
    shown.

    Args:
        memories: Retrieved memories.
        topic: Current topic name.
        emotion: Current emotion.
        intensity: Current emotion intensity.

    Returns:
        The directive text, or "" if there are no memories.
    """
    if not memories:
        return ""

    grouped = _group_by_tag(memories)
    sections: list[str] = []
    placed: set[int] = set()

    def add_section(label: str, bucket: list[MemoryRetrievalResult]) -> None:
        sections.append(f"[{label}] {_join(bucket)}")
        placed.update(id(m) for m in bucket)

    effective = grouped.get("EFFECTIVE", [])
    if effective:
        add_section("What has worked", effective)

    past = [
        m for m in memories if any(marker in m.content.lower() for marker in PAST_EXPERIENCE_MARKERS)
    ]
    if past:
        add_section("Past experiences", past)

    preferences = grouped.get("PREF") or [
        m for m in memories if PREFERENCE_PATTERN.search(m.content)
    ]
    if preferences and not any(preferences[0].content in section for section in sections):
        add_section("Preferences", preferences)

    patterns = [m for tag in PATTERN_TAGS for m in grouped.get(tag, [])]
    if patterns:
        add_section("Behaviour patterns", patterns)

    if not sections:
        sections.append(f"Related memories: {_join(memories)}")
    else:
        others = [m for m in memories if id(m) not in placed]
        if others:
            add_section("Other memories", others)

    emotion_label = emotion.value if isinstance(emotion, Emotion) else emotion
    memory_section = "\n".join(sections)
    return (
        f'[CONTEXT] type=memory topic="{topic}"\n'
        f'conversation_context: The user is talking about "{topic}", '
        f"emotion {emotion_label} ({intensity:.1f})\n"
        f"{memory_section}\n"
        "action: Bring these memories up naturally so the user feels remembered. "
        "Do not list them; mention them the way a friend would."
    )
