"""Memory retrieval entities."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class MemoryRetrievalResult:
    """A memory returned by the retrieval service.

    Read-only: this package only formats memories, it never stores them.

    Attributes:
        content: Memory text.
        tag: Category tag (EFFECTIVE, PREF, PROC, EMO, SAB, CONTEXT, ...).
        relevance: Fused relevance score.
        tag_label: Human-readable tag description.
    """

    content: str
    tag: str
    relevance: float = 0.0
    tag_label: str = ""


@dataclass(frozen=True)
class MemoryRetrievalRequest:
    """Request sent to the retrieval service."""

    user_id: str
    current_topic: str
    keywords: tuple[str, ...] = ()
    conversation_summary: str | None = None
    seed_questions: tuple[str, ...] = ()
    limit: int = 5


@dataclass(frozen=True)
class MemoryRetrievalResponse:
    """Response of the retrieval service."""

    memories: list[MemoryRetrievalResult] = field(default_factory=list)
    synthesized_questions: list[str] | None = None
    duration_ms: int = 0
