"""Domain service protocols."""

from enum import Enum
from typing import Protocol

from contextweaver.domain.entities import (
    ClassificationRequest,
    ClassificationResponse,
    MemoryRetrievalRequest,
    MemoryRetrievalResponse,
)


class ClientContentRole(Enum):
    """Role attached to content pushed into the live speech session."""

    USER = "user"
    SYSTEM = "system"


class SpeechSession(Protocol):
    """Live speech session abstraction.

    The session itself (connect, audio streaming, turn signalling) is owned
    by the caller; this package only reads its speaking state and pushes
    text into it.
    """

    @property
    def is_speaking(self) -> bool:
        """Whether the AI is currently producing speech."""
        ...

    def send_client_content(
        self,
        content: str,
        force_new_turn: bool = True,
        role: ClientContentRole = ClientContentRole.SYSTEM,
    ) -> None:
        """Send content and optionally force the AI to start a new turn.

        Args:
            content: Text to send.
            force_new_turn: Interrupt the current utterance and respond.
            role: Role the content is attributed to.
        """
        ...

    def inject_context_silently(self, content: str) -> bool:
        """Inject content without forcing a new turn.

        Args:
            content: Text to inject.

        Returns:
            True if the content was delivered.
        """
        ...


class TopicClassifier(Protocol):
    """Topic and emotion classification abstraction."""

    async def classify(self, request: ClassificationRequest) -> ClassificationResponse:
        """Classify an utterance.

        Args:
            request: Utterance and recent context.

        Returns:
            Classification response.

        Raises:
            ClassificationError: The service failed.
        """
        ...


class MemoryRetriever(Protocol):
    """Long-term memory retrieval abstraction."""

    async def retrieve(self, request: MemoryRetrievalRequest) -> MemoryRetrievalResponse:
        """Retrieve memories relevant to a topic.

        Args:
            request: Retrieval request.

        Returns:
            Retrieved memories.

        Raises:
            MemoryRetrievalError: The service failed.
        """
        ...
