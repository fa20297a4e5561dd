"""HTTP adapter for the memory retrieval service."""

import logging

import httpx

from contextweaver.config.models import ServiceConfig
from contextweaver.domain.entities import (
    MemoryRetrievalRequest,
    MemoryRetrievalResponse,
    MemoryRetrievalResult,
)
from contextweaver.domain.exceptions import MemoryRetrievalError
from contextweaver.infrastructure.http.base import post_json

logger = logging.getLogger(__name__)


class HttpMemoryRetriever:
    """Calls the remote retrieve-memories endpoint.

    Wire format:
        request:  {"userId", "currentTopic", "keywords", "conversationSummary",
                   "seedQuestions", "limit"}
        response: {"memories": [{"content", "tag", "relevance", "tagLabel"}],
                   "synthesizedQuestions"?: [str], "durationMs": int}
    """

    def __init__(
        self,
        config: ServiceConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            config: Service endpoint settings.
            transport: Optional httpx transport (used by tests).
        """
        self._config = config
        self._transport = transport

    async def retrieve(self, request: MemoryRetrievalRequest) -> MemoryRetrievalResponse:
        """Retrieve memories for a topic.

        Raises:
            MemoryRetrievalError: The request failed or the response was
                malformed.
        """
        payload = {
            "userId": request.user_id,
            "currentTopic": request.current_topic,
            "keywords": list(request.keywords),
            "conversationSummary": request.conversation_summary,
            "seedQuestions": list(request.seed_questions),
            "limit": request.limit,
        }
        topic = request.current_topic
        try:
            data = await post_json(
                self._config, "/retrieve-memories", payload, self._transport
            )
        except httpx.TimeoutException as e:
            logger.warning("Memory retrieval timeout: topic=%s", topic)
            raise MemoryRetrievalError(topic, "Memory retrieval timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning("Memory retrieval HTTP error: topic=%s - %s", topic, e)
            raise MemoryRetrievalError(topic, f"HTTP error: {e}") from e
        except httpx.RequestError as e:
            logger.warning("Memory retrieval request error: topic=%s - %s", topic, e)
            raise MemoryRetrievalError(topic, f"Request error: {e}") from e
        except ValueError as e:
            raise MemoryRetrievalError(topic, f"Invalid response: {e}") from e

        if not isinstance(data, dict):
            raise MemoryRetrievalError(topic, "Response is not an object")

        try:
            memories = [
                MemoryRetrievalResult(
                    content=str(item["content"]),
                    tag=str(item.get("tag", "")),
                    relevance=float(item.get("relevance") or 0.0),
                    tag_label=str(item.get("tagLabel", "")),
                )
                for item in data.get("memories") or []
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MemoryRetrievalError(topic, f"Malformed memory entry: {e}") from e

        return MemoryRetrievalResponse(
            memories=memories,
            synthesized_questions=data.get("synthesizedQuestions"),
            duration_ms=int(data.get("durationMs") or 0),
        )
