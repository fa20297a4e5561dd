"""HTTP adapter for the topic classification service."""

import logging
from typing import Any

import httpx

from contextweaver.config.models import ServiceConfig
from contextweaver.domain.entities import (
    ClassificationRequest,
    ClassificationResponse,
    Emotion,
    EmotionalState,
    TopicInfo,
)
from contextweaver.domain.exceptions import ClassificationError
from contextweaver.domain.time_utils import Clock, now_millis
from contextweaver.infrastructure.http.base import post_json

logger = logging.getLogger(__name__)


class HttpTopicClassifier:
    """Calls the remote detect-topic endpoint.

    Wire format:
        request:  {"text": str, "recentContext": str}
        response: {"success": bool, "confidence": float, "error"?: str,
                   "topic": {"id", "name", "emotion", "emotionIntensity",
                             "memoryQuestions"} | null}
    """

    def __init__(
        self,
        config: ServiceConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = now_millis,
    ) -> None:
        """Initialize the adapter.

        Args:
            config: Service endpoint settings.
            transport: Optional httpx transport (used by tests).
            clock: Epoch-millisecond clock.
        """
        self._config = config
        self._transport = transport
        self._clock = clock

    async def classify(self, request: ClassificationRequest) -> ClassificationResponse:
        """Classify an utterance.

        Raises:
            ClassificationError: The request failed or the service reported
                an error.
        """
        payload = {"text": request.utterance, "recentContext": request.recent_context}
        try:
            data = await post_json(self._config, "/detect-topic", payload, self._transport)
        except httpx.TimeoutException as e:
            logger.warning("Topic classification timeout")
            raise ClassificationError("Topic classification timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning("Topic classification HTTP error: %s", e)
            raise ClassificationError(f"Topic classification HTTP error: {e}") from e
        except httpx.RequestError as e:
            logger.warning("Topic classification request error: %s", e)
            raise ClassificationError(f"Topic classification request error: {e}") from e
        except ValueError as e:
            raise ClassificationError(f"Invalid classification response: {e}") from e

        if not isinstance(data, dict) or not data.get("success", False):
            error = data.get("error") if isinstance(data, dict) else None
            raise ClassificationError(error or "Topic classification failed")

        return self._parse_response(data)

    def _parse_response(self, data: dict[str, Any]) -> ClassificationResponse:
        now = self._clock()
        confidence = float(data.get("confidence") or 0.0)
        topic_data = data.get("topic")
        if not topic_data:
            return ClassificationResponse(topic=None, confidence=confidence)

        try:
            emotion = Emotion(topic_data.get("emotion", "neutral"))
        except ValueError:
            logger.debug("Unknown emotion label: %s", topic_data.get("emotion"))
            emotion = Emotion.NEUTRAL

        try:
            topic = TopicInfo(
                id=str(topic_data["id"]),
                name=str(topic_data.get("name") or topic_data["id"]),
                detected_at=now,
            )
        except KeyError as e:
            raise ClassificationError("Classification topic has no id") from e

        return ClassificationResponse(
            topic=topic,
            confidence=confidence,
            emotional_state=EmotionalState(
                primary=emotion,
                intensity=float(topic_data.get("emotionIntensity") or 0.0),
                detected_at=now,
            ),
            memory_questions=list(topic_data.get("memoryQuestions") or []),
        )
