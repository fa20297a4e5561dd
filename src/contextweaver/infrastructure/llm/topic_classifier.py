"""LLM-based topic classification over the built-in topic catalog."""

import logging
from typing import Any

from contextweaver.domain.entities import (
    TOPIC_RULES,
    ClassificationRequest,
    ClassificationResponse,
    Emotion,
    EmotionalState,
    TopicInfo,
    TopicRule,
    find_topic_rule,
)
from contextweaver.domain.time_utils import Clock, now_millis
from contextweaver.infrastructure.llm.client import LLMClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You classify what a user is talking about in a voice coaching session.

Known topics (id: example keywords):
{topic_list}

Pick the single best matching topic id, or null when none fits.
Also judge the user's emotion: one of neutral, happy, sad, anxious, frustrated, tired.

Answer in JSON only, with no other text:
{{"topic_id": "<id or null>", "confidence": 0.0-1.0, "emotion": "<emotion>", "intensity": 0.0-1.0}}"""


def _format_topic_list(rules: tuple[TopicRule, ...]) -> str:
    return "\n".join(f"- {rule.id}: {', '.join(rule.keywords[:5])}" for rule in rules)


def _clamp(value: object, default: float) -> float:
    try:
        return max(0.0, min(1.0, float(value)))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


class LLMTopicClassifier:
    """Classifies utterances into catalog topics using an LLM."""

    def __init__(self, client: LLMClient, clock: Clock = now_millis) -> None:
        """Initialize the classifier.

        Args:
            client: LLM client.
            clock: Epoch-millisecond clock.
        """
        self._client = client
        self._clock = clock
        self._system_prompt = SYSTEM_PROMPT_TEMPLATE.format(
            topic_list=_format_topic_list(TOPIC_RULES)
        )

    async def classify(self, request: ClassificationRequest) -> ClassificationResponse:
        """Classify an utterance.

        Raises:
            LLMError: The LLM failed or its answer held no JSON object. It is
                a ClassificationError.
        """
        user_content = f"Utterance:\n{request.utterance}"
        if request.recent_context:
            user_content = f"Recent conversation:\n{request.recent_context}\n\n{user_content}"

        data = await self._client.complete_json(self._system_prompt, user_content)
        response = self._parse_response(data)
        logger.debug(
            "LLM classified %r as topic=%s",
            request.utterance[:50],
            response.topic.id if response.topic else None,
        )
        return response

    def _parse_response(self, data: dict[str, Any]) -> ClassificationResponse:
        """Map the decoded answer onto the catalog.

        Unknown topic ids mean no topic; malformed numbers are clamped or
        defaulted rather than rejected.
        """
        now = self._clock()
        rule = find_topic_rule(str(data.get("topic_id") or ""))
        confidence = _clamp(data.get("confidence"), 0.0)

        try:
            emotion = Emotion(str(data.get("emotion", "")).lower())
            intensity = _clamp(data.get("intensity"), 0.5)
        except ValueError:
            emotion = rule.emotion if rule else Emotion.NEUTRAL
            intensity = rule.emotion_intensity if rule else 0.0

        emotional_state = EmotionalState(primary=emotion, intensity=intensity, detected_at=now)

        if rule is None:
            return ClassificationResponse(
                topic=None, confidence=confidence, emotional_state=emotional_state
            )

        return ClassificationResponse(
            topic=TopicInfo(id=rule.id, name=rule.name, detected_at=now),
            confidence=confidence,
            emotional_state=emotional_state,
            memory_questions=list(rule.memory_questions),
        )
