"""Topic and emotion detection."""

import logging

from contextweaver.domain.entities import (
    ClassificationRequest,
    ClassificationResponse,
    EmotionalState,
    TopicDetectionResult,
    TopicInfo,
)
from contextweaver.domain.services.emotion_lexicon import detect_emotion
from contextweaver.domain.services.protocols import TopicClassifier
from contextweaver.domain.time_utils import Clock, now_millis

logger = logging.getLogger(__name__)

MIN_UTTERANCE_LENGTH = 3
CACHE_TTL_MS = 30_000
CACHE_MAX_ENTRIES = 50


class TopicDetector:
    """Maps one user utterance to a topic and an emotional state.

    Topic detection is delegated to a TopicClassifier. The only state kept
    besides a short-lived response cache is the previously detected topic,
    used to decide whether the topic changed.

    When the classifier fails, emotion falls back to a lexical scan; a topic
    is never guessed locally.
    """

    def __init__(self, classifier: TopicClassifier, clock: Clock = now_millis) -> None:
        """Initialize the detector.

        Args:
            classifier: Topic classification service.
            clock: Epoch-millisecond clock.
        """
        self._classifier = classifier
        self._clock = clock
        self._current_topic: TopicInfo | None = None
        self._cache: dict[tuple[str, str], tuple[ClassificationResponse, int]] = {}
        self._in_flight = 0
        self._generation = 0

    @property
    def is_detecting(self) -> bool:
        """Whether a classification call is in progress."""
        return self._in_flight > 0

    @property
    def current_topic(self) -> TopicInfo | None:
        """The most recently detected topic."""
        return self._current_topic

    def detect_emotion_locally(self, text: str) -> EmotionalState:
        """Best-effort emotion detection without the classifier."""
        return detect_emotion(text, self._clock())

    async def detect(self, text: str, recent_context: str = "") -> TopicDetectionResult:
        """Detect topic and emotion in an utterance.

        Never raises: classifier failures degrade to a no-topic result with
        a lexically detected emotion.

        Args:
            text: User utterance.
            recent_context: Recent conversation lines.

        Returns:
            Detection result.
        """
        if len(text.strip()) < MIN_UTTERANCE_LENGTH:
            return TopicDetectionResult(
                topic=None,
                emotional_state=EmotionalState(detected_at=self._clock()),
            )

        generation = self._generation
        self._in_flight += 1
        try:
            response = await self._classify(text, recent_context)
        finally:
            self._in_flight -= 1

        if response is None:
            response = ClassificationResponse()
        topic = response.topic
        confidence = response.confidence
        memory_questions = tuple(response.memory_questions)

        # A topic match carries its own emotion, even a neutral one.
        reported = response.emotional_state
        if reported is not None and (topic is not None or not reported.is_neutral):
            emotional_state = reported
        else:
            emotional_state = self.detect_emotion_locally(text)
            if topic is None and not emotional_state.is_neutral:
                logger.info(
                    "No topic detected, local emotion: %s", emotional_state.primary.value
                )

        is_topic_changed = topic is not None and (
            self._current_topic is None or self._current_topic.id != topic.id
        )
        if topic is not None and generation == self._generation:
            self._current_topic = topic
            logger.info("Detected topic: %s (%.1f%%)", topic.name, confidence * 100)

        return TopicDetectionResult(
            topic=topic,
            emotional_state=emotional_state,
            is_topic_changed=is_topic_changed,
            matched_keywords=topic.matched_keywords if topic else (),
            confidence=confidence,
            memory_questions=memory_questions,
        )

    async def _classify(self, text: str, recent_context: str) -> ClassificationResponse | None:
        now = self._clock()
        # The same words can mean something else after a different exchange.
        key = (text, recent_context)
        cached = self._cache.get(key)
        if cached is not None and now - cached[1] < CACHE_TTL_MS:
            logger.debug("Using cached classification for: %s", text[:50])
            return cached[0]

        try:
            response = await self._classifier.classify(
                ClassificationRequest(utterance=text, recent_context=recent_context)
            )
        except Exception as e:
            logger.warning("Topic classification failed, using local emotion: %s", e)
            return None

        self._cache[key] = (response, now)
        if len(self._cache) > CACHE_MAX_ENTRIES:
            oldest = sorted(self._cache.items(), key=lambda entry: entry[1][1])
            for stale_key, _ in oldest[: len(self._cache) - CACHE_MAX_ENTRIES]:
                del self._cache[stale_key]
        return response

    def reset(self) -> None:
        """Forget the previous topic and the response cache.

        Detections still in flight will not restore the old topic.
        """
        self._generation += 1
        self._current_topic = None
        self._cache.clear()
