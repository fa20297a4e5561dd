"""Tests for VirtualMessageOrchestrator."""

import asyncio
from unittest.mock import Mock

import pytest

from contextweaver.application.orchestrator import VirtualMessageOrchestrator
from contextweaver.config.models import OrchestratorConfig, SessionConfig
from contextweaver.domain.entities import (
    ClassificationRequest,
    ClassificationResponse,
    ConversationPhase,
    Emotion,
    EmotionalState,
    MemoryRetrievalRequest,
    MemoryRetrievalResponse,
    MemoryRetrievalResult,
    TopicInfo,
    find_topic_rule,
)
from contextweaver.domain.exceptions import ClassificationError
from contextweaver.domain.services import ClientContentRole

BREAKUP_TEXT = "My girlfriend broke up with me yesterday"


class ScriptedClassifier:
    """Classifier answering from a script, optionally held back by a gate."""

    def __init__(self) -> None:
        self.responses: dict[str, ClassificationResponse | Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.requests: list[ClassificationRequest] = []

    def answer(
        self,
        text: str,
        topic_id: str | None,
        emotion: Emotion = Emotion.NEUTRAL,
        intensity: float = 0.0,
    ) -> None:
        rule = find_topic_rule(topic_id) if topic_id else None
        self.responses[text] = ClassificationResponse(
            topic=TopicInfo(id=topic_id, name=topic_id, detected_at=0) if topic_id else None,
            confidence=0.9,
            emotional_state=EmotionalState(primary=emotion, intensity=intensity),
            memory_questions=list(rule.memory_questions) if rule else [],
        )

    async def classify(self, request: ClassificationRequest) -> ClassificationResponse:
        self.requests.append(request)
        gate = self.gates.get(request.utterance)
        if gate is not None:
            await gate.wait()
        response = self.responses.get(request.utterance, ClassificationResponse())
        if isinstance(response, Exception):
            raise response
        return response


class ScriptedRetriever:
    """Retriever returning fixed memories, optionally held back by a gate."""

    def __init__(self) -> None:
        self.memories = [
            MemoryRetrievalResult(content="A long walk helped last time", tag="EFFECTIVE"),
            MemoryRetrievalResult(content="Likes calling her sister", tag="PREF"),
        ]
        self.gate: asyncio.Event | None = None
        self.requests: list[MemoryRetrievalRequest] = []

    async def retrieve(self, request: MemoryRetrievalRequest) -> MemoryRetrievalResponse:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        return MemoryRetrievalResponse(memories=list(self.memories), duration_ms=42)


@pytest.fixture
def speech_session() -> Mock:
    """Create mock SpeechSession."""
    session = Mock()
    session.is_speaking = False
    session.inject_context_silently.return_value = True
    return session


@pytest.fixture
def classifier() -> ScriptedClassifier:
    return ScriptedClassifier()


@pytest.fixture
def retriever() -> ScriptedRetriever:
    return ScriptedRetriever()


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig(
        task_description="write the quarterly report",
        planned_duration_seconds=1500,
        user_id="user-1",
    )


@pytest.fixture
def config() -> OrchestratorConfig:
    return OrchestratorConfig()


@pytest.fixture
def orchestrator(
    speech_session: Mock,
    classifier: ScriptedClassifier,
    retriever: ScriptedRetriever,
    session_config: SessionConfig,
    config: OrchestratorConfig,
    clock,
) -> VirtualMessageOrchestrator:
    return VirtualMessageOrchestrator(
        speech_session=speech_session,
        classifier=classifier,
        retriever=retriever,
        session=session_config,
        config=config,
        clock=clock,
    )


def injected_contents(speech_session: Mock) -> list[str]:
    return [call.args[0] for call in speech_session.inject_context_silently.call_args_list]


class TestOnUserSpeech:
    """Tests for on_user_speech."""

    async def test_returns_immediately(
        self, orchestrator: VirtualMessageOrchestrator, classifier: ScriptedClassifier
    ) -> None:
        """Detection runs in the background."""
        classifier.answer("let's plan the trip", "travel")

        assert orchestrator.on_user_speech("let's plan the trip") is None
        assert orchestrator.get_context().last_user_speech == "let's plan the trip"
        assert orchestrator.get_context().current_topic is None

        await orchestrator.wait_until_idle()

        current = orchestrator.get_context().current_topic
        assert current is not None
        assert current.id == "travel"

    async def test_sends_recent_context_to_classifier(
        self, orchestrator: VirtualMessageOrchestrator, classifier: ScriptedClassifier
    ) -> None:
        orchestrator.on_ai_speech("How is it going?")
        orchestrator.on_user_speech("not great honestly")
        await orchestrator.wait_until_idle()

        assert classifier.requests == [
            ClassificationRequest(
                utterance="not great honestly",
                recent_context="AI: How is it going?\nUser: not great honestly",
            )
        ]

    async def test_is_detecting_topic_while_classifying(
        self, orchestrator: VirtualMessageOrchestrator, classifier: ScriptedClassifier
    ) -> None:
        gate = asyncio.Event()
        classifier.gates["let's plan the trip"] = gate

        orchestrator.on_user_speech("let's plan the trip")
        await asyncio.sleep(0)
        assert orchestrator.is_detecting_topic is True

        gate.set()
        await orchestrator.wait_until_idle()
        assert orchestrator.is_detecting_topic is False


class TestEmotion:
    """Tests for the emotion path."""

    async def test_strong_emotion_queues_empathy(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        speech_session: Mock,
    ) -> None:
        """Empathy always waits for a turn boundary."""
        classifier.answer("everything is too much", None, Emotion.ANXIOUS, 0.7)

        orchestrator.on_user_speech("everything is too much")
        await orchestrator.wait_until_idle()

        speech_session.send_client_content.assert_not_called()
        assert orchestrator.get_queue_size() == 1
        assert orchestrator.get_context().phase == ConversationPhase.EMOTIONAL

        orchestrator.on_turn_complete()

        speech_session.send_client_content.assert_not_called()
        speech_session.inject_context_silently.assert_called_once()
        content = speech_session.inject_context_silently.call_args.args[0]
        assert content.startswith("[EMPATHY] emotion=anxious intensity=0.7")

    async def test_mild_emotion_is_recorded_only(
        self, orchestrator: VirtualMessageOrchestrator, classifier: ScriptedClassifier
    ) -> None:
        classifier.answer("a bit worried about it", None, Emotion.ANXIOUS, 0.5)

        orchestrator.on_user_speech("a bit worried about it")
        await orchestrator.wait_until_idle()

        assert orchestrator.get_queue_size() == 0
        assert orchestrator.get_context().emotional_state.primary == Emotion.ANXIOUS

    async def test_threshold_is_configurable(
        self,
        speech_session: Mock,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
        session_config: SessionConfig,
        clock,
    ) -> None:
        orchestrator = VirtualMessageOrchestrator(
            speech_session,
            classifier,
            retriever,
            session_config,
            OrchestratorConfig(emotion_response_threshold=0.4),
            clock=clock,
        )
        classifier.answer("a bit worried about it", None, Emotion.ANXIOUS, 0.5)

        orchestrator.on_user_speech("a bit worried about it")
        await orchestrator.wait_until_idle()

        assert orchestrator.get_queue_size() == 1

    async def test_classifier_failure_uses_local_emotion(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
    ) -> None:
        classifier.responses["I feel so sad and upset"] = ClassificationError("down")

        orchestrator.on_user_speech("I feel so sad and upset")
        await orchestrator.wait_until_idle()

        ctx = orchestrator.get_context()
        assert ctx.emotional_state.primary == Emotion.SAD
        assert ctx.current_topic is None
        assert orchestrator.get_queue_size() == 1
        assert retriever.requests == []


class TestBreakupScenario:
    """End-to-end: a sad topic change with memories available."""

    async def test_empathy_then_memories(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
        speech_session: Mock,
        clock,
    ) -> None:
        classifier.answer(BREAKUP_TEXT, "breakup", Emotion.SAD, 0.8)

        orchestrator.on_user_speech(BREAKUP_TEXT)
        await orchestrator.wait_until_idle()

        ctx = orchestrator.get_context()
        assert ctx.current_topic is not None
        assert ctx.current_topic.id == "breakup"
        assert ctx.emotional_state.primary == Emotion.SAD

        rule = find_topic_rule("breakup")
        assert rule is not None
        assert retriever.requests == [
            MemoryRetrievalRequest(
                user_id="user-1",
                current_topic="breakup",
                keywords=(),
                conversation_summary=None,
                seed_questions=rule.memory_questions,
                limit=5,
            )
        ]
        assert orchestrator.get_queue_size() == 2
        pending = orchestrator.pending_memory
        assert pending is not None
        assert pending.topic == "breakup"
        assert pending.count == 2

        orchestrator.on_turn_complete()
        clock.advance(15_000)
        orchestrator.on_turn_complete()

        first, second = injected_contents(speech_session)
        assert first.startswith("[EMPATHY] emotion=sad intensity=0.8")
        assert second.startswith('[CONTEXT] type=memory topic="breakup"')
        assert "emotion sad (0.8)" in second
        assert "[What has worked] A long walk helped last time" in second
        assert orchestrator.get_queue_size() == 0
        assert orchestrator.pending_memory is None

    async def test_cooldown_holds_memories(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        speech_session: Mock,
    ) -> None:
        classifier.answer(BREAKUP_TEXT, "breakup", Emotion.SAD, 0.8)
        orchestrator.on_user_speech(BREAKUP_TEXT)
        await orchestrator.wait_until_idle()

        orchestrator.on_turn_complete()
        orchestrator.on_turn_complete()

        assert len(injected_contents(speech_session)) == 1
        assert orchestrator.get_queue_size() == 1
        assert orchestrator.pending_memory is not None


class TestMemoryDelivery:
    """Tests for the interrupt-or-queue branch."""

    async def test_speaking_interrupts(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        speech_session: Mock,
    ) -> None:
        speech_session.is_speaking = True
        classifier.answer("thinking about my trip", "travel")

        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()

        speech_session.send_client_content.assert_called_once()
        call = speech_session.send_client_content.call_args
        assert call.args[0].startswith('[CONTEXT] type=memory topic="travel"')
        assert call.kwargs == {"force_new_turn": True, "role": ClientContentRole.SYSTEM}
        assert orchestrator.get_queue_size() == 0
        assert orchestrator.pending_memory is None
        speech_session.inject_context_silently.assert_not_called()

    async def test_not_speaking_queues(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        speech_session: Mock,
    ) -> None:
        classifier.answer("thinking about my trip", "travel")

        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()

        speech_session.send_client_content.assert_not_called()
        assert orchestrator.get_queue_size() == 1

    async def test_reads_speaking_state_when_memories_arrive(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
        speech_session: Mock,
    ) -> None:
        """The AI stopped talking while memories were being fetched."""
        speech_session.is_speaking = True
        retriever.gate = asyncio.Event()
        classifier.answer("thinking about my trip", "travel")

        orchestrator.on_user_speech("thinking about my trip")
        while not retriever.requests:
            await asyncio.sleep(0)
        speech_session.is_speaking = False
        retriever.gate.set()
        await orchestrator.wait_until_idle()

        speech_session.send_client_content.assert_not_called()
        assert orchestrator.get_queue_size() == 1

    async def test_failed_interrupt_falls_back_to_queue(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        speech_session: Mock,
    ) -> None:
        speech_session.is_speaking = True
        speech_session.send_client_content.side_effect = ConnectionError("closed")
        classifier.answer("thinking about my trip", "travel")

        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()

        assert orchestrator.get_queue_size() == 1
        assert orchestrator.pending_memory is not None

    async def test_no_memories_is_a_no_op(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
        speech_session: Mock,
    ) -> None:
        retriever.memories = []
        speech_session.is_speaking = True
        classifier.answer("thinking about my trip", "travel")

        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()

        assert len(retriever.requests) == 1
        speech_session.send_client_content.assert_not_called()
        assert orchestrator.get_queue_size() == 0
        assert orchestrator.pending_memory is None

    async def test_same_topic_retrieves_once(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
    ) -> None:
        classifier.answer("thinking about my trip", "travel")
        classifier.answer("the flights are expensive", "travel")

        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()
        orchestrator.on_user_speech("the flights are expensive")
        await orchestrator.wait_until_idle()

        assert len(retriever.requests) == 1

    async def test_summary_is_passed_to_retrieval(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
    ) -> None:
        orchestrator.update_summary("User wants a break")
        classifier.answer("thinking about my trip", "travel")

        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()

        assert retriever.requests[0].conversation_summary == "User wants a break"

    async def test_no_user_skips_retrieval(
        self,
        speech_session: Mock,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
        clock,
    ) -> None:
        orchestrator = VirtualMessageOrchestrator(
            speech_session, classifier, retriever, SessionConfig(user_id=None), clock=clock
        )
        classifier.answer("thinking about my trip", "travel")

        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()

        assert retriever.requests == []

    async def test_retrieval_can_be_disabled(
        self,
        speech_session: Mock,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
        session_config: SessionConfig,
        clock,
    ) -> None:
        orchestrator = VirtualMessageOrchestrator(
            speech_session,
            classifier,
            retriever,
            session_config,
            OrchestratorConfig(enable_memory_retrieval=False),
            clock=clock,
        )
        classifier.answer("thinking about my trip", "travel")

        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()

        assert retriever.requests == []

    async def test_manual_trigger(
        self,
        orchestrator: VirtualMessageOrchestrator,
        retriever: ScriptedRetriever,
    ) -> None:
        await orchestrator.trigger_memory_retrieval("cooking", ["pasta"])

        assert retriever.requests[0].current_topic == "cooking"
        assert retriever.requests[0].keywords == ("pasta",)
        assert retriever.requests[0].seed_questions == ()
        assert orchestrator.get_queue_size() == 1


class TestQueuedDelivery:
    """Tests for releasing queued content at turn boundaries."""

    async def test_queued_content_is_injected_silently(
        self, orchestrator: VirtualMessageOrchestrator, speech_session: Mock
    ) -> None:
        orchestrator.send_checkpoint()

        orchestrator.on_turn_complete()

        speech_session.inject_context_silently.assert_called_once()
        assert injected_contents(speech_session)[0].startswith("[CHECKPOINT]")
        speech_session.send_client_content.assert_not_called()
        assert orchestrator.get_queue_size() == 0

    async def test_rejected_injection_keeps_item(
        self,
        orchestrator: VirtualMessageOrchestrator,
        speech_session: Mock,
        clock,
    ) -> None:
        """Content the session did not accept is retried at the next boundary."""
        speech_session.inject_context_silently.return_value = False
        orchestrator.send_checkpoint()

        orchestrator.on_turn_complete()

        assert speech_session.inject_context_silently.call_count == 1
        assert orchestrator.get_queue_size() == 1

        speech_session.inject_context_silently.return_value = True
        clock.advance(1000)
        orchestrator.on_turn_complete()

        assert speech_session.inject_context_silently.call_count == 2
        assert orchestrator.get_queue_size() == 0

    async def test_rejected_memory_stays_pending(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        speech_session: Mock,
    ) -> None:
        speech_session.inject_context_silently.return_value = False
        classifier.answer("thinking about my trip", "travel")
        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()

        orchestrator.on_turn_complete()

        assert orchestrator.get_queue_size() == 1
        assert orchestrator.pending_memory is not None


class TestReset:
    """Tests for reset."""

    async def test_clears_everything(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
    ) -> None:
        classifier.answer(BREAKUP_TEXT, "breakup", Emotion.SAD, 0.8)
        orchestrator.on_user_speech(BREAKUP_TEXT)
        await orchestrator.wait_until_idle()

        orchestrator.reset()

        ctx = orchestrator.get_context()
        assert orchestrator.get_queue_size() == 0
        assert ctx.current_topic is None
        assert ctx.recent_messages == []
        assert ctx.emotional_state.is_neutral
        assert orchestrator.pending_memory is None

    async def test_late_detection_is_ignored(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
    ) -> None:
        gate = asyncio.Event()
        classifier.gates[BREAKUP_TEXT] = gate
        classifier.answer(BREAKUP_TEXT, "breakup", Emotion.SAD, 0.8)

        orchestrator.on_user_speech(BREAKUP_TEXT)
        await asyncio.sleep(0)
        orchestrator.reset()
        gate.set()
        await orchestrator.wait_until_idle()

        assert orchestrator.get_queue_size() == 0
        assert orchestrator.get_context().current_topic is None

    async def test_late_memories_are_ignored(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
        speech_session: Mock,
    ) -> None:
        retriever.gate = asyncio.Event()
        speech_session.is_speaking = True
        classifier.answer("thinking about my trip", "travel")

        orchestrator.on_user_speech("thinking about my trip")
        while not retriever.requests:
            await asyncio.sleep(0)
        orchestrator.reset()
        retriever.gate.set()
        await orchestrator.wait_until_idle()

        speech_session.send_client_content.assert_not_called()
        assert orchestrator.get_queue_size() == 0
        assert orchestrator.pending_memory is None

    async def test_topic_counts_as_new_after_reset(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
    ) -> None:
        classifier.answer("thinking about my trip", "travel")
        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()

        orchestrator.reset()
        orchestrator.on_user_speech("thinking about my trip")
        await orchestrator.wait_until_idle()

        assert len(retriever.requests) == 2


class TestStaleResults:
    """Tests for out-of-order detection results."""

    async def _run_out_of_order(
        self, orchestrator: VirtualMessageOrchestrator, classifier: ScriptedClassifier
    ) -> None:
        gate = asyncio.Event()
        classifier.gates["first about work"] = gate
        classifier.answer("first about work", "work")
        classifier.answer("then about travel", "travel")

        orchestrator.on_user_speech("first about work")
        orchestrator.on_user_speech("then about travel")
        while not orchestrator.get_context().current_topic:
            await asyncio.sleep(0)
        gate.set()
        await orchestrator.wait_until_idle()

    async def test_last_result_wins_by_default(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
    ) -> None:
        await self._run_out_of_order(orchestrator, classifier)

        current = orchestrator.get_context().current_topic
        assert current is not None
        assert current.id == "work"

    async def test_stale_result_discarded_when_enabled(
        self,
        speech_session: Mock,
        classifier: ScriptedClassifier,
        retriever: ScriptedRetriever,
        session_config: SessionConfig,
        clock,
    ) -> None:
        orchestrator = VirtualMessageOrchestrator(
            speech_session,
            classifier,
            retriever,
            session_config,
            OrchestratorConfig(discard_stale_results=True),
            clock=clock,
        )

        await self._run_out_of_order(orchestrator, classifier)

        current = orchestrator.get_context().current_topic
        assert current is not None
        assert current.id == "travel"


class TestDirectives:
    """Tests for action-driven directives."""

    async def test_action_is_queued(
        self, orchestrator: VirtualMessageOrchestrator, speech_session: Mock
    ) -> None:
        item_id = orchestrator.send_message_for_action("listen")

        assert item_id
        assert orchestrator.get_queue_size() == 1

        orchestrator.on_turn_complete()
        assert injected_contents(speech_session)[0].startswith("[LISTEN_FIRST]")

    @pytest.mark.parametrize(
        ("action", "tag"),
        [
            ("accept_stop", "[ACCEPT_STOP]"),
            ("tiny_step", "[PUSH_TINY_STEP]"),
            ("tone_shift", "[TONE_SHIFT]"),
        ],
    )
    async def test_action_types(
        self,
        orchestrator: VirtualMessageOrchestrator,
        speech_session: Mock,
        action: str,
        tag: str,
    ) -> None:
        orchestrator.send_message_for_action(action)
        orchestrator.on_turn_complete()

        assert injected_contents(speech_session)[0].startswith(tag)

    @pytest.mark.parametrize("action", ["empathy", "dance"])
    async def test_actions_without_directive(
        self, orchestrator: VirtualMessageOrchestrator, action: str
    ) -> None:
        assert orchestrator.send_message_for_action(action) is None
        assert orchestrator.get_queue_size() == 0

    async def test_checkpoint_waits_behind_empathy(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        speech_session: Mock,
    ) -> None:
        classifier.answer("everything is too much", None, Emotion.ANXIOUS, 0.7)
        orchestrator.send_checkpoint()
        orchestrator.on_user_speech("everything is too much")
        await orchestrator.wait_until_idle()

        orchestrator.on_turn_complete()

        assert injected_contents(speech_session)[0].startswith("[EMPATHY]")
        assert orchestrator.get_queue_size() == 1

    async def test_gentle_redirect(
        self, orchestrator: VirtualMessageOrchestrator, speech_session: Mock, clock
    ) -> None:
        clock.advance(5 * 60_000)
        orchestrator.send_gentle_redirect()
        orchestrator.on_turn_complete()

        assert injected_contents(speech_session)[0].startswith("[GENTLE_REDIRECT] elapsed=5m")


class TestDisabled:
    """Tests for a disabled orchestrator."""

    async def test_entry_points_do_nothing(
        self,
        orchestrator: VirtualMessageOrchestrator,
        classifier: ScriptedClassifier,
        speech_session: Mock,
    ) -> None:
        orchestrator.enabled = False

        orchestrator.on_user_speech("thinking about my trip")
        orchestrator.on_ai_speech("sounds fun")
        orchestrator.on_turn_complete()
        await orchestrator.wait_until_idle()

        assert orchestrator.send_message_for_action("listen") is None
        assert orchestrator.send_checkpoint() is None
        assert classifier.requests == []
        assert orchestrator.get_context().recent_messages == []
        speech_session.send_client_content.assert_not_called()
        speech_session.inject_context_silently.assert_not_called()
