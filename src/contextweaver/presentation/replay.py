"""Transcript replay through the orchestrator."""

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from contextweaver.application.orchestrator import VirtualMessageOrchestrator
from contextweaver.domain.services import ClientContentRole

logger = logging.getLogger(__name__)

STEP_KINDS = ("user", "ai", "turn_complete", "speaking", "wait")


class TranscriptError(Exception):
    """The transcript file is malformed."""


class ReplaySpeechSession:
    """Speech session that logs injected content instead of speaking it."""

    def __init__(self) -> None:
        self.is_speaking = False
        self.sent: list[tuple[str, ClientContentRole]] = []

    def send_client_content(
        self,
        content: str,
        force_new_turn: bool = True,
        role: ClientContentRole = ClientContentRole.SYSTEM,
    ) -> None:
        self.sent.append((content, role))
        logger.info(
            "Injected (%s, new_turn=%s):\n%s", role.value, force_new_turn, content
        )

    def inject_context_silently(self, content: str) -> bool:
        self.sent.append((content, ClientContentRole.USER))
        logger.info("Injected silently:\n%s", content)
        return True


def load_transcript(path: str | Path) -> list[tuple[str, Any]]:
    """Load transcript steps from a YAML file.

    The file holds a list of single-key mappings, for example::

        - speaking: false
        - user: I broke up with my girlfriend
        - wait: idle
        - turn_complete:

    Raises:
        FileNotFoundError: The file does not exist.
        TranscriptError: A step is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Transcript not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or []

    if not isinstance(data, list):
        raise TranscriptError("Transcript must be a list of steps")

    steps: list[tuple[str, Any]] = []
    for index, step in enumerate(data):
        if not isinstance(step, dict) or len(step) != 1:
            raise TranscriptError(f"Step {index} must be a single-key mapping")
        kind, value = next(iter(step.items()))
        if kind not in STEP_KINDS:
            raise TranscriptError(f"Step {index} has unknown kind '{kind}'")
        steps.append((kind, value))
    return steps


async def replay(
    orchestrator: VirtualMessageOrchestrator,
    session: ReplaySpeechSession,
    steps: Iterable[tuple[str, Any]],
) -> None:
    """Feed transcript steps to the orchestrator in order.

    "wait" sleeps for the given number of seconds, or waits for all
    background work when the value is "idle" or empty.
    """
    for kind, value in steps:
        if kind == "user":
            orchestrator.on_user_speech(str(value))
        elif kind == "ai":
            orchestrator.on_ai_speech(str(value))
        elif kind == "turn_complete":
            orchestrator.on_turn_complete()
        elif kind == "speaking":
            session.is_speaking = bool(value)
        elif kind == "wait":
            if value in (None, "idle"):
                await orchestrator.wait_until_idle()
            else:
                await asyncio.sleep(float(value))

    await orchestrator.wait_until_idle()
    logger.info(
        "Replay finished: %d message(s) injected, %d still queued",
        len(session.sent),
        orchestrator.get_queue_size(),
    )
