"""Periodic progress check-ins."""

import asyncio
import logging

from contextweaver.application.orchestrator import VirtualMessageOrchestrator

logger = logging.getLogger(__name__)


class CheckpointScheduler:
    """Queues a CHECKPOINT directive at a fixed interval.

    Runs as an asyncio task until stop() is called. The directive is only
    queued here; it goes out at the next turn boundary like any other.
    """

    def __init__(
        self,
        orchestrator: VirtualMessageOrchestrator,
        interval_ms: int,
    ) -> None:
        """Initialize CheckpointScheduler.

        Args:
            orchestrator: Orchestrator that owns the message queue.
            interval_ms: Time between check-ins; 0 or less disables them.
        """
        self._orchestrator = orchestrator
        self._interval_ms = interval_ms
        # set() means stopped, clear() means running. Initially stopped.
        self._stop_event = asyncio.Event()
        self._stop_event.set()

    async def start(self) -> None:
        """Run the check-in loop until stopped.

        The first check-in is queued one interval after start.
        """
        if self._interval_ms <= 0:
            logger.info("Checkpoint interval is 0, scheduler disabled")
            return
        if not self._stop_event.is_set():
            logger.warning("CheckpointScheduler.start() called while already running; ignoring.")
            return
        self._stop_event.clear()

        logger.info("Starting checkpoint scheduler (every %dms)", self._interval_ms)

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._interval_ms / 1000
                )
                break
            except asyncio.TimeoutError:
                pass

            try:
                item_id = self._orchestrator.send_checkpoint()
                logger.debug("Checkpoint queued: %s", item_id)
            except Exception:
                logger.exception("Error queueing checkpoint")

        logger.info("Checkpoint scheduler stopped")

    async def stop(self) -> None:
        """Signal the loop to stop."""
        logger.info("Stopping checkpoint scheduler")
        self._stop_event.set()

    @property
    def is_running(self) -> bool:
        return not self._stop_event.is_set()
