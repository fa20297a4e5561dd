"""Application services."""

from contextweaver.application.services.checkpoint_scheduler import CheckpointScheduler

__all__ = ["CheckpointScheduler"]
