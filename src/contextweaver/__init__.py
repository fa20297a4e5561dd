"""Real-time conversational context orchestration for voice coaching."""

from contextweaver.application.orchestrator import VirtualMessageOrchestrator

__all__ = ["VirtualMessageOrchestrator"]
