"""Presentation layer."""

from contextweaver.presentation.replay import (
    ReplaySpeechSession,
    TranscriptError,
    load_transcript,
    replay,
)

__all__ = ["ReplaySpeechSession", "TranscriptError", "load_transcript", "replay"]
