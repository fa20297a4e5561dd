"""LLM integration."""

from contextweaver.infrastructure.llm.client import LLMClient, extract_json_object
from contextweaver.infrastructure.llm.exceptions import (
    LLMAuthenticationError,
    LLMError,
    LLMRateLimitError,
    LLMResponseFormatError,
    LLMTimeoutError,
)
from contextweaver.infrastructure.llm.topic_classifier import LLMTopicClassifier

__all__ = [
    "LLMAuthenticationError",
    "LLMClient",
    "LLMError",
    "LLMRateLimitError",
    "LLMResponseFormatError",
    "LLMTimeoutError",
    "LLMTopicClassifier",
    "extract_json_object",
]
