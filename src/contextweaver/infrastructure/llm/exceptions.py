"""Errors raised by the LLM classification backend.

All of them are ClassificationError, so the topic detector degrades to the
local emotion scan no matter which one occurred.
"""

from contextweaver.domain.exceptions import ClassificationError


class LLMError(ClassificationError):
    """The LLM call failed.

    Attributes:
        model: Model the request was sent to.
        retryable: Whether the same request may succeed later.
    """

    retryable = False

    def __init__(self, message: str, model: str = "") -> None:
        self.model = model
        super().__init__(f"{model}: {message}" if model else message)


class LLMRateLimitError(LLMError):
    retryable = True


class LLMTimeoutError(LLMError):
    retryable = True


class LLMAuthenticationError(LLMError):
    """Invalid or missing API key for the configured model."""


class LLMResponseFormatError(LLMError):
    """The answer held no JSON object."""
