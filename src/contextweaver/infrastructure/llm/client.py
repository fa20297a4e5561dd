"""JSON-answering LLM client on top of LiteLLM."""

import json
import logging
import re
import time
from typing import Any

import litellm
from litellm.exceptions import AuthenticationError, RateLimitError, Timeout

from contextweaver.config import LLMConfig
from contextweaver.infrastructure.llm.exceptions import (
    LLMAuthenticationError,
    LLMError,
    LLMRateLimitError,
    LLMResponseFormatError,
    LLMTimeoutError,
)

logger = logging.getLogger(__name__)

# First flat JSON object in a chatty answer.
JSON_OBJECT_PATTERN = re.compile(r"\{[^{}]*\}")


def extract_json_object(text: str) -> dict[str, Any]:
    """Decode the JSON object in a model answer.

    Models in JSON mode answer with the bare object; others tend to wrap it
    in prose, so the first flat object found in the text is used.

    Raises:
        ValueError: No JSON object could be decoded.
    """
    match = JSON_OBJECT_PATTERN.search(text)
    data = json.loads(match.group() if match else text)
    if not isinstance(data, dict):
        raise ValueError("answer is not a JSON object")
    return data


class LLMClient:
    """Asks a LiteLLM model a question and decodes its JSON answer.

    Classification runs on every user utterance, so calls are short,
    deterministic by default and request the provider's JSON mode when
    `json_mode` is configured.
    """

    def __init__(self, config: LLMConfig) -> None:
        """Initialize the client.

        Args:
            config: Model, sampling and JSON mode settings.
        """
        self._config = config

    @property
    def model(self) -> str:
        return self._config.model

    async def complete_json(
        self,
        system_prompt: str,
        user_content: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Send one system + user exchange and decode the JSON answer.

        Args:
            system_prompt: Instructions including the expected JSON shape.
            user_content: The text to judge.
            **kwargs: Extra acompletion parameters (override config).

        Returns:
            The decoded JSON object.

        Raises:
            LLMAuthenticationError: Invalid API key.
            LLMRateLimitError: Rate limit exceeded.
            LLMTimeoutError: The provider did not answer in time.
            LLMResponseFormatError: The answer held no JSON object.
            LLMError: Other API errors.
        """
        params: dict[str, Any] = {
            "model": self._config.model,
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
        }
        if self._config.json_mode:
            params["response_format"] = {"type": "json_object"}
            params["drop_params"] = True
        params.update(kwargs)

        model = params["model"]
        started = time.monotonic()
        try:
            response = await litellm.acompletion(**params)
        except AuthenticationError as e:
            logger.error("LLM authentication error: %s", e)
            raise LLMAuthenticationError(str(e), model) from e
        except RateLimitError as e:
            logger.warning("LLM rate limit exceeded: %s", e)
            raise LLMRateLimitError(str(e), model) from e
        except Timeout as e:
            logger.warning("LLM request timed out: %s", e)
            raise LLMTimeoutError(str(e), model) from e
        except Exception as e:
            logger.error("LLM error: %s", e)
            raise LLMError(str(e), model) from e

        content = response.choices[0].message.content or ""
        logger.debug(
            "LLM answer from %s in %dms: %s",
            model,
            int((time.monotonic() - started) * 1000),
            content,
        )

        try:
            return extract_json_object(content)
        except ValueError as e:
            logger.warning("Unusable LLM answer: %s", e)
            raise LLMResponseFormatError(f"no JSON object in answer: {e}", model) from e
