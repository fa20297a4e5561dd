"""Shared helpers for JSON-over-HTTP service adapters."""

import logging
from typing import Any

import httpx

from contextweaver.config.models import ServiceConfig

logger = logging.getLogger(__name__)


async def post_json(
    config: ServiceConfig,
    path: str,
    payload: dict[str, Any],
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """POST a JSON payload to a service endpoint and decode the JSON reply.

    Args:
        config: Service endpoint settings.
        path: Path appended to the endpoint, e.g. "/detect-topic".
        payload: Request body.
        transport: Optional transport override.

    Returns:
        Decoded JSON response body.

    Raises:
        httpx.TimeoutException: The request timed out.
        httpx.HTTPStatusError: The service answered with an error status.
        httpx.RequestError: The request could not be sent.
        ValueError: The response body is not valid JSON.
    """
    headers = {"Content-Type": "application/json"}
    if config.api_key:
        headers["Authorization"] = f"Bearer {config.api_key}"

    url = f"{config.endpoint}{path}"
    logger.debug("POST %s", url)
    async with httpx.AsyncClient(transport=transport) as client:
        response = await client.post(
            url,
            json=payload,
            headers=headers,
            timeout=config.timeout_seconds,
        )
        response.raise_for_status()

    return response.json()
