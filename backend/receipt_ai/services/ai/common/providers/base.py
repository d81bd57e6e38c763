"""Capability contract for receipt providers plus shared HTTP helpers."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from receipt_ai.services.ai.receipt_extract.contracts import ExpenseRecord, ExtractionRequest

from ..errors import ProviderError, ProviderTransportError, RateLimited

logger = logging.getLogger(__name__)

_BODY_PREVIEW_CHARS = 500


@runtime_checkable
class ReceiptProvider(Protocol):
    """Contract every backend adapter implements.

    ``extract`` performs exactly one network call with *credential* and
    returns a validated record, or raises a ``ReceiptAIError`` subclass.
    """

    name: str
    model: str

    async def extract(self, request: ExtractionRequest, credential: str) -> ExpenseRecord:
        ...


async def post_json(
    url: str,
    *,
    provider: str,
    display_name: str,
    headers: dict[str, str],
    payload: dict[str, Any],
    timeout_seconds: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict[str, Any]:
    """POST *payload* and return the decoded JSON body.

    Transport failures, timeouts and non-2xx responses are raised as
    ``ProviderTransportError`` (``RateLimited`` for HTTP 429) carrying the
    status and body so the fallback executor can classify them.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
            resp = await client.post(url, headers=headers, json=payload)
    except httpx.TimeoutException as exc:
        raise ProviderTransportError(
            f"{display_name} API request timed out after {timeout_seconds}s",
            provider=provider,
        ) from exc
    except httpx.HTTPError as exc:
        raise ProviderTransportError(
            f"{display_name} API request failed: {exc}",
            provider=provider,
        ) from exc

    if resp.is_error:
        body = resp.text[:_BODY_PREVIEW_CHARS]
        error_cls = RateLimited if resp.status_code == 429 else ProviderTransportError
        raise error_cls(
            f"{display_name} API error: {resp.status_code} - {body}",
            provider=provider,
            status_code=resp.status_code,
            body=body,
        )

    try:
        data = resp.json()
    except ValueError as exc:
        raise ProviderTransportError(
            f"{display_name} API returned a non-JSON body",
            provider=provider,
            status_code=resp.status_code,
            body=resp.text[:_BODY_PREVIEW_CHARS],
        ) from exc

    if not isinstance(data, dict):
        raise ProviderError(f"Unexpected {display_name} API response shape", provider=provider)
    return data


def chat_completion_text(data: dict[str, Any], *, provider: str, display_name: str) -> str:
    """Message text of the first choice of an OpenAI-style chat completion."""
    choices = data.get("choices")
    first = choices[0] if isinstance(choices, list) and choices else None
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None

    if isinstance(content, list):
        content = "".join(part.get("text", "") for part in content if isinstance(part, dict))

    if not isinstance(content, str) or not content:
        raise ProviderError(f"No response from {display_name} API", provider=provider)

    usage = data.get("usage") or {}
    logger.debug(
        "%s usage: prompt_tokens=%s completion_tokens=%s",
        display_name,
        usage.get("prompt_tokens", 0),
        usage.get("completion_tokens", 0),
    )
    return content
