"""Provider registry: maps a provider id to its receipt adapter."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from receipt_ai.core.config import get_settings

from ..errors import UnknownProvider
from .base import ReceiptProvider
from .gemini import GeminiProvider
from .groq import GroqProvider
from .mock import MockProvider
from .nvidia import NvidiaProvider
from .openai import OpenAIProvider

logger = logging.getLogger(__name__)

__all__ = [
    "PROVIDERS",
    "ReceiptProvider",
    "GeminiProvider",
    "GroqProvider",
    "MockProvider",
    "NvidiaProvider",
    "OpenAIProvider",
    "get_provider",
]

PROVIDERS: dict[str, type] = {
    GeminiProvider.name: GeminiProvider,
    OpenAIProvider.name: OpenAIProvider,
    NvidiaProvider.name: NvidiaProvider,
    GroqProvider.name: GroqProvider,
    MockProvider.name: MockProvider,
}


def get_provider(
    provider_name: str,
    *,
    model: str = "",
    timeout_seconds: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ReceiptProvider:
    """Return an adapter instance for *provider_name*.

    Raises ``UnknownProvider`` if the id is not registered or not in
    ``AI_ALLOWED_PROVIDERS``.
    """
    settings = get_settings()
    name = (provider_name or "").lower().strip()

    if name not in PROVIDERS:
        logger.error("Unknown provider %r", name)
        raise UnknownProvider(name)

    if name not in settings.ai_allowed_providers:
        logger.error("Provider %r not in allowlist %r", name, settings.ai_allowed_providers)
        raise UnknownProvider(name)

    provider_cls = PROVIDERS[name]
    return provider_cls(
        model=model,
        timeout_seconds=timeout_seconds if timeout_seconds is not None else settings.ai_timeout_seconds,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        transport=transport,
    )
