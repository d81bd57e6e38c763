"""AI Router: resolves provider, model and credentials with override > ENV > default chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from receipt_ai.core.config import get_settings

from .errors import MissingCredentials
from .providers import get_provider

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "gemini"


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved provider + credential set after the override chain."""

    provider_name: str
    model: str
    credentials: tuple[str, ...]
    timeout_seconds: float


def resolve(
    *,
    override_provider: str | None = None,
    override_model: str | None = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ResolvedConfig:
    """Resolve the provider for one extraction.

    Resolution chain (first non-empty wins):
      1. ``override_provider`` from the request body.
      2. ``AI_PROVIDER``.
      3. ``"gemini"``.

    The model is ``override_model`` (only when ``enable_ai_overrides=True``),
    then ``AI_MODEL``, then the adapter default.

    Raises ``UnknownProvider`` or ``MissingCredentials``; both are
    configuration errors raised before any adapter is invoked.
    """
    settings = get_settings()

    provider_name = (override_provider or "").lower().strip()
    if not provider_name:
        provider_name = settings.ai_provider or DEFAULT_PROVIDER

    model = ""
    if override_model and override_model.strip():
        if settings.enable_ai_overrides:
            model = override_model.strip()
        else:
            logger.warning("Model override %r ignored; ENABLE_AI_OVERRIDES is off", override_model)

    if not model:
        model = settings.ai_model.strip()

    provider = get_provider(
        provider_name,
        model=model,
        timeout_seconds=settings.ai_timeout_seconds,
        transport=transport,
    )

    credentials = settings.credentials_for(provider_name)
    if not credentials:
        logger.error("No API key configured for provider %r", provider_name)
        raise MissingCredentials(provider_name)

    return ResolvedConfig(
        provider_name=provider_name,
        model=provider.model,
        credentials=credentials,
        timeout_seconds=settings.ai_timeout_seconds,
    )
