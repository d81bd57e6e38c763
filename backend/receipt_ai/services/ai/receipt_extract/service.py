"""Receipt extraction service: the single entry point of the extraction core.

Every failure inside the core is converted here into
``AIResult(success=False, error=...)``; nothing raised by an adapter or
the fallback executor leaves this module.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Optional

import httpx

from receipt_ai.core.config import get_settings
from receipt_ai.core.image_processing import check_dimensions

from ..common import router as ai_router
from ..common.audit import log_extraction_run
from ..common.errors import ConfigurationError, MissingCredentials, ReceiptAIError, SchemaViolation
from ..common.fallback import run_with_fallback
from ..common.providers import get_provider
from .contracts import AIResult, ExtractionRequest

logger = logging.getLogger(__name__)


async def select_and_extract(
    provider_id: str,
    request: ExtractionRequest,
    credentials: Sequence[str],
    *,
    model: str = "",
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AIResult:
    """Run *request* through the adapter registered as *provider_id*.

    Credentials are tried strictly in order by the fallback executor.
    """
    t0 = time.monotonic()
    resolved_model = model
    raw_output: Optional[str] = None

    try:
        provider = get_provider(provider_id, model=model, transport=transport)
        resolved_model = provider.model
        if not credentials:
            raise MissingCredentials(provider_id)

        record = await run_with_fallback(
            tuple(credentials),
            lambda credential: provider.extract(request, credential),
            provider_name=provider.name,
        )
    except ConfigurationError as exc:
        logger.error("Receipt AI misconfigured: %s", exc)
        result = AIResult.fail(str(exc), kind="configuration")
    except SchemaViolation as exc:
        logger.warning("Receipt extraction with %s returned unusable output: %s", provider_id, exc)
        raw_output = exc.raw_text
        result = AIResult.fail(str(exc))
    except ReceiptAIError as exc:
        logger.warning("Receipt extraction failed with %s: %s", provider_id, exc)
        result = AIResult.fail(str(exc))
    except Exception as exc:
        logger.exception("Unexpected error during receipt extraction with %s", provider_id)
        result = AIResult.fail(str(exc))
    else:
        raw_output = record.raw_text
        result = AIResult.ok(record)

    log_extraction_run(
        provider=provider_id,
        model=resolved_model,
        duration_ms=(time.monotonic() - t0) * 1000,
        success=result.success,
        error=result.error,
        raw_output=raw_output,
        extra_meta={
            "credentials": len(credentials),
            "custom_categories": bool(request.category_hints),
        },
    )
    return result


async def process_receipt(
    image: str,
    categories: Sequence[str] = (),
    *,
    override_provider: str | None = None,
    override_model: str | None = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AIResult:
    """Normalize an inbound data-URI image and extract it with the resolved provider.

    Invalid images fail before any provider is resolved or called.
    """
    settings = get_settings()

    try:
        request = ExtractionRequest.from_data_uri(image, categories)
        check_dimensions(request.image_data, settings.ai_max_image_dimension)
    except ReceiptAIError as exc:
        logger.info("Rejected receipt image: %s", exc)
        return AIResult.fail(str(exc), kind="invalid_image")

    try:
        config = ai_router.resolve(
            override_provider=override_provider,
            override_model=override_model,
            transport=transport,
        )
    except ConfigurationError as exc:
        logger.error("Receipt AI misconfigured: %s", exc)
        return AIResult.fail(str(exc), kind="configuration")

    logger.info(
        "Processing receipt with %s (%s), %d categories, %d API keys",
        config.provider_name,
        config.model,
        len(request.category_hints),
        len(config.credentials),
    )

    return await select_and_extract(
        config.provider_name,
        request,
        config.credentials,
        model=config.model,
        transport=transport,
    )
