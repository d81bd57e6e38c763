"""AI audit: one structured log entry per receipt extraction run."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from receipt_ai.core.config import get_settings

logger = logging.getLogger(__name__)

AUDIT_ACTION = "AI_RECEIPT_EXTRACT"


def log_extraction_run(
    *,
    provider: str,
    model: str,
    duration_ms: float,
    success: bool,
    error: str | None = None,
    raw_output: str | None = None,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Emit an ``AI_RECEIPT_EXTRACT`` audit line and return its metadata.

    The raw model output is always hashed; it is only included verbatim
    when ``AI_DEBUG_STORE_RAW=true``. Failed runs carry the raw text too
    when the backend answered but the answer did not validate.
    """
    settings = get_settings()

    metadata: dict[str, Any] = {
        "action": AUDIT_ACTION,
        "provider": provider,
        "model": model or "default",
        "duration_ms": round(duration_ms, 2),
        "success": success,
    }
    if error:
        metadata["error"] = error

    if raw_output is not None:
        metadata["output_hash"] = hashlib.sha256(raw_output.encode()).hexdigest()
        if settings.ai_debug_store_raw:
            metadata["output_raw"] = raw_output

    if extra_meta:
        metadata.update(extra_meta)

    logger.info("%s %s", AUDIT_ACTION, metadata, extra={"audit": metadata})
    return metadata
