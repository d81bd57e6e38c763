"""Recovery of a JSON object from loosely formatted LLM output."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from receipt_ai.services.ai.receipt_extract.contracts import ExpenseRecord

from .errors import SchemaViolation

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*\r?\n?(.*?)\r?\n?[ \t]*```", re.DOTALL)

REQUIRED_FIELDS = ("merchant", "date", "total", "category", "lineItems")


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def strip_code_fence(text: str) -> str | None:
    """Return the body of the first fenced code block, or ``None``."""
    match = _FENCE_RE.search(text)
    if not match:
        return None
    return match.group(1).strip()


def extract_json(text: str) -> dict[str, Any] | None:
    """Try to extract a JSON object from *text*.

    Strategy, each step only if the previous one did not parse:
    1. Text that starts with ``{`` is parsed as-is.
    2. A fenced code block (with or without language tag) is unwrapped.
    3. The widest ``{ ... }`` span (first ``{`` to last ``}``) is parsed,
       first inside an unparseable fence body, then across the whole text.
    Returns ``None`` if nothing works.
    """
    if not text or not text.strip():
        return None

    stripped = text.strip()

    if stripped.startswith("{"):
        parsed = _loads_object(stripped)
        if parsed is not None:
            return parsed

    candidates = [stripped]
    fenced = strip_code_fence(stripped)
    if fenced is not None:
        parsed = _loads_object(fenced)
        if parsed is not None:
            return parsed
        # the fence may hold unrelated code; the object can still sit outside it
        candidates.insert(0, fenced)

    for candidate in candidates:
        parsed = _widest_brace_span(candidate)
        if parsed is not None:
            return parsed
    return None


def _widest_brace_span(text: str) -> dict[str, Any] | None:
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return _loads_object(text[start : end + 1])
    return None


def sanitize(raw_text: str) -> dict[str, Any]:
    """Like ``extract_json`` but raises ``SchemaViolation`` when nothing parses."""
    parsed = extract_json(raw_text)
    if parsed is None:
        logger.warning("Could not recover JSON from model output: %s", (raw_text or "")[:200])
        raise SchemaViolation("Could not extract valid JSON from response", raw_text=raw_text)
    return parsed


def sanitize_expense(raw_text: str, categories: Sequence[str]) -> ExpenseRecord:
    """Parse *raw_text* into an ``ExpenseRecord`` constrained to *categories*."""
    parsed = sanitize(raw_text)

    missing = [name for name in REQUIRED_FIELDS if name not in parsed]
    if missing:
        raise SchemaViolation(
            f"Missing required fields in structured data: {', '.join(missing)}",
            raw_text=raw_text,
        )

    try:
        record = ExpenseRecord.model_validate(parsed, context={"categories": list(categories)})
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}" for err in exc.errors()
        )
        raise SchemaViolation(f"Invalid structured data: {problems}", raw_text=raw_text) from exc

    record.attach_raw_text(raw_text)
    return record
