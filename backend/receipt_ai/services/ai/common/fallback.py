"""Credential fallback executor.

One logical extraction is tried against an ordered credential set, one
credential at a time. Only throttling failures move on to the next
credential; anything else aborts immediately.

The policy is split in three pieces so each can be tested without a network:

* ``is_rate_limit_error``: heuristic text classification of a failure.
* ``next_step``: pure transition from an ``AttemptOutcome`` to a ``Step``.
* ``run_with_fallback``: drives the attempts and applies the transitions.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from receipt_ai.core.config import get_settings

from .errors import AllCredentialsExhausted, ConfigurationError, InvalidImageFormat, SchemaViolation

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    FATAL = "fatal"


class Step(str, Enum):
    SUCCESS = "success"
    RETRY_NEXT = "retry_next"
    ABORT = "abort"


@dataclass(frozen=True)
class AttemptOutcome(Generic[T]):
    """Tagged result of a single credential attempt."""

    kind: OutcomeKind
    value: Optional[T] = None
    cause: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T) -> AttemptOutcome[T]:
        return cls(kind=OutcomeKind.SUCCESS, value=value)

    @classmethod
    def failure(cls, cause: BaseException, patterns: Sequence[str] | None = None) -> AttemptOutcome[T]:
        kind = OutcomeKind.RATE_LIMITED if is_rate_limit_error(cause, patterns) else OutcomeKind.FATAL
        return cls(kind=kind, cause=cause)


def is_rate_limit_error(error: BaseException, patterns: Sequence[str] | None = None) -> bool:
    """True if the error text matches a throttling/quota pattern (case-insensitive).

    Backends share no status-code convention, so this is a substring match
    against the error message. Patterns come from ``AI_RATE_LIMIT_PATTERNS``
    unless given explicitly.
    """
    # these repeat model output and caller hints in their message, never throttling
    if isinstance(error, (SchemaViolation, InvalidImageFormat)):
        return False

    if patterns is None:
        patterns = get_settings().ai_rate_limit_patterns

    message = str(error).lower()
    if not message:
        message = repr(error).lower()
    return any(pattern.lower() in message for pattern in patterns if pattern)


def next_step(outcome: AttemptOutcome, index: int, total: int) -> Step:
    """Decide what happens after attempt *index* (0-based) of *total*."""
    if outcome.kind is OutcomeKind.SUCCESS:
        return Step.SUCCESS
    if outcome.kind is OutcomeKind.RATE_LIMITED and index < total - 1:
        return Step.RETRY_NEXT
    return Step.ABORT


def key_label(index: int) -> str:
    return "primary" if index == 0 else f"fallback {index}"


async def run_with_fallback(
    credentials: Sequence[str],
    attempt: Callable[[str], Awaitable[T]],
    *,
    provider_name: str = "",
    patterns: Sequence[str] | None = None,
) -> T:
    """Run *attempt* with each credential in order until one succeeds.

    Raises the attempt's own exception on a non-throttling failure and
    ``AllCredentialsExhausted`` when the last credential was throttled too.
    """
    credentials = tuple(credentials)
    if not credentials:
        raise ConfigurationError(f"[{provider_name}] Credential set is empty")

    if patterns is None:
        patterns = get_settings().ai_rate_limit_patterns

    total = len(credentials)
    for index, credential in enumerate(credentials):
        label = key_label(index)
        logger.info("[%s] Attempting with %s API key", provider_name, label)

        try:
            value = await attempt(credential)
        except Exception as exc:
            outcome: AttemptOutcome[T] = AttemptOutcome.failure(exc, patterns)
            logger.warning("[%s] Error with %s API key: %s", provider_name, label, exc)
        else:
            outcome = AttemptOutcome.success(value)

        step = next_step(outcome, index, total)

        if step is Step.SUCCESS:
            logger.info("[%s] Success with %s API key", provider_name, label)
            return outcome.value  # type: ignore[return-value]

        if step is Step.RETRY_NEXT:
            logger.info("[%s] Rate limit detected, trying next API key", provider_name)
            continue

        if outcome.kind is OutcomeKind.RATE_LIMITED:
            logger.error("[%s] All API keys exhausted", provider_name)
            raise AllCredentialsExhausted(outcome.cause, provider=provider_name) from outcome.cause

        logger.info("[%s] Non-rate-limit error, not retrying", provider_name)
        raise outcome.cause  # type: ignore[misc]

    # Unreachable: the last credential always resolves to SUCCESS or ABORT.
    raise AssertionError("fallback loop ended without a decision")
