"""Error taxonomy for the receipt extraction core."""

from __future__ import annotations


class ReceiptAIError(Exception):
    """Base class for every failure raised inside the extraction core."""


class InvalidImageFormat(ReceiptAIError):
    """Encoded image is malformed or uses an unsupported mime type."""


class ImageTooLarge(InvalidImageFormat):
    """Image decodes fine but exceeds the configured pixel dimensions."""


class SchemaViolation(ReceiptAIError):
    """Model output could not be coerced into a valid expense record."""

    def __init__(self, message: str, *, raw_text: str | None = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class ProviderError(ReceiptAIError):
    """Failure reported by (or while talking to) a provider backend."""

    def __init__(self, message: str, *, provider: str = "") -> None:
        super().__init__(message)
        self.provider = provider


class ProviderTransportError(ProviderError):
    """Network, authentication or unexpected-status failure."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message, provider=provider)
        self.status_code = status_code
        self.body = body


class RateLimited(ProviderTransportError):
    """Backend signalled throttling or quota exhaustion."""


class AllCredentialsExhausted(ReceiptAIError):
    """Every credential was tried and the last one was throttled too."""

    def __init__(self, last_cause: BaseException, *, provider: str = "") -> None:
        label = f"[{provider}] " if provider else ""
        super().__init__(f"{label}All API keys exhausted: {last_cause}")
        self.last_cause = last_cause
        self.provider = provider


class ConfigurationError(ReceiptAIError):
    """Deployment is misconfigured; not a runtime extraction failure."""


class UnknownProvider(ConfigurationError):
    def __init__(self, provider: str) -> None:
        super().__init__(f"Unknown AI provider {provider!r}")
        self.provider = provider


class MissingCredentials(ConfigurationError):
    def __init__(self, provider: str) -> None:
        super().__init__(f"No API key configured for provider {provider!r}")
        self.provider = provider
