from functools import lru_cache
import json
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_PROVIDERS = "gemini,openai,nvidia,groq,mock"
DEFAULT_RATE_LIMIT_PATTERNS = "rate limit,quota,429,resource exhausted,too many requests"


def _parse_list_value(value: str) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    cors_allow_origins_raw: str = Field(
        default="",
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS"),
    )

    enable_receipt_ai: bool = Field(
        default=True,
        validation_alias=AliasChoices("ENABLE_RECEIPT_AI"),
    )
    enable_ai_overrides: bool = False

    ai_provider: str = Field(
        default="gemini",
        validation_alias=AliasChoices("AI_PROVIDER"),
    )
    ai_model: str = Field(
        default="",
        validation_alias=AliasChoices("AI_MODEL"),
    )
    ai_allowed_providers_raw: str = Field(
        default=DEFAULT_ALLOWED_PROVIDERS,
        validation_alias=AliasChoices("AI_ALLOWED_PROVIDERS"),
    )

    gemini_api_key: str = ""
    gemini_api_key_2: str = ""
    github_token: str = ""
    github_token_2: str = ""
    nvidia_api_key: str = ""
    nvidia_api_key_2: str = ""
    groq_api_key: str = ""
    groq_api_key_2: str = ""

    ai_timeout_seconds: float = 30.0
    ai_temperature: float = 0.1
    ai_max_tokens: int = 2048
    ai_rate_limit_patterns_raw: str = Field(
        default=DEFAULT_RATE_LIMIT_PATTERNS,
        validation_alias=AliasChoices("AI_RATE_LIMIT_PATTERNS"),
    )
    ai_max_image_dimension: int = 2000
    ai_debug_store_raw: bool = False

    @field_validator("ai_provider")
    @classmethod
    def _normalize_provider(cls, value: str) -> str:
        return value.lower().strip()

    @property
    def cors_allow_origins(self) -> list[str]:
        return _parse_list_value(self.cors_allow_origins_raw)

    @property
    def ai_allowed_providers(self) -> list[str]:
        return [item.lower() for item in _parse_list_value(self.ai_allowed_providers_raw)]

    @property
    def ai_rate_limit_patterns(self) -> list[str]:
        return [item.lower() for item in _parse_list_value(self.ai_rate_limit_patterns_raw)]

    def credentials_for(self, provider: str) -> tuple[str, ...]:
        """Ordered credential set for *provider*: primary first, then fallbacks."""
        name = provider.lower().strip()
        if name == "mock":
            return ("mock",)
        candidates = {
            "gemini": (self.gemini_api_key, self.gemini_api_key_2),
            "openai": (self.github_token, self.github_token_2),
            "nvidia": (self.nvidia_api_key, self.nvidia_api_key_2),
            "groq": (self.groq_api_key, self.groq_api_key_2),
        }.get(name, ())
        return tuple(key.strip() for key in candidates if key and key.strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()
