import os

import httpx
import pytest
import pytest_asyncio

from receipt_ai.core.config import get_settings

BASE_URL = os.getenv("BASE_URL", "http://127.0.0.1:8000")

# Provider settings a developer shell may export; tests set what they need explicitly.
_AI_ENV_VARS = (
    "AI_PROVIDER",
    "AI_MODEL",
    "AI_ALLOWED_PROVIDERS",
    "AI_RATE_LIMIT_PATTERNS",
    "ENABLE_AI_OVERRIDES",
    "ENABLE_RECEIPT_AI",
    "GEMINI_API_KEY",
    "GEMINI_API_KEY_2",
    "GITHUB_TOKEN",
    "GITHUB_TOKEN_2",
    "NVIDIA_API_KEY",
    "NVIDIA_API_KEY_2",
    "GROQ_API_KEY",
    "GROQ_API_KEY_2",
)


@pytest.fixture(autouse=True)
def _reset_settings_cache(monkeypatch):
    # Tests mutate env vars; never leak a cached Settings instance across tests.
    for name in _AI_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def client():
    """In-process ASGI client; set USE_LIVE_SERVER=true to hit BASE_URL instead."""
    use_live_server = os.getenv("USE_LIVE_SERVER", "").strip().lower() in {"1", "true", "yes"}
    if use_live_server:
        async with httpx.AsyncClient(base_url=BASE_URL) as c:
            yield c
        return

    from receipt_ai.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
