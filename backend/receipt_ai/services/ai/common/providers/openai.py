"""OpenAI provider (GPT-4o through the GitHub Models inference endpoint)."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

import httpx

from receipt_ai.services.ai.receipt_extract.categories import build_category_schema
from receipt_ai.services.ai.receipt_extract.contracts import ExpenseRecord, ExtractionRequest
from receipt_ai.services.ai.receipt_extract.prompts import (
    USER_PROMPT,
    build_system_instruction,
    expense_json_schema,
)

from ..json_tools import sanitize_expense
from .base import chat_completion_text, post_json

logger = logging.getLogger(__name__)

GITHUB_MODELS_URL = "https://models.github.ai/inference/chat/completions"


class OpenAIProvider:
    name = "openai"
    display_name = "OpenAI"
    default_model = "openai/gpt-4o"

    def __init__(
        self,
        *,
        model: str = "",
        timeout_seconds: float = 30.0,
        temperature: float = 0.1,
        max_tokens: int = 2048,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.model = model or self.default_model
        self._timeout_seconds = timeout_seconds
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._transport = transport

    def build_payload(self, request: ExtractionRequest, categories: Sequence[str]) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": build_system_instruction(categories)},
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": request.data_uri}},
                        {"type": "text", "text": USER_PROMPT},
                    ],
                },
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "receipt_extraction",
                    "strict": True,
                    "schema": expense_json_schema(categories, strict=True),
                },
            },
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }

    async def extract(self, request: ExtractionRequest, credential: str) -> ExpenseRecord:
        schema = build_category_schema(request.category_hints)

        data = await post_json(
            GITHUB_MODELS_URL,
            provider=self.name,
            display_name=self.display_name,
            headers={
                "Authorization": f"Bearer {credential}",
                "Content-Type": "application/json",
            },
            payload=self.build_payload(request, schema.categories),
            timeout_seconds=self._timeout_seconds,
            transport=self._transport,
        )

        text = chat_completion_text(data, provider=self.name, display_name=self.display_name)
        return sanitize_expense(text, schema.categories)
