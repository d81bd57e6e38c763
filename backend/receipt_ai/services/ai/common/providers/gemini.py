"""Google Gemini provider (Generative Language REST API)."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

import httpx

from receipt_ai.services.ai.receipt_extract.categories import build_category_schema
from receipt_ai.services.ai.receipt_extract.contracts import ExpenseRecord, ExtractionRequest
from receipt_ai.services.ai.receipt_extract.prompts import build_system_instruction

from ..errors import ProviderError
from ..json_tools import sanitize_expense
from .base import post_json

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def gemini_response_schema(categories: Sequence[str]) -> dict[str, Any]:
    """Gemini ``responseSchema`` (OpenAPI subset) for an expense record."""
    return {
        "type": "OBJECT",
        "properties": {
            "merchant": {"type": "STRING", "description": "Store or restaurant name", "nullable": False},
            "date": {"type": "STRING", "description": "Transaction date in YYYY-MM-DD format", "nullable": False},
            "total": {
                "type": "NUMBER",
                "description": "Total amount (number only, no currency symbols)",
                "nullable": False,
            },
            "category": {
                "type": "STRING",
                "format": "enum",
                "description": f"Expense category ({', '.join(categories)})",
                "enum": list(categories),
                "nullable": False,
            },
            "lineItems": {
                "type": "ARRAY",
                "description": "Individual items from the receipt",
                "nullable": False,
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "description": {"type": "STRING", "description": "Item description", "nullable": False},
                        "quantity": {"type": "NUMBER", "description": "Item quantity", "nullable": False},
                        "price": {"type": "NUMBER", "description": "Item price", "nullable": False},
                    },
                    "required": ["description", "quantity", "price"],
                },
            },
        },
        "required": ["merchant", "date", "total", "category", "lineItems"],
    }


class GeminiProvider:
    name = "gemini"
    display_name = "Gemini"
    default_model = "gemini-2.5-flash"

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
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": build_system_instruction(categories)},
                        {"inlineData": {"mimeType": request.media_type, "data": request.base64_data}},
                    ],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": gemini_response_schema(categories),
                "temperature": self._temperature,
                "maxOutputTokens": self._max_tokens,
            },
        }

    async def extract(self, request: ExtractionRequest, credential: str) -> ExpenseRecord:
        schema = build_category_schema(request.category_hints)

        data = await post_json(
            f"{GEMINI_BASE_URL}/models/{self.model}:generateContent",
            provider=self.name,
            display_name=self.display_name,
            headers={"x-goog-api-key": credential, "Content-Type": "application/json"},
            payload=self.build_payload(request, schema.categories),
            timeout_seconds=self._timeout_seconds,
            transport=self._transport,
        )

        candidates = data.get("candidates")
        first = candidates[0] if isinstance(candidates, list) and candidates else None
        content = first.get("content") if isinstance(first, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        parts = parts if isinstance(parts, list) else []
        text = "".join(part.get("text") or "" for part in parts if isinstance(part, dict))
        if not text:
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            detail = f" (blocked: {reason})" if reason else ""
            raise ProviderError(f"No response from Gemini API{detail}", provider=self.name)

        return sanitize_expense(text, schema.categories)
