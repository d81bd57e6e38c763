"""Nvidia NIM provider (llama-3.2-90b-vision-instruct with guided JSON)."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

import httpx

from receipt_ai.services.ai.receipt_extract.categories import build_category_schema
from receipt_ai.services.ai.receipt_extract.contracts import ExpenseRecord, ExtractionRequest
from receipt_ai.services.ai.receipt_extract.prompts import build_system_instruction, expense_json_schema

from ..json_tools import sanitize_expense
from .base import chat_completion_text, post_json

logger = logging.getLogger(__name__)

NVIDIA_INVOKE_URL = "https://integrate.api.nvidia.com/v1/chat/completions"


class NvidiaProvider:
    name = "nvidia"
    display_name = "Nvidia"
    default_model = "meta/llama-3.2-90b-vision-instruct"

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
        # guided_json is best effort on NIM, so the prompt asks for bare JSON as well
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": build_system_instruction(categories, json_only=True)},
                        {"type": "image_url", "image_url": {"url": request.data_uri}},
                    ],
                }
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "top_p": 0.95,
            "stream": False,
            "nvext": {"guided_json": expense_json_schema(categories)},
        }

    async def extract(self, request: ExtractionRequest, credential: str) -> ExpenseRecord:
        schema = build_category_schema(request.category_hints)

        data = await post_json(
            NVIDIA_INVOKE_URL,
            provider=self.name,
            display_name=self.display_name,
            headers={
                "Authorization": f"Bearer {credential}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            payload=self.build_payload(request, schema.categories),
            timeout_seconds=self._timeout_seconds,
            transport=self._transport,
        )

        text = chat_completion_text(data, provider=self.name, display_name=self.display_name)
        return sanitize_expense(text, schema.categories)
