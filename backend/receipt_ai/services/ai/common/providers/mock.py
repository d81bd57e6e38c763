"""Mock provider: deterministic offline responses for development and tests."""

from __future__ import annotations

import json

from receipt_ai.services.ai.receipt_extract.categories import build_category_schema
from receipt_ai.services.ai.receipt_extract.contracts import ExpenseRecord, ExtractionRequest
from receipt_ai.services.ai.receipt_extract.prompts import today_iso

from ..json_tools import sanitize_expense


class MockProvider:
    name = "mock"
    default_model = "mock-v1"

    def __init__(self, *, model: str = "", **_: object) -> None:
        self.model = model or self.default_model

    def raw_response(self, categories: tuple[str, ...]) -> str:
        return json.dumps(
            {
                "merchant": "Mock Merchant",
                "date": today_iso(),
                "total": 0.0,
                "category": categories[-1],
                "lineItems": [],
            }
        )

    async def extract(self, request: ExtractionRequest, credential: str) -> ExpenseRecord:
        schema = build_category_schema(request.category_hints)
        return sanitize_expense(self.raw_response(schema.categories), schema.categories)
