"""Prompt text and structured-output schema shared by the receipt adapters."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Any, Optional

RECEIPT_SYSTEM_PROMPT = """You are a receipt data extraction assistant. Extract the following information from receipt images:
- merchant: Store/restaurant name
- date: Transaction date in YYYY-MM-DD format
- total: Total amount (number only, no currency symbols or codes)
- category: One of: {category_list}
- lineItems: Array of items with description, quantity, and price

Important:
- Extract the raw numeric total value without any currency symbols
- If date is unclear or not visible, use {today} (today's date: {today})
- If lineItems are not visible or unclear, return an empty array
- If quantity is not shown for an item, use 1
- All fields are required and must match the schema"""

JSON_ONLY_SUFFIX = """

Return ONLY a single valid JSON object, no markdown or explanation:
{{"merchant": "Store Name", "date": "YYYY-MM-DD", "total": 123.45, "category": "{example_category}", "lineItems": [{{"description": "Item name", "quantity": 1, "price": 10.0}}]}}"""

USER_PROMPT = "Extract the receipt information following the specified schema."


def today_iso(today: Optional[date] = None) -> str:
    return (today or date.today()).isoformat()


def build_system_instruction(
    categories: Sequence[str],
    *,
    today: Optional[date] = None,
    json_only: bool = False,
) -> str:
    """System prompt for *categories*.

    ``json_only`` appends an explicit output example for backends that
    cannot enforce a schema themselves.
    """
    text = RECEIPT_SYSTEM_PROMPT.format(
        category_list=", ".join(categories),
        today=today_iso(today),
    )
    if json_only:
        text += JSON_ONLY_SUFFIX.format(example_category=categories[0] if categories else "Other")
    return text


def expense_json_schema(categories: Sequence[str], *, strict: bool = False) -> dict[str, Any]:
    """JSON schema mirroring ``ExpenseRecord`` with ``category`` as an enum.

    ``strict`` adds ``additionalProperties: false`` everywhere, which
    OpenAI-style strict structured outputs require.
    """
    line_item: dict[str, Any] = {
        "type": "object",
        "properties": {
            "description": {"type": "string", "description": "Item description"},
            "quantity": {"type": "number", "description": "Item quantity"},
            "price": {"type": "number", "description": "Item price"},
        },
        "required": ["description", "quantity", "price"],
    }
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "merchant": {"type": "string", "description": "Store or restaurant name"},
            "date": {
                "type": "string",
                "description": "Transaction date in YYYY-MM-DD format",
                "pattern": r"^\d{4}-\d{2}-\d{2}$",
            },
            "total": {"type": "number", "description": "Total amount (number only, no currency symbols)"},
            "category": {"type": "string", "description": "Expense category", "enum": list(categories)},
            "lineItems": {
                "type": "array",
                "description": "Individual items from the receipt",
                "items": line_item,
            },
        },
        "required": ["merchant", "date", "total", "category", "lineItems"],
    }
    if strict:
        line_item["additionalProperties"] = False
        schema["additionalProperties"] = False
        # strict mode rejects "pattern"
        del schema["properties"]["date"]["pattern"]
    return schema
