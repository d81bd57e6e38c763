"""Tests for JSON recovery from model output and expense record validation."""

import json
import unittest

from pydantic import ValidationError

from receipt_ai.services.ai.common.errors import SchemaViolation
from receipt_ai.services.ai.common.json_tools import extract_json, sanitize, sanitize_expense, strip_code_fence
from receipt_ai.services.ai.receipt_extract.categories import DEFAULT_CATEGORIES, build_category_schema
from receipt_ai.services.ai.receipt_extract.contracts import ExpenseRecord

CAFE = {
    "merchant": "Cafe Nova",
    "date": "2024-03-01",
    "total": 12.5,
    "category": "Food & Drink",
    "lineItems": [],
}


class ExtractJsonTests(unittest.TestCase):
    def test_plain_object(self):
        self.assertEqual(extract_json(json.dumps(CAFE)), CAFE)

    def test_fenced_with_language_tag_matches_unwrapped(self):
        raw = json.dumps(CAFE)
        self.assertEqual(extract_json(f"```json\n{raw}\n```"), extract_json(raw))

    def test_fenced_without_language_tag(self):
        self.assertEqual(extract_json(f"```\n{json.dumps(CAFE)}\n```"), CAFE)

    def test_fence_inside_prose(self):
        text = f"Here is the data:\n```json\n{json.dumps(CAFE)}\n```\nLet me know!"
        self.assertEqual(extract_json(text), CAFE)

    def test_prose_around_object(self):
        text = f"Sure! The receipt says {json.dumps(CAFE)} -- hope that helps."
        self.assertEqual(extract_json(text), CAFE)

    def test_greatest_extent_brace_match(self):
        text = 'Result: {"merchant": "A", "nested": {"x": 1}} end'
        self.assertEqual(extract_json(text), {"merchant": "A", "nested": {"x": 1}})

    def test_two_objects_do_not_parse(self):
        # first "{" to last "}" spans both objects, which is not valid JSON
        self.assertIsNone(extract_json('{"a": 1} and {"b": 2}'))

    def test_array_is_not_an_object(self):
        self.assertIsNone(extract_json("[1, 2, 3]"))

    def test_empty_and_plain_text(self):
        self.assertIsNone(extract_json(""))
        self.assertIsNone(extract_json("   "))
        self.assertIsNone(extract_json("no json here"))

    def test_object_after_non_json_fence(self):
        text = f"Here:\n```python\nprint(1)\n```\n{json.dumps(CAFE)}"
        self.assertEqual(extract_json(text), CAFE)

    def test_object_inside_fence_with_surrounding_prose_in_fence(self):
        text = f"```\nResult follows {json.dumps(CAFE)} done\n```"
        self.assertEqual(extract_json(text), CAFE)

    def test_invalid_json_returns_none(self):
        self.assertIsNone(extract_json("{invalid json}"))

    def test_strip_code_fence(self):
        self.assertEqual(strip_code_fence('```json\n{"a": 1}\n```'), '{"a": 1}')
        self.assertIsNone(strip_code_fence('{"a": 1}'))

    def test_sanitize_raises_schema_violation(self):
        with self.assertRaises(SchemaViolation):
            sanitize("I could not read this receipt, sorry.")


class SanitizeExpenseTests(unittest.TestCase):
    def test_valid_record_with_default_categories(self):
        record = sanitize_expense(json.dumps(CAFE), DEFAULT_CATEGORIES)
        self.assertEqual(record.merchant, "Cafe Nova")
        self.assertEqual(record.line_items, [])
        self.assertEqual(record.model_dump(by_alias=True), CAFE)

    def test_line_items_parsed(self):
        payload = dict(CAFE, lineItems=[{"description": "Latte", "quantity": 2, "price": 9.0}])
        record = sanitize_expense(json.dumps(payload), DEFAULT_CATEGORIES)
        self.assertEqual(record.line_items[0].description, "Latte")
        self.assertEqual(record.line_items[0].quantity, 2)

    def test_missing_line_items_rejected(self):
        payload = {k: v for k, v in CAFE.items() if k != "lineItems"}
        with self.assertRaises(SchemaViolation) as ctx:
            sanitize_expense(json.dumps(payload), DEFAULT_CATEGORIES)
        self.assertIn("lineItems", str(ctx.exception))

    def test_category_outside_effective_set_rejected(self):
        schema = build_category_schema(["Pets"])
        with self.assertRaises(SchemaViolation) as ctx:
            sanitize_expense(json.dumps(CAFE), schema.categories)
        self.assertIn("Food & Drink", str(ctx.exception))

    def test_total_as_string_rejected(self):
        with self.assertRaises(SchemaViolation):
            sanitize_expense(json.dumps(dict(CAFE, total="12.50")), DEFAULT_CATEGORIES)

    def test_negative_total_rejected(self):
        with self.assertRaises(SchemaViolation):
            sanitize_expense(json.dumps(dict(CAFE, total=-1)), DEFAULT_CATEGORIES)

    def test_bad_date_rejected(self):
        for bad in ("01/03/2024", "2024-02-30", "20240301"):
            with self.subTest(date=bad), self.assertRaises(SchemaViolation):
                sanitize_expense(json.dumps(dict(CAFE, date=bad)), DEFAULT_CATEGORIES)

    def test_blank_merchant_rejected(self):
        with self.assertRaises(SchemaViolation):
            sanitize_expense(json.dumps(dict(CAFE, merchant="  ")), DEFAULT_CATEGORIES)

    def test_line_item_missing_price_rejected(self):
        payload = dict(CAFE, lineItems=[{"description": "Latte", "quantity": 1}])
        with self.assertRaises(SchemaViolation):
            sanitize_expense(json.dumps(payload), DEFAULT_CATEGORIES)

    def test_record_keeps_raw_model_text(self):
        raw = f"```json\n{json.dumps(CAFE)}\n```"
        self.assertEqual(sanitize_expense(raw, DEFAULT_CATEGORIES).raw_text, raw)

    def test_schema_violation_carries_raw_model_text(self):
        raw = json.dumps(dict(CAFE, total="12.50"))
        with self.assertRaises(SchemaViolation) as ctx:
            sanitize_expense(raw, DEFAULT_CATEGORIES)
        self.assertEqual(ctx.exception.raw_text, raw)

        with self.assertRaises(SchemaViolation) as ctx:
            sanitize_expense("no json at all", DEFAULT_CATEGORIES)
        self.assertEqual(ctx.exception.raw_text, "no json at all")

    def test_fenced_response_sanitizes(self):
        record = sanitize_expense(f"```json\n{json.dumps(CAFE)}\n```", DEFAULT_CATEGORIES)
        self.assertEqual(record.total, 12.5)


class CategorySchemaTests(unittest.TestCase):
    def test_default_set(self):
        schema = build_category_schema([])
        self.assertFalse(schema.is_custom)
        self.assertEqual(schema.categories, DEFAULT_CATEGORIES)
        self.assertIn("Food & Drink", schema.categories)

    def test_custom_hints_kept_verbatim(self):
        schema = build_category_schema(["Pets", "Garden", "Pets & Vet"])
        self.assertTrue(schema.is_custom)
        self.assertEqual(schema.categories, ("Pets", "Garden", "Pets & Vet"))


class ExpenseRecordContractTests(unittest.TestCase):
    def test_without_context_any_category_allowed(self):
        record = ExpenseRecord.model_validate(dict(CAFE, category="Anything"))
        self.assertEqual(record.category, "Anything")

    def test_record_is_immutable(self):
        record = ExpenseRecord.model_validate(CAFE)
        with self.assertRaises(ValidationError):
            record.total = 1.0
