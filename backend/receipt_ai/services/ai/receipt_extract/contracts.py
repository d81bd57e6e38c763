"""Receipt extraction contracts: request, expense record and outward result."""

from __future__ import annotations

import base64
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date as date_type
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationInfo, field_validator

from receipt_ai.core.image_processing import normalize_data_uri

MimeType = Literal["jpeg", "png", "webp"]
FailureKind = Literal["invalid_image", "configuration", "extraction"]

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class ExtractionRequest:
    """Immutable input for one extraction call."""

    image_data: bytes
    mime_type: MimeType
    category_hints: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_data_uri(cls, encoded: str, category_hints: Sequence[str] = ()) -> ExtractionRequest:
        mime_type, raw = normalize_data_uri(encoded)
        return cls(image_data=raw, mime_type=mime_type, category_hints=tuple(category_hints))

    @property
    def base64_data(self) -> str:
        return base64.b64encode(self.image_data).decode("ascii")

    @property
    def media_type(self) -> str:
        return f"image/{self.mime_type}"

    @property
    def data_uri(self) -> str:
        return f"data:{self.media_type};base64,{self.base64_data}"


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str = Field(strict=True)
    quantity: float = Field(strict=True)
    price: float = Field(strict=True)


class ExpenseRecord(BaseModel):
    """Validated receipt data.

    Pass ``context={"categories": [...]}`` to ``model_validate`` to enforce
    membership of ``category`` in the effective category set.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    merchant: str = Field(strict=True, min_length=1)
    date: str = Field(strict=True)
    total: float = Field(strict=True, ge=0)
    category: str = Field(strict=True)
    line_items: list[LineItem] = Field(alias="lineItems")

    _raw_text: Optional[str] = PrivateAttr(default=None)

    @field_validator("merchant")
    @classmethod
    def merchant_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("merchant must not be blank")
        return v

    @field_validator("date")
    @classmethod
    def date_is_iso_calendar_date(cls, v: str) -> str:
        if not _ISO_DATE_RE.match(v):
            raise ValueError(f"date must be YYYY-MM-DD, got {v!r}")
        try:
            date_type.fromisoformat(v)
        except ValueError as exc:
            raise ValueError(f"date is not a real calendar date: {v!r}") from exc
        return v

    @field_validator("category")
    @classmethod
    def category_in_effective_set(cls, v: str, info: ValidationInfo) -> str:
        categories = (info.context or {}).get("categories")
        if categories is not None and v not in categories:
            msg = f"Category {v!r} is not one of: {', '.join(categories)}"
            raise ValueError(msg)
        return v

    def attach_raw_text(self, raw_text: str) -> None:
        """Remember the model output this record was parsed from (audit only)."""
        self._raw_text = raw_text

    @property
    def raw_text(self) -> Optional[str]:
        return self._raw_text


class AIResult(BaseModel):
    """The only value that crosses the extraction core outward."""

    success: bool
    data: Optional[ExpenseRecord] = None
    error: Optional[str] = None
    failure_kind: Optional[FailureKind] = Field(default=None, exclude=True)

    @classmethod
    def ok(cls, record: ExpenseRecord) -> AIResult:
        return cls(success=True, data=record)

    @classmethod
    def fail(cls, error: str, kind: FailureKind = "extraction") -> AIResult:
        return cls(success=False, error=error or "Failed to process receipt", failure_kind=kind)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
