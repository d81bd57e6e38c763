"""Receipt processing endpoint: thin HTTP adapter over the extraction core."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from receipt_ai.core.config import get_settings
from receipt_ai.services.ai.receipt_extract.contracts import AIResult

router = APIRouter()

FAILURE_STATUS = {
    "invalid_image": 400,
    "configuration": 503,
    "extraction": 502,
}


def _ensure_receipt_ai_enabled() -> None:
    settings = get_settings()
    if not settings.enable_receipt_ai:
        raise HTTPException(404, "Not found")


class ProcessReceiptRequest(BaseModel):
    image: str = Field(..., min_length=1, description="data:image/{type};base64,{data}")
    categories: list[str] = Field(default_factory=list)
    provider: str | None = None
    model: str | None = None


@router.post(
    "/receipts/process",
    response_model=AIResult,
    response_model_exclude_none=True,
    summary="Extract expense data from a receipt image via AI",
)
async def process_receipt_endpoint(body: ProcessReceiptRequest):
    _ensure_receipt_ai_enabled()

    from receipt_ai.services.ai.receipt_extract.service import process_receipt

    categories = list(dict.fromkeys(name.strip() for name in body.categories if name.strip()))
    result = await process_receipt(
        body.image,
        categories,
        override_provider=body.provider,
        override_model=body.model,
    )

    if result.success:
        return result
    return JSONResponse(
        status_code=FAILURE_STATUS.get(result.failure_kind or "extraction", 502),
        content=result.to_dict(),
    )
