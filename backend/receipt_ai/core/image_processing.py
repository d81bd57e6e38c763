"""Image payload handling for receipt uploads.

Inbound receipts arrive as ``data:image/<type>;base64,<payload>`` strings.
``normalize_data_uri`` validates and decodes them; ``check_dimensions``
uses Pillow to reject images larger than the backends accept.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from typing import Optional

from PIL import Image, UnidentifiedImageError

from receipt_ai.services.ai.common.errors import ImageTooLarge, InvalidImageFormat

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Constants
# ------------------------------------------------------------------

SUPPORTED_MIME_TYPES = ("jpeg", "png", "webp")

_DATA_URI_RE = re.compile(r"^data:image/(jpeg|jpg|png|webp);base64,(.+)$", re.DOTALL)

INVALID_FORMAT_MESSAGE = "Invalid image format. Expected data:image/{type};base64,{data}"


def normalize_data_uri(encoded: str) -> tuple[str, bytes]:
    """Split a data URI into ``(mime_type, raw_bytes)``.

    ``jpg`` is canonicalized to ``jpeg``. Anything that is not a base64
    data URI of a supported image type raises ``InvalidImageFormat``.
    """
    if not isinstance(encoded, str):
        raise InvalidImageFormat(INVALID_FORMAT_MESSAGE)

    match = _DATA_URI_RE.match(encoded.strip())
    if not match:
        raise InvalidImageFormat(INVALID_FORMAT_MESSAGE)

    subtype, payload = match.groups()
    mime_type = "jpeg" if subtype == "jpg" else subtype

    try:
        raw = base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageFormat(f"Malformed base64 image payload: {exc}") from exc

    if not raw:
        raise InvalidImageFormat("Image payload is empty")

    return mime_type, raw


def read_dimensions(content: bytes) -> Optional[tuple[int, int]]:
    """Return ``(width, height)`` or ``None`` when Pillow cannot identify the image."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            return img.width, img.height
    except (UnidentifiedImageError, OSError):
        return None


def check_dimensions(content: bytes, max_dimension: int) -> None:
    """Raise ``ImageTooLarge`` if either side exceeds *max_dimension* pixels.

    Images Pillow cannot read are let through; the backend reports on those.
    """
    dimensions = read_dimensions(content)
    if dimensions is None:
        logger.debug("Could not read image dimensions; skipping size check")
        return

    width, height = dimensions
    if width > max_dimension or height > max_dimension:
        raise ImageTooLarge(
            f"Image dimensions ({width}x{height}) exceed maximum allowed size of "
            f"{max_dimension}px. Please resize the image before uploading."
        )
