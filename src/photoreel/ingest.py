"""Image ingest: data URL decoding and canonical PNG conversion.

Nothing in this module touches the filesystem; a rejected payload leaves no
trace behind.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from photoreel.errors import ConversionError, MalformedInputError

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:image/([A-Za-z-+/]+);base64,(.+)$", re.DOTALL)

CANONICAL_SUBTYPE = "png"


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes plus the declared MIME subtype (``png``, ``jpeg``, ...)."""

    data: bytes
    subtype: str

    @property
    def mime_type(self) -> str:
        return f"image/{self.subtype}"

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def parse_data_url(data_url: str) -> ImagePayload:
    """Decode a ``data:image/<subtype>;base64,<payload>`` string.

    Raises:
        MalformedInputError: If the string does not have that shape or the
            payload is not valid, non-empty base64.
    """
    match = _DATA_URL_RE.match(data_url)
    if match is None:
        raise MalformedInputError("Invalid base64 image string")

    subtype, encoded = match.groups()
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise MalformedInputError("Invalid base64 image string") from None
    if not data:
        raise MalformedInputError("Invalid base64 image string")

    return ImagePayload(data=data, subtype=subtype.lower())


def convert_to_png(payload: ImagePayload) -> ImagePayload:
    """Re-encode an image as PNG, entirely in memory.

    Either the whole PNG buffer is produced or ConversionError is raised.
    """
    try:
        with Image.open(io.BytesIO(payload.data)) as img:
            img.load()
            if img.mode not in ("RGB", "RGBA", "L", "LA"):
                img = img.convert("RGBA" if "transparency" in img.info else "RGB")
            buffer = io.BytesIO()
            img.save(buffer, format="PNG")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as exc:
        raise ConversionError(f"Failed to convert image to PNG: {exc}") from exc

    logger.debug("Converted %s (%d bytes) to PNG (%d bytes)", payload.mime_type, len(payload.data), buffer.tell())
    return ImagePayload(data=buffer.getvalue(), subtype=CANONICAL_SUBTYPE)


def ingest(data_url: str) -> ImagePayload:
    """Decode a data URL and normalize it to the canonical PNG encoding."""
    return convert_to_png(parse_data_url(data_url))
