"""Content classification for inscription payloads.

Every payload maps to exactly one :class:`ContentKind`. UTF-8 validity is
probed first; text is then HTML (by declared content type), JSON (by parse) or
plain text. Only payloads that are not UTF-8 are sniffed as raster images with
Pillow, and whatever is left is opaque binary.
"""

from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from PIL import Image

logger = logging.getLogger(__name__)

BRC20_PROTOCOL = "brc-20"
FALLBACK_EXTENSION = "dat"

# Pillow registers several extensions per format; these are the conventional ones.
_PREFERRED_IMAGE_EXTENSIONS = {
    "AVIF": "avif",
    "BMP": "bmp",
    "GIF": "gif",
    "ICO": "ico",
    "JPEG": "jpg",
    "PNG": "png",
    "TIFF": "tiff",
    "WEBP": "webp",
}

# Formats identified by a leading signature. Header-less formats such as TGA
# would claim arbitrary bytes.
MAGIC_IMAGE_FORMATS = ("PNG", "JPEG", "GIF", "BMP", "WEBP", "TIFF", "ICO", "AVIF")


class ContentKind(str, Enum):
    BINARY = "binary"
    HTML = "html"
    IMAGE = "image"
    JSON = "json"
    TEXT = "text"


@dataclass(frozen=True)
class ClassifiedContent:
    """Typed view over an inscription payload."""

    kind: ContentKind
    text: Optional[str] = None
    json_value: Any = None
    image_format: Optional[str] = None
    image_size: Optional[Tuple[int, int]] = None

    @property
    def is_text_like(self) -> bool:
        return self.kind in (ContentKind.HTML, ContentKind.JSON, ContentKind.TEXT)

    @property
    def is_json(self) -> bool:
        return self.kind is ContentKind.JSON

    @property
    def is_html(self) -> bool:
        return self.kind is ContentKind.HTML

    @property
    def is_image(self) -> bool:
        return self.kind is ContentKind.IMAGE

    @property
    def is_brc20(self) -> bool:
        """True for JSON objects whose ``"p"`` field is exactly ``"brc-20"``."""

        if self.kind is not ContentKind.JSON or not isinstance(self.json_value, dict):
            return False
        return self.json_value.get("p") == BRC20_PROTOCOL


def classify_content(content_type: str, payload: bytes) -> ClassifiedContent:
    """Classify ``payload`` given its declared ``content_type``.

    Never raises; unrecognised data is reported as :attr:`ContentKind.BINARY`.
    """

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError:
        text = None

    if text is not None:
        if "html" in (content_type or "").lower():
            return ClassifiedContent(kind=ContentKind.HTML, text=text)
        parsed, ok = _parse_json(text)
        if ok:
            return ClassifiedContent(kind=ContentKind.JSON, text=text, json_value=parsed)
        return ClassifiedContent(kind=ContentKind.TEXT, text=text)

    sniffed = _sniff_image(payload)
    if sniffed is not None:
        image_format, image_size = sniffed
        return ClassifiedContent(
            kind=ContentKind.IMAGE, image_format=image_format, image_size=image_size
        )

    return ClassifiedContent(kind=ContentKind.BINARY)


def file_extension(content: ClassifiedContent) -> str:
    """Suggest a file extension for a classified payload."""

    if content.kind is ContentKind.HTML:
        return "html"
    if content.kind is ContentKind.JSON:
        return "json"
    if content.kind is ContentKind.TEXT:
        return "txt"
    if content.kind is ContentKind.IMAGE:
        return image_extension(content.image_format) or FALLBACK_EXTENSION
    return FALLBACK_EXTENSION


def image_extension(image_format: Optional[str]) -> Optional[str]:
    """Return the first extension for a Pillow format name, if any."""

    if not image_format:
        return None
    name = image_format.upper()
    preferred = _PREFERRED_IMAGE_EXTENSIONS.get(name)
    if preferred:
        return preferred
    for extension, registered in Image.registered_extensions().items():
        if registered == name:
            return extension.lstrip(".")
    return None


def _reject_constant(value: str) -> Any:
    raise ValueError(f"non-standard JSON constant {value}")


def _parse_json(text: str) -> Tuple[Any, bool]:
    try:
        return json.loads(text, parse_constant=_reject_constant), True
    except (ValueError, RecursionError):
        return None, False


def _sniff_formats() -> Tuple[str, ...]:
    Image.init()
    return tuple(name for name in MAGIC_IMAGE_FORMATS if name in Image.OPEN)


def _sniff_image(payload: bytes) -> Optional[Tuple[str, Tuple[int, int]]]:
    if not payload:
        return None
    try:
        with Image.open(io.BytesIO(payload), formats=_sniff_formats()) as image:
            # format and size come from the header; verify() checks the rest
            # without decoding pixels.
            image_format, size = image.format or "", image.size
            image.verify()
            return image_format, size
    except Exception as exc:  # Pillow plugins raise assorted errors on junk input
        logger.debug("Payload of %d bytes is not a decodable image: %s", len(payload), exc)
        return None
