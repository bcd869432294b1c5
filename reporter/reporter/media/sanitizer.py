"""Media sanitizer — strips identifying metadata before media is stored.

Images are decoded and re-encoded with Pillow, which drops EXIF (including
GPS tags) and other ancillary chunks. Video and audio pass through unchanged
at this layer; their container metadata is not touched.
"""

from __future__ import annotations

import io
from typing import Protocol

import structlog
from PIL import Image, ImageOps, UnidentifiedImageError

from reporter.core.models import MediaKind

log = structlog.get_logger()

DEFAULT_MAX_DIMENSION = 1600
JPEG_QUALITY = 85


class MediaSanitizer(Protocol):
    def sanitize(self, data: bytes, kind: MediaKind, max_dimension: int) -> bytes: ...


class PillowImageSanitizer:
    """Re-encodes images as metadata-free JPEG with the longest side capped."""

    def __init__(self, quality: int = JPEG_QUALITY) -> None:
        self._quality = quality

    def sanitize(self, data: bytes, kind: MediaKind,
                 max_dimension: int = DEFAULT_MAX_DIMENSION) -> bytes:
        if kind is not MediaKind.IMAGE:
            return data

        try:
            with Image.open(io.BytesIO(data)) as img:
                # Bake orientation into the pixels; the tag itself goes away.
                img = ImageOps.exif_transpose(img)
                if img.mode not in ("RGB", "L"):
                    img = img.convert("RGB")
                img.thumbnail((max_dimension, max_dimension))
                clean = Image.new(img.mode, img.size)
                clean.paste(img)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise ValueError(f"not a readable image: {exc}") from exc

        out = io.BytesIO()
        clean.save(out, format="JPEG", quality=self._quality)
        log.debug("image_sanitized", in_bytes=len(data), out_bytes=out.tell(),
                  size=clean.size)
        return out.getvalue()


def suffix_for(kind: MediaKind, name: str) -> str:
    """File suffix to store sanitized media under."""
    if kind is MediaKind.IMAGE:
        return ".jpg"
    dot = name.rfind(".")
    return name[dot:].lower() if dot > 0 and len(name) - dot <= 6 else ""
