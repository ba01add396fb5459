# Overview: Downscales embedded data-URL images before they are persisted.

from __future__ import annotations

import base64
import binascii
import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image"
DEFAULT_MAX_WIDTH = 400
DEFAULT_QUALITY = 70


def is_data_url(value: str | None) -> bool:
    return bool(value) and value.startswith(DATA_URL_PREFIX)


def compress_data_url(
    data_url: str,
    *,
    max_width: int = DEFAULT_MAX_WIDTH,
    quality: int = DEFAULT_QUALITY,
) -> str:
    """
    Bound an image to max_width pixels (aspect ratio kept) and re-encode it as
    JPEG at a fixed quality.

    Anything that is not a decodable data URL comes back unchanged; a broken
    image must never fail the save that carries it.
    """
    if not is_data_url(data_url):
        return data_url

    try:
        _, encoded = data_url.split(",", 1)
        raw = base64.b64decode(encoded, validate=True)
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            width, height = img.size
            if width > max_width:
                height = max(1, round(height * max_width / width))
                width = max_width
                img = img.resize((width, height), Image.Resampling.LANCZOS)
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            out = io.BytesIO()
            img.save(out, format="JPEG", quality=quality)
    except (ValueError, binascii.Error, UnidentifiedImageError, OSError):
        logger.warning("Image compression failed; storing original payload", exc_info=True)
        return data_url

    return "data:image/jpeg;base64," + base64.b64encode(out.getvalue()).decode("ascii")
