"""Re-encode user images before they are staged, to bound payload size."""
from __future__ import annotations

import base64
from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image

DEFAULT_MAX_WIDTH = 800
DEFAULT_QUALITY = 0.7


def compress_image(image: Image.Image, max_width: int = DEFAULT_MAX_WIDTH, quality: float = DEFAULT_QUALITY) -> str:
    """
    Return a JPEG data URL no wider than ``max_width``.
    Height is scaled proportionally when the width is reduced; ``quality`` is 0..1.
    """
    width, height = image.size
    if width > max_width:
        height = round(height * max_width / width)
        width = max_width
        image = image.resize((width, height), Image.LANCZOS)

    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    buf = BytesIO()
    image.save(buf, format="JPEG", quality=max(1, min(95, int(round(quality * 100)))))
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def compress_file(
    source: Union[str, Path, BytesIO],
    max_width: int = DEFAULT_MAX_WIDTH,
    quality: float = DEFAULT_QUALITY,
) -> str:
    """Decode an image file (path or buffer) and compress it. Raises ValueError for non-images."""
    try:
        with Image.open(source) as img:
            img.load()
            return compress_image(img, max_width=max_width, quality=quality)
    except (OSError, Image.DecompressionBombError) as exc:
        raise ValueError(f"Could not read image: {exc}") from exc
