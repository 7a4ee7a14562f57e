"""Cover-fit JPEG previews of processed screens."""

from __future__ import annotations

import base64
import logging
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageOps

from .errors import ArtifactWriteError
from .halftone import ImageSource, load_image

logger = logging.getLogger("inker.renderer.thumbnail")

THUMBNAIL_SIZE = (200, 150)
THUMBNAIL_QUALITY = 80


def thumbnail_image(source: ImageSource, width: int = THUMBNAIL_SIZE[0], height: int = THUMBNAIL_SIZE[1]) -> Image.Image:
    if width <= 0 or height <= 0:
        raise ValueError(f"thumbnail size must be positive, got {width}x{height}")
    return ImageOps.fit(
        load_image(source),
        (width, height),
        method=Image.Resampling.LANCZOS,
        centering=(0.5, 0.5),
    )


def create_thumbnail(
    source: ImageSource,
    output_path: str | Path,
    width: int = THUMBNAIL_SIZE[0],
    height: int = THUMBNAIL_SIZE[1],
    quality: int = THUMBNAIL_QUALITY,
) -> Path:
    image = thumbnail_image(source, width, height)
    path = Path(output_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        image.save(path, format="JPEG", quality=quality)
    except OSError as exc:
        raise ArtifactWriteError(f"cannot write {path}: {exc}") from exc
    logger.debug("thumbnail %sx%s saved to %s", width, height, path)
    return path


def preview_data_url(source: ImageSource) -> str:
    buf = BytesIO()
    load_image(source).save(buf, format="PNG")
    b64 = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/png;base64,{b64}"
