"""E-ink halftoning: contain-fit, grayscale, contrast, tonal stretch, and error diffusion."""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import ArtifactWriteError, DecodeError
from .models import HalftoneOptions, ImageMetadata

logger = logging.getLogger("inker.renderer.halftone")

ImageSource = Union[str, Path, bytes, bytearray, Image.Image]

WHITE = (255, 255, 255)
PNG_COMPRESS_LEVEL = 9


def _open(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        source.load()
        return source.copy()
    try:
        stream = BytesIO(bytes(source)) if isinstance(source, (bytes, bytearray)) else source
        image = Image.open(stream)
        image.load()
        return image
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise DecodeError(f"input is not a readable bitmap: {exc}") from exc


def _flatten(image: Image.Image) -> Image.Image:
    if image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def load_image(source: ImageSource) -> Image.Image:
    """Decode a path, byte buffer, or image into opaque RGB composited on white."""
    return _flatten(_open(source))


def image_metadata(source: ImageSource) -> ImageMetadata:
    image = _open(source)
    return ImageMetadata(
        width=image.width,
        height=image.height,
        format=image.format,
        mode=image.mode,
        has_alpha=image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info,
    )


def contain_fit(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale to fit inside the target and center on white. Each scaled side is at least 1px."""
    if width <= 0 or height <= 0:
        raise ValueError(f"target size must be positive, got {width}x{height}")
    source = _flatten(image)
    scale = min(width / source.width, height / source.height)
    fitted = (
        max(1, min(width, round(source.width * scale))),
        max(1, min(height, round(source.height * scale))),
    )
    canvas = Image.new("RGB", (width, height), WHITE)
    offset = ((width - fitted[0]) // 2, (height - fitted[1]) // 2)
    canvas.paste(source.resize(fitted, Image.Resampling.LANCZOS), offset)
    return canvas


def adjust_contrast(gray: Image.Image, contrast: float) -> Image.Image:
    """Linear stretch around mid-gray: out = c * in - (128c - 128), clamped."""
    if contrast == 1:
        return gray
    arr = np.asarray(gray, dtype=np.float64)
    out = contrast * arr - (128 * contrast - 128)
    return Image.fromarray(np.clip(np.rint(out), 0, 255).astype(np.uint8))


def normalize(gray: Image.Image, cutoff: float = 0.0) -> Image.Image:
    return ImageOps.autocontrast(gray, cutoff=cutoff)


def diffuse_error(
    work: list[float],
    width: int,
    height: int,
    threshold: float = 128,
    levels: int = 2,
) -> list[float]:
    """Floyd-Steinberg over a flat row-major buffer, quantizing ``work`` in place.

    Returns the quantization error left at each pixel. Error pushed past the
    right or bottom edge is dropped.
    """
    if len(work) != width * height:
        raise ValueError(f"buffer holds {len(work)} pixels, expected {width * height}")
    if levels < 2:
        raise ValueError("levels must be at least 2")

    step = 255.0 / (levels - 1)
    errors = [0.0] * len(work)
    last_col = width - 1
    last_row = height - 1

    for y in range(height):
        row = y * width
        below = row + width
        for x in range(width):
            idx = row + x
            old = work[idx]
            if levels == 2:
                new = 0.0 if old < threshold else 255.0
            else:
                new = min(255.0, max(0.0, round(old / step) * step))
            work[idx] = new
            error = old - new
            errors[idx] = error
            if error == 0:
                continue

            if x < last_col:
                work[idx + 1] += error * 7 / 16
            if y < last_row:
                if x > 0:
                    work[below + x - 1] += error * 3 / 16
                work[below + x] += error * 5 / 16
                if x < last_col:
                    work[below + x + 1] += error * 1 / 16

    return errors


def floyd_steinberg(gray: Image.Image, threshold: float = 128, levels: int = 2) -> Image.Image:
    if gray.mode != "L":
        gray = gray.convert("L")
    width, height = gray.size
    work = np.asarray(gray, dtype=np.float64).ravel().tolist()
    diffuse_error(work, width, height, threshold=threshold, levels=levels)
    pixels = np.clip(np.rint(np.asarray(work, dtype=np.float64)), 0, 255).astype(np.uint8)
    return Image.fromarray(pixels.reshape(height, width))


def process_for_eink(
    source: ImageSource,
    width: int,
    height: int,
    options: HalftoneOptions | None = None,
) -> Image.Image:
    """Produce an exact ``width`` x ``height`` grayscale image ready for an e-ink panel.

    The source is letterboxed on white (never cropped), converted to gray,
    contrast-stretched, normalized, and optionally dithered.
    """
    opts = options or HalftoneOptions()
    image = load_image(source)
    logger.debug(
        "halftone %sx%s -> %sx%s dithering=%s threshold=%s contrast=%s",
        image.width,
        image.height,
        width,
        height,
        opts.dithering,
        opts.threshold,
        opts.contrast,
    )

    gray = contain_fit(image, width, height).convert("L")
    gray = adjust_contrast(gray, opts.contrast)
    gray = normalize(gray, opts.normalize_cutoff)
    if opts.dithering:
        gray = floyd_steinberg(gray, threshold=opts.threshold, levels=opts.levels)
    return gray


def save_png(image: Image.Image, output_path: str | Path) -> Path:
    path = Path(output_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        image.save(path, format="PNG", compress_level=PNG_COMPRESS_LEVEL)
    except OSError as exc:
        raise ArtifactWriteError(f"cannot write {path}: {exc}") from exc
    return path


def process_file(
    source: ImageSource,
    output_path: str | Path,
    width: int,
    height: int,
    options: HalftoneOptions | None = None,
) -> Path:
    path = save_png(process_for_eink(source, width, height, options), output_path)
    logger.debug("processed e-ink image saved to %s", path)
    return path


def rotate(source: ImageSource, degrees: float) -> Image.Image:
    """Rotate clockwise, growing the canvas and filling uncovered corners with white."""
    return load_image(source).rotate(-degrees, expand=True, fillcolor=WHITE)
