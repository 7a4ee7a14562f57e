"""Renderer package: browser capture, e-ink halftoning, and thumbnails."""

from .browser import BrowserRenderer, apply_template
from .errors import ArtifactWriteError, DecodeError, InkerError, RenderFailure, RenderTimeout, RenderUnavailable
from .halftone import diffuse_error, floyd_steinberg, image_metadata, load_image, process_file, process_for_eink
from .models import BrowserState, HalftoneOptions, ImageMetadata, RenderRequest, SourceKind
from .thumbnail import create_thumbnail, preview_data_url

__all__ = [
    "ArtifactWriteError",
    "BrowserRenderer",
    "BrowserState",
    "DecodeError",
    "HalftoneOptions",
    "ImageMetadata",
    "InkerError",
    "RenderFailure",
    "RenderRequest",
    "RenderTimeout",
    "RenderUnavailable",
    "SourceKind",
    "apply_template",
    "create_thumbnail",
    "diffuse_error",
    "floyd_steinberg",
    "image_metadata",
    "load_image",
    "preview_data_url",
    "process_file",
    "process_for_eink",
]
