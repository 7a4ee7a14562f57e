"""Typed renderer models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SourceKind(str, Enum):
    HTML = "html"
    URL = "url"
    IMAGE = "image"


class BrowserState(str, Enum):
    UNINITIALIZED = "Uninitialized"
    LAUNCHING = "Launching"
    READY = "Ready"


@dataclass(frozen=True)
class RenderRequest:
    source: SourceKind
    payload: str | bytes
    width: int
    height: int
    color_depth: int = 2

    @property
    def dithering(self) -> bool:
        return self.color_depth == 2


@dataclass(frozen=True)
class HalftoneOptions:
    dithering: bool = True
    threshold: int = 128
    contrast: float = 1.2
    normalize_cutoff: float = 0.0
    levels: int = 2


@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    format: str | None
    mode: str
    has_alpha: bool
