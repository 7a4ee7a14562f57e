"""Persistent service settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from inker_renderer.browser import DEFAULT_LAUNCH_ARGS, FONT_TIMEOUT_S, NAVIGATION_TIMEOUT_S


CONFIG_VERSION = 1


@dataclass
class RendererConfig:
    headless: bool = True
    navigation_timeout_s: float = NAVIGATION_TIMEOUT_S
    font_timeout_s: float = FONT_TIMEOUT_S
    launch_args: list[str] = field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))


@dataclass
class HalftoneConfig:
    threshold: int = 128
    contrast: float = 1.2
    normalize_cutoff: float = 0.0


@dataclass
class ThumbnailConfig:
    width: int = 200
    height: int = 150
    quality: int = 80


@dataclass
class StorageConfig:
    screens_dir: str = "./uploads/screens"
    url_prefix: str = "/uploads/screens"


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "json"
    keep_log_files: int = 7
    log_dir: str | None = None


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    renderer: RendererConfig = field(default_factory=RendererConfig)
    halftone: HalftoneConfig = field(default_factory=HalftoneConfig)
    thumbnail: ThumbnailConfig = field(default_factory=ThumbnailConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def config_root() -> Path:
    if platform.system() == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "Inker"
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Application Support" / "Inker"
    return Path.home() / ".config" / "inker"


def config_path() -> Path:
    override = os.environ.get("INKER_CONFIG")
    if override:
        return Path(override).expanduser()
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    if not isinstance(raw, dict):
        return defaults
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_renderer(cfg: AppConfig) -> None:
    cfg.renderer.navigation_timeout_s = float(max(1.0, min(300.0, float(cfg.renderer.navigation_timeout_s))))
    cfg.renderer.font_timeout_s = float(max(0.0, min(cfg.renderer.navigation_timeout_s, float(cfg.renderer.font_timeout_s))))
    cfg.renderer.launch_args = [str(a) for a in (cfg.renderer.launch_args or [])]


def _normalize_halftone(cfg: AppConfig) -> None:
    cfg.halftone.threshold = max(0, min(255, int(cfg.halftone.threshold)))
    cfg.halftone.contrast = float(max(0.0, cfg.halftone.contrast))
    cfg.halftone.normalize_cutoff = float(max(0.0, min(49.0, cfg.halftone.normalize_cutoff)))


def _normalize_thumbnail(cfg: AppConfig) -> None:
    cfg.thumbnail.width = max(1, int(cfg.thumbnail.width))
    cfg.thumbnail.height = max(1, int(cfg.thumbnail.height))
    cfg.thumbnail.quality = max(1, min(95, int(cfg.thumbnail.quality)))


def _normalize_logging(cfg: AppConfig) -> None:
    cfg.logging.level = str(cfg.logging.level).lower()
    if cfg.logging.level not in ("debug", "info", "warning", "error"):
        cfg.logging.level = "info"
    if cfg.logging.format not in ("json", "simple"):
        cfg.logging.format = "json"
    cfg.logging.keep_log_files = max(2, int(cfg.logging.keep_log_files))


def _apply_env(cfg: AppConfig, env: dict[str, str]) -> None:
    screens_dir = env.get("INKER_SCREENS_DIR") or env.get("SCREENS_DIR")
    if screens_dir:
        cfg.storage.screens_dir = screens_dir
    if env.get("LOG_LEVEL"):
        cfg.logging.level = env["LOG_LEVEL"]
    if env.get("LOG_FORMAT"):
        cfg.logging.format = env["LOG_FORMAT"]


def load_config(path: Path | None = None, env: dict[str, str] | None = None) -> AppConfig:
    path = path or config_path()
    data: dict[str, Any] = {}
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            data = {}
        if not isinstance(data, dict):
            data = {}

    cfg = AppConfig(
        config_version=int(data.get("config_version", CONFIG_VERSION)),
        renderer=_merge(RendererConfig, data.get("renderer", {})),
        halftone=_merge(HalftoneConfig, data.get("halftone", {})),
        thumbnail=_merge(ThumbnailConfig, data.get("thumbnail", {})),
        storage=_merge(StorageConfig, data.get("storage", {})),
        logging=_merge(LoggingConfig, data.get("logging", {})),
    )

    _apply_env(cfg, dict(os.environ) if env is None else env)
    _normalize_renderer(cfg)
    _normalize_halftone(cfg)
    _normalize_thumbnail(cfg)
    _normalize_logging(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
