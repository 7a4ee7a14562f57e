"""Core services: configuration, logging, artifact storage, and the screen content pipeline."""

from .collaborators import (
    ChangeNotifier,
    DeviceEvent,
    DeviceModel,
    EventBus,
    InMemoryModelRepository,
    ModelNotFound,
    ModelRepository,
)
from .config import AppConfig, load_config, save_config
from .diagnostics import build_doctor_payload, probe_renderer
from .playlist_items import PlaylistItem, build_playlist_items
from .screen_content import ContentLocator, ScreenContentService, build_renderer
from .storage import ContentStore, unique_stem
from .welcome import welcome_html

__all__ = [
    "AppConfig",
    "ChangeNotifier",
    "ContentLocator",
    "ContentStore",
    "DeviceEvent",
    "DeviceModel",
    "EventBus",
    "InMemoryModelRepository",
    "ModelNotFound",
    "ModelRepository",
    "PlaylistItem",
    "ScreenContentService",
    "build_doctor_payload",
    "build_playlist_items",
    "build_renderer",
    "load_config",
    "probe_renderer",
    "save_config",
    "unique_stem",
    "welcome_html",
]
