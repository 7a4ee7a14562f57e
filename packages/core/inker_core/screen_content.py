"""Screen content pipeline: capture, halftone, thumbnail, and cleanup per content source."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, replace
from pathlib import Path

from inker_renderer import BrowserRenderer, HalftoneOptions, InkerError, RenderRequest, SourceKind
from inker_renderer.halftone import ImageSource, process_for_eink, save_png
from inker_renderer.thumbnail import create_thumbnail

from .collaborators import ChangeNotifier, DeviceModel, ModelNotFound, ModelRepository
from .config import AppConfig
from .logging_setup import get_logger
from .storage import ContentStore, unique_stem
from .welcome import welcome_html

logger = get_logger("screens")

Capture = Callable[[Path], Awaitable[Path]]


@dataclass(frozen=True)
class ContentLocator:
    image_url: str
    thumbnail_url: str
    image_path: Path
    thumbnail_path: Path


def build_renderer(cfg: AppConfig) -> BrowserRenderer:
    return BrowserRenderer(
        headless=cfg.renderer.headless,
        launch_args=cfg.renderer.launch_args,
        navigation_timeout_s=cfg.renderer.navigation_timeout_s,
        font_timeout_s=cfg.renderer.font_timeout_s,
    )


class ScreenContentService:
    """Turns HTML, URLs, and uploads into dithered panel images plus previews.

    Each call runs capture, halftone, thumbnail, and cleanup strictly in order
    under its own unique file names, so concurrent calls share nothing but
    the browser. A call returns a complete locator or raises; it never
    leaves a processed image without its thumbnail.
    """

    def __init__(
        self,
        renderer: BrowserRenderer,
        store: ContentStore,
        models: ModelRepository | None = None,
        notifier: ChangeNotifier | None = None,
        halftone: HalftoneOptions | None = None,
        thumbnail_size: tuple[int, int] = (200, 150),
        thumbnail_quality: int = 80,
    ) -> None:
        self.renderer = renderer
        self.store = store
        self.models = models
        self.notifier = notifier
        self.halftone = halftone or HalftoneOptions()
        self.thumbnail_size = thumbnail_size
        self.thumbnail_quality = thumbnail_quality

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        renderer: BrowserRenderer | None = None,
        models: ModelRepository | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> ScreenContentService:
        return cls(
            renderer=renderer or build_renderer(cfg),
            store=ContentStore(cfg.storage.screens_dir, cfg.storage.url_prefix),
            models=models,
            notifier=notifier,
            halftone=HalftoneOptions(
                threshold=cfg.halftone.threshold,
                contrast=cfg.halftone.contrast,
                normalize_cutoff=cfg.halftone.normalize_cutoff,
            ),
            thumbnail_size=(cfg.thumbnail.width, cfg.thumbnail.height),
            thumbnail_quality=cfg.thumbnail.quality,
        )

    async def render(self, request: RenderRequest) -> ContentLocator:
        if request.source is SourceKind.HTML:
            return await self.from_html(str(request.payload), request.width, request.height, request.color_depth)
        if request.source is SourceKind.URL:
            return await self.from_url(str(request.payload), request.width, request.height, request.color_depth)
        return await self.from_image(bytes(request.payload), request.width, request.height, request.color_depth)

    async def from_html(self, html: str, width: int, height: int, color_depth: int = 2) -> ContentLocator:
        return await self._from_capture(
            SourceKind.HTML,
            "screen",
            width,
            height,
            color_depth,
            lambda raw: self.renderer.render_html(html, width, height, raw),
        )

    async def from_url(self, url: str, width: int, height: int, color_depth: int = 2) -> ContentLocator:
        return await self._from_capture(
            SourceKind.URL,
            "screen",
            width,
            height,
            color_depth,
            lambda raw: self.renderer.render_url(url, width, height, raw),
        )

    async def from_image(self, data: bytes, width: int, height: int, color_depth: int = 2) -> ContentLocator:
        self.store.ensure_dir()
        stem = unique_stem("screen")
        try:
            locator = self._finish(stem, data, width, height, color_depth)
        except InkerError as exc:
            logger.error("image pipeline failed: %s", exc, extra={"event": "pipeline_failed", "source": "image"})
            raise
        logger.info("screen created from image: %s", locator.image_url, extra={"event": "screen_created", "source": "image"})
        return locator

    async def welcome_screen(
        self,
        device_name: str,
        device_id: str,
        width: int,
        height: int,
        color_depth: int = 2,
    ) -> ContentLocator:
        logger.info("generating welcome screen for device %s (%sx%s)", device_name, width, height)
        page = welcome_html(device_name, device_id, width, height)
        return await self._from_capture(
            SourceKind.HTML,
            "welcome",
            width,
            height,
            color_depth,
            lambda raw: self.renderer.render_html(page, width, height, raw),
        )

    def resolve_model(self, model_id: int) -> DeviceModel:
        model = self.models.get_model(model_id) if self.models is not None else None
        if model is None:
            raise ModelNotFound(f"device model {model_id} not found")
        return model

    async def create_from_html(self, html: str, model_id: int) -> ContentLocator:
        model = self.resolve_model(model_id)
        return await self.from_html(html, model.width, model.height, model.colors)

    async def create_from_url(self, url: str, model_id: int) -> ContentLocator:
        model = self.resolve_model(model_id)
        return await self.from_url(url, model.width, model.height, model.colors)

    async def create_from_image(self, data: bytes, model_id: int) -> ContentLocator:
        model = self.resolve_model(model_id)
        return await self.from_image(data, model.width, model.height, model.colors)

    async def create_welcome_screen(self, device_name: str, device_id: str, model_id: int) -> ContentLocator:
        model = self.resolve_model(model_id)
        return await self.welcome_screen(device_name, device_id, model.width, model.height, model.colors)

    def screen_saved(self, screen_id: int, playlist_ids: Iterable[int] = ()) -> None:
        """Tell dependents a persisted screen changed. Notifier failures are logged only."""
        if self.notifier is None:
            return
        try:
            self.notifier.notify_screen_update(screen_id)
            for playlist_id in dict.fromkeys(playlist_ids):
                self.notifier.notify_playlist_update(playlist_id)
        except Exception:
            logger.exception("change notification failed for screen %s", screen_id, extra={"event": "notify_failed"})

    def remove_artifacts(self, image_url: str | None, thumbnail_url: str | None) -> None:
        self.store.discard(
            [
                self.store.path_from_url(image_url) if image_url else None,
                self.store.path_from_url(thumbnail_url) if thumbnail_url else None,
            ]
        )

    def screen_removed(
        self,
        screen_id: int,
        image_url: str | None,
        thumbnail_url: str | None,
        playlist_ids: Iterable[int] = (),
    ) -> None:
        self.remove_artifacts(image_url, thumbnail_url)
        if self.notifier is None:
            return
        try:
            for playlist_id in dict.fromkeys(playlist_ids):
                self.notifier.notify_playlist_update(playlist_id)
        except Exception:
            logger.exception("change notification failed for screen %s", screen_id, extra={"event": "notify_failed"})

    async def _from_capture(
        self,
        source: SourceKind,
        kind: str,
        width: int,
        height: int,
        color_depth: int,
        capture: Capture,
    ) -> ContentLocator:
        self.store.ensure_dir()
        stem = unique_stem(kind)
        raw_path = self.store.path_for(f"raw_{stem}.png")
        try:
            await capture(raw_path)
            locator = self._finish(stem, raw_path, width, height, color_depth)
        except InkerError as exc:
            logger.error("%s pipeline failed: %s", source.value, exc, extra={"event": "pipeline_failed", "source": source.value})
            raise
        finally:
            self.store.discard([raw_path])
        logger.info(
            "screen created from %s: %s",
            source.value,
            locator.image_url,
            extra={"event": "screen_created", "source": source.value},
        )
        return locator

    def _finish(self, stem: str, source: ImageSource, width: int, height: int, color_depth: int) -> ContentLocator:
        processed_name = f"processed_{stem}.png"
        thumbnail_name = f"thumb_{stem}.jpg"
        processed_path = self.store.path_for(processed_name)
        thumbnail_path = self.store.path_for(thumbnail_name)
        options = replace(self.halftone, dithering=color_depth == 2)

        try:
            processed = process_for_eink(source, width, height, options)
            save_png(processed, processed_path)
            create_thumbnail(
                processed,
                thumbnail_path,
                self.thumbnail_size[0],
                self.thumbnail_size[1],
                quality=self.thumbnail_quality,
            )
        except Exception:
            self.store.discard([processed_path, thumbnail_path])
            raise

        return ContentLocator(
            image_url=self.store.url_for(processed_name),
            thumbnail_url=self.store.url_for(thumbnail_name),
            image_path=processed_path,
            thumbnail_path=thumbnail_path,
        )
