"""Interfaces to the surrounding system: device-model lookup and change notifications."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from inker_renderer.errors import InkerError

from .logging_setup import get_logger

logger = get_logger("events")


class ModelNotFound(InkerError):
    kind = "ModelNotFound"


@dataclass(frozen=True)
class DeviceModel:
    id: int
    name: str
    width: int
    height: int
    colors: int = 2


class ModelRepository(Protocol):
    def get_model(self, model_id: int) -> DeviceModel | None: ...


class ChangeNotifier(Protocol):
    def notify_screen_update(self, screen_id: int) -> None: ...

    def notify_playlist_update(self, playlist_id: int) -> None: ...


class InMemoryModelRepository:
    def __init__(self, models: Iterable[DeviceModel] = ()) -> None:
        self._models = {m.id: m for m in models}

    def add(self, model: DeviceModel) -> None:
        self._models[model.id] = model

    def get_model(self, model_id: int) -> DeviceModel | None:
        return self._models.get(model_id)


@dataclass(frozen=True)
class DeviceEvent:
    type: str
    payload: dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[DeviceEvent], None]


class EventBus:
    """In-process change feed. Subscriber failures are logged and never reach the emitter."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def emit(self, event: DeviceEvent) -> None:
        logger.debug("emitting event %s %s", event.type, event.payload)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("event subscriber failed for %s", event.type, extra={"event": "subscriber_failed"})

    def _emit(self, event_type: str, **payload: Any) -> None:
        payload["timestamp"] = int(time.time() * 1000)
        self.emit(DeviceEvent(type=event_type, payload=payload))

    def notify_screen_update(self, screen_id: int) -> None:
        self._emit("screen:updated", screenId=screen_id)

    def notify_playlist_update(self, playlist_id: int) -> None:
        self._emit("playlist:updated", playlistId=playlist_id)
