"""Batch playlist item construction.

Malformed or dangling entries are skipped with a warning instead of failing
the whole batch.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .logging_setup import get_logger

logger = get_logger("playlists")

DESIGN_PREFIX = "design-"
DEFAULT_DURATION_S = 60


@dataclass(frozen=True)
class PlaylistItem:
    order: int
    duration: int
    screen_id: int | None = None
    screen_design_id: int | None = None


def _parse_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            return None
    return None


def build_playlist_items(
    raw_items: Iterable[Mapping[str, Any]],
    screen_exists: Callable[[set[int]], set[int]],
    design_exists: Callable[[set[int]], set[int]],
) -> list[PlaylistItem]:
    """Resolve raw ``{"screenId", "order", "duration"}`` entries into playlist items.

    ``screenId`` is a screen id, or ``"design-<n>"`` for a screen design. The
    two lookups receive every candidate id at once and return the ids that
    exist.
    """
    parsed: list[tuple[str, int, int, int]] = []
    for index, raw in enumerate(raw_items):
        ref = raw.get("screenId")
        order = index if raw.get("order") is None else _parse_id(raw.get("order"))
        duration = DEFAULT_DURATION_S if raw.get("duration") is None else _parse_id(raw.get("duration"))
        if order is None or duration is None:
            logger.warning("invalid order or duration for item %s", ref, extra={"event": "playlist_item_skipped"})
            continue

        if isinstance(ref, str) and ref.startswith(DESIGN_PREFIX):
            design_id = _parse_id(ref[len(DESIGN_PREFIX):])
            if design_id is None:
                logger.warning("invalid screen design id: %s", ref, extra={"event": "playlist_item_skipped"})
                continue
            parsed.append(("design", design_id, order, duration))
        else:
            screen_id = _parse_id(ref)
            if screen_id is None:
                logger.warning("invalid screen id: %s", ref, extra={"event": "playlist_item_skipped"})
                continue
            parsed.append(("screen", screen_id, order, duration))

    design_ids = {item_id for kind, item_id, _, _ in parsed if kind == "design"}
    screen_ids = {item_id for kind, item_id, _, _ in parsed if kind == "screen"}
    existing_designs = design_exists(design_ids) if design_ids else set()
    existing_screens = screen_exists(screen_ids) if screen_ids else set()

    items: list[PlaylistItem] = []
    for kind, item_id, order, duration in parsed:
        if kind == "design":
            if item_id not in existing_designs:
                logger.warning("screen design not found: %s", item_id, extra={"event": "playlist_item_skipped"})
                continue
            items.append(PlaylistItem(order=order, duration=duration, screen_design_id=item_id))
        else:
            if item_id not in existing_screens:
                logger.warning("screen not found: %s", item_id, extra={"event": "playlist_item_skipped"})
                continue
            items.append(PlaylistItem(order=order, duration=duration, screen_id=item_id))
    return items
