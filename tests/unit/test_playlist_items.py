import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "renderer"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from inker_core.playlist_items import PlaylistItem, build_playlist_items


def _exists(known):
    return lambda ids: set(ids) & set(known)


class PlaylistItemTests(unittest.TestCase):
    def test_valid_items_with_defaults(self):
        items = build_playlist_items(
            [{"screenId": 1}, {"screenId": "design-4", "order": 7, "duration": 30}, {"screenId": "2"}],
            screen_exists=_exists({1, 2}),
            design_exists=_exists({4}),
        )
        self.assertEqual(
            items,
            [
                PlaylistItem(order=0, duration=60, screen_id=1),
                PlaylistItem(order=7, duration=30, screen_design_id=4),
                PlaylistItem(order=2, duration=60, screen_id=2),
            ],
        )

    def test_malformed_and_missing_items_are_skipped_with_warning(self):
        with self.assertLogs("inker.playlists", level="WARNING") as logs:
            items = build_playlist_items(
                [
                    {"screenId": "abc"},
                    {"screenId": "design-x"},
                    {"screenId": 99},
                    {"screenId": "design-5"},
                    {"screenId": 1, "order": "first"},
                    {"screenId": 1},
                ],
                screen_exists=_exists({1}),
                design_exists=_exists(set()),
            )
        self.assertEqual(items, [PlaylistItem(order=5, duration=60, screen_id=1)])
        self.assertEqual(len(logs.records), 5)

    def test_lookups_are_batched(self):
        calls = []

        def screens(ids):
            calls.append(set(ids))
            return set(ids)

        build_playlist_items([{"screenId": 1}, {"screenId": 2}], screen_exists=screens, design_exists=screens)
        self.assertEqual(calls, [{1, 2}])


if __name__ == "__main__":
    unittest.main()
