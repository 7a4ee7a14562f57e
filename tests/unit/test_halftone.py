import random
import struct
import sys
import tempfile
import unittest
import zlib
from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "renderer"))

from inker_renderer.errors import ArtifactWriteError, DecodeError
from inker_renderer.halftone import (
    adjust_contrast,
    diffuse_error,
    floyd_steinberg,
    image_metadata,
    load_image,
    process_file,
    process_for_eink,
    rotate,
)
from inker_renderer.models import HalftoneOptions


def _png_bytes(image: Image.Image) -> bytes:
    buf = BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def _gradient(width: int, height: int) -> Image.Image:
    row = np.linspace(0, 255, width, dtype=np.float64)
    arr = np.tile(row, (height, 1)).astype(np.uint8)
    return Image.fromarray(arr)


def _lost_error(errors: list[float], width: int, height: int) -> float:
    """Share of each pixel's error whose diffusion target lies outside the image."""
    lost = 0.0
    for y in range(height):
        for x in range(width):
            e = errors[y * width + x]
            if x == width - 1:
                lost += e * 7 / 16
            if y == height - 1:
                lost += e * (3 + 5 + 1) / 16
            else:
                if x == 0:
                    lost += e * 3 / 16
                if x == width - 1:
                    lost += e * 1 / 16
    return lost


class DiffuseErrorTests(unittest.TestCase):
    def test_known_two_by_two(self):
        work = [100.0, 100.0, 100.0, 100.0]
        diffuse_error(work, 2, 2, threshold=128)
        self.assertEqual(work, [0.0, 255.0, 0.0, 0.0])

    def test_threshold_is_inclusive_for_white(self):
        work = [128.0]
        diffuse_error(work, 1, 1, threshold=128)
        self.assertEqual(work, [255.0])

        work = [127.0]
        diffuse_error(work, 1, 1, threshold=128)
        self.assertEqual(work, [0.0])

    def test_error_is_conserved(self):
        rng = random.Random(7)
        width, height = 17, 11
        original = [float(rng.randint(0, 255)) for _ in range(width * height)]
        work = list(original)

        errors = diffuse_error(work, width, height, threshold=128)

        moved_out = _lost_error(errors, width, height)
        self.assertAlmostEqual(sum(original) - sum(work), moved_out, places=6)

    def test_edges_and_degenerate_shapes(self):
        for width, height in ((1, 1), (1, 9), (9, 1), (2, 3)):
            work = [90.0] * (width * height)
            diffuse_error(work, width, height)
            self.assertTrue(all(v in (0.0, 255.0) for v in work))

    def test_more_levels_quantize_to_palette(self):
        work = [float(v) for v in range(0, 256, 5)]
        diffuse_error(work, len(work), 1, levels=4)
        self.assertTrue(set(work) <= {0.0, 85.0, 170.0, 255.0})

    def test_rejects_mismatched_buffer(self):
        with self.assertRaises(ValueError):
            diffuse_error([0.0, 1.0, 2.0], 2, 2)


class FloydSteinbergTests(unittest.TestCase):
    def test_deterministic(self):
        gray = _gradient(97, 31)
        first = floyd_steinberg(gray, threshold=128)
        second = floyd_steinberg(gray, threshold=128)
        self.assertEqual(first.tobytes(), second.tobytes())

    def test_binary_output_preserves_mean_tone(self):
        gray = Image.new("L", (64, 64), 64)
        out = floyd_steinberg(gray)
        values = np.asarray(out)
        self.assertEqual(set(np.unique(values).tolist()), {0, 255})
        self.assertAlmostEqual(values.mean(), 64, delta=8)


class ProcessForEinkTests(unittest.TestCase):
    def test_output_size_is_exact_for_any_aspect(self):
        for size in ((100, 100), (1600, 200), (37, 900), (1, 1), (800, 480), (1, 10000), (10000, 1)):
            src = Image.new("RGB", size, (120, 40, 200))
            out = process_for_eink(src, 800, 480)
            self.assertEqual(out.size, (800, 480), size)
            self.assertEqual(out.mode, "L")

    def test_white_square_is_letterboxed_on_white(self):
        src = Image.new("RGB", (100, 100), (255, 255, 255))
        out = process_for_eink(_png_bytes(src), 800, 480, HalftoneOptions(dithering=False))
        self.assertEqual(out.size, (800, 480))
        self.assertEqual(np.asarray(out).min(), 255)

    def test_content_is_centered_not_cropped(self):
        src = Image.new("RGB", (100, 100), (0, 0, 0))
        out = np.asarray(process_for_eink(src, 800, 480, HalftoneOptions(dithering=False)))
        # 100x100 scales to 480x480, leaving 160px white bars left and right.
        self.assertEqual(out[240, 400], 0)
        self.assertEqual(out[0, 400], 0)
        self.assertEqual(out[479, 400], 0)
        self.assertEqual(out[240, 10], 255)
        self.assertEqual(out[240, 790], 255)

    def test_dithered_output_is_binary(self):
        out = process_for_eink(_gradient(300, 200), 120, 80)
        self.assertTrue(set(np.unique(np.asarray(out)).tolist()) <= {0, 255})

    def test_transparent_pixels_become_white(self):
        src = Image.new("RGBA", (40, 40), (0, 0, 0, 0))
        out = process_for_eink(src, 40, 40, HalftoneOptions(dithering=False))
        self.assertEqual(np.asarray(out).min(), 255)

    def test_contrast_formula(self):
        gray = Image.fromarray(np.array([[0, 64, 128, 200, 255]], dtype=np.uint8))
        out = np.asarray(adjust_contrast(gray, 1.2)).tolist()[0]
        self.assertEqual(out, [0, 51, 128, 214, 255])

    def test_thin_strip_keeps_at_least_one_pixel(self):
        strip = Image.new("RGB", (10000, 1), (0, 0, 0))
        out = np.asarray(process_for_eink(strip, 800, 480, HalftoneOptions(dithering=False)))
        self.assertEqual(out[239, 400], 0)
        self.assertEqual(out[0, 400], 255)

    def test_oversized_header_is_decode_error(self):
        data = bytearray(_png_bytes(Image.new("L", (1, 1), 0)))
        # IHDR payload starts after the 8-byte signature and the chunk length/type.
        data[16:24] = struct.pack(">II", 20000, 20000)
        data[29:33] = struct.pack(">I", zlib.crc32(bytes(data[12:29])))
        with self.assertRaises(DecodeError):
            process_for_eink(bytes(data), 10, 10)

    def test_garbage_input_is_decode_error(self):
        with self.assertRaises(DecodeError):
            process_for_eink(b"definitely not an image", 10, 10)
        with self.assertRaises(DecodeError):
            load_image(Path("/nonexistent/input.png"))

    def test_process_file_writes_png(self):
        with tempfile.TemporaryDirectory() as tmp:
            out = process_file(_gradient(50, 50), Path(tmp) / "deep" / "out.png", 30, 20)
            with Image.open(out) as img:
                self.assertEqual(img.format, "PNG")
                self.assertEqual(img.size, (30, 20))

    def test_unwritable_output_is_artifact_write_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "file"
            blocker.write_text("x", encoding="utf-8")
            with self.assertRaises(ArtifactWriteError) as ctx:
                process_file(Image.new("RGB", (4, 4)), blocker / "out.png", 4, 4)
            self.assertIsInstance(ctx.exception, OSError)


class ImageHelperTests(unittest.TestCase):
    def test_metadata(self):
        meta = image_metadata(_png_bytes(Image.new("RGBA", (12, 7))))
        self.assertEqual((meta.width, meta.height, meta.format), (12, 7, "PNG"))
        self.assertTrue(meta.has_alpha)

    def test_rotate_quarter_turn_swaps_size(self):
        out = rotate(Image.new("RGB", (30, 10), (0, 0, 0)), 90)
        self.assertEqual(out.size, (10, 30))


if __name__ == "__main__":
    unittest.main()
