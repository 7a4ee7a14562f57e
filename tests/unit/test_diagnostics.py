import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "renderer"))
sys.path.insert(0, str(ROOT / "packages" / "core"))

from browser_fakes import FakeLauncher
from inker_core.config import load_config
from inker_core.diagnostics import build_doctor_payload, probe_renderer, redact
from inker_renderer.browser import BrowserRenderer


class DiagnosticsTests(unittest.TestCase):
    def test_redact_nested(self):
        out = redact({"admin": {"pin": "1111", "name": "x"}, "list": [{"api_key": "k"}]})
        self.assertEqual(out["admin"]["pin"], "***REDACTED***")
        self.assertEqual(out["admin"]["name"], "x")
        self.assertEqual(out["list"][0]["api_key"], "***REDACTED***")

    def test_doctor_payload_shape(self):
        with tempfile.TemporaryDirectory() as tmp:
            cfg = load_config(Path(tmp) / "missing.json", env={})
        payload = build_doctor_payload(cfg, {"available": False})
        self.assertIn("platform", payload)
        self.assertGreater(payload["process"]["rss_mb"], 0)
        self.assertEqual(payload["config"]["halftone"]["threshold"], 128)
        self.assertEqual(payload["renderer"], {"available": False})


class RendererProbeTests(unittest.IsolatedAsyncioTestCase):
    async def test_probe_reports_launch_failure(self):
        renderer = BrowserRenderer(launcher=FakeLauncher(fail=True))
        status = await probe_renderer(renderer)
        self.assertFalse(status["available"])
        self.assertEqual(status["state"], "Uninitialized")
        self.assertIn("could not be started", status["error"])

    async def test_probe_reports_ready(self):
        renderer = BrowserRenderer(launcher=FakeLauncher())
        status = await probe_renderer(renderer)
        await renderer.close()
        self.assertTrue(status["available"])
        self.assertEqual(status["state"], "Ready")


if __name__ == "__main__":
    unittest.main()
