"""Doctor report: host, configuration, process resources, and renderer availability."""

from __future__ import annotations

import platform
import re
from dataclasses import asdict
from datetime import datetime, timezone
from importlib import metadata
from typing import Any

import psutil

from inker_renderer import BrowserRenderer, RenderUnavailable

from .config import AppConfig

_SECRET_RE = re.compile(r"(token|secret|password|pin|apikey|api_key|auth)", re.IGNORECASE)


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if _SECRET_RE.search(str(k)):
                out[k] = "***REDACTED***"
            else:
                out[k] = redact(v)
        return out
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def _package_version(name: str) -> str | None:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return None


def process_resources() -> dict[str, Any]:
    proc = psutil.Process()
    return {
        "pid": proc.pid,
        "rss_mb": round(proc.memory_info().rss / (1024 * 1024), 1),
        "cpu_count": psutil.cpu_count(),
        "memory_available_mb": round(psutil.virtual_memory().available / (1024 * 1024), 1),
    }


async def probe_renderer(renderer: BrowserRenderer) -> dict[str, Any]:
    try:
        await renderer.start()
    except RenderUnavailable as exc:
        return {"available": False, "state": renderer.state.value, "error": str(exc)}
    return {"available": True, "state": renderer.state.value, "error": None}


def build_doctor_payload(cfg: AppConfig, renderer_status: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "versions": {
            "inker": _package_version("inker"),
            "pillow": _package_version("pillow"),
            "numpy": _package_version("numpy"),
            "playwright": _package_version("playwright"),
        },
        "config": redact(asdict(cfg)),
        "process": process_resources(),
        "renderer": renderer_status,
    }
