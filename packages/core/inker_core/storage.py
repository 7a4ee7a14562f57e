"""Filesystem store for screen artifacts and the URLs they are served under."""

from __future__ import annotations

import secrets
import time
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from inker_renderer.errors import ArtifactWriteError

from .logging_setup import get_logger

logger = get_logger("storage")

TOKEN_BYTES = 8


def unique_stem(kind: str) -> str:
    """``{kind}_{epoch_ms}_{token}``; unique across concurrent pipelines."""
    return f"{kind}_{int(time.time() * 1000)}_{secrets.token_urlsafe(TOKEN_BYTES)}"


class ContentStore:
    def __init__(self, base_dir: str | Path, url_prefix: str = "/uploads/screens") -> None:
        self.base_dir = Path(base_dir)
        self.url_prefix = "/" + url_prefix.strip("/")

    def ensure_dir(self) -> Path:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactWriteError(f"cannot create {self.base_dir}: {exc}") from exc
        return self.base_dir

    def path_for(self, filename: str) -> Path:
        return self.base_dir / filename

    def url_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def path_from_url(self, url: str) -> Path | None:
        """Map a URL issued by this store back to its file; foreign URLs map to None."""
        prefix = self.url_prefix + "/"
        if not url.startswith(prefix):
            return None
        name = PurePosixPath(url[len(prefix):]).name
        if not name or name in (".", ".."):
            return None
        return self.base_dir / name

    def discard(self, paths: Iterable[Path | None]) -> None:
        """Best-effort delete. Missing files are expected; other failures are logged."""
        for path in paths:
            if path is None:
                continue
            try:
                path.unlink()
                logger.debug("deleted file %s", path)
            except FileNotFoundError:
                pass
            except OSError as exc:
                logger.warning("failed to delete file %s: %s", path, exc, extra={"event": "cleanup_failed"})
