"""Artifact persistence behind a small read/write contract."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol
from urllib.parse import unquote, urlparse

from helm_watchdog.models.cache import StoredAsset
from helm_watchdog.utils.encoding import content_hash

logger = logging.getLogger(__name__)


class StorageUnavailableError(RuntimeError):
    """Raised when the artifact store is unconfigured or unreachable."""


class InvalidAssetPathError(ValueError):
    """Raised when a logical asset path resolves outside the storage root."""


@dataclass(frozen=True)
class AssetMetadata:
    url: str
    pathname: str
    size: int
    uploaded_at: datetime


class Storage(Protocol):
    def read(self, path: str) -> AssetMetadata | None: ...

    def read_content(self, url: str) -> str: ...

    def write(self, path: str, content: str, content_type: str) -> StoredAsset: ...

    def ensure_access(self) -> None: ...


class LocalStorage:
    """Stores artifacts as files below ``root``.

    Logical paths carry the storage prefix (``helm-watchdog/values/1.0.0.yaml``);
    the prefix is dropped on disk so the root directory is the prefix.
    """

    def __init__(self, root: Path | str, prefix: str = "helm-watchdog"):
        self.root = Path(root)
        self.prefix = prefix.strip("/")

    def _local_path(self, path: str) -> Path:
        relative = path.lstrip("/")
        if self.prefix and relative.startswith(self.prefix + "/"):
            relative = relative[len(self.prefix) + 1:]
        resolved = (self.root / relative).resolve()
        if not resolved.is_relative_to(self.root.resolve()):
            raise InvalidAssetPathError(f"Asset path escapes storage root: {path}")
        return resolved

    def ensure_access(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot create storage directory {self.root}: {e}") from e
        if not os.access(self.root, os.W_OK):
            raise StorageUnavailableError(f"Storage directory {self.root} is not writable")

    def read(self, path: str) -> AssetMetadata | None:
        local = self._local_path(path)
        try:
            stat = local.stat()
        except FileNotFoundError:
            return None
        return AssetMetadata(
            url=local.as_uri(),
            pathname=path,
            size=stat.st_size,
            uploaded_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    def read_content(self, url: str) -> str:
        if not url.startswith("file://"):
            raise ValueError(f"Invalid local file URL: {url}")
        return Path(unquote(urlparse(url).path)).read_text(encoding="utf-8")

    def write(self, path: str, content: str, content_type: str) -> StoredAsset:
        local = self._local_path(path)
        local.parent.mkdir(parents=True, exist_ok=True)
        # write-then-rename so readers never see a half-written manifest
        fd, tmp = tempfile.mkstemp(dir=local.parent, prefix=f".{local.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp, local)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s (%s, %d bytes)", path, content_type, len(content))
        return StoredAsset(path=path, url=local.as_uri(), hash=content_hash(content))
