from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from gitee_collector.domain.errors import CacheReadFailed, CacheWriteFailed
from gitee_collector.domain.interfaces import ICacheStore

log = logging.getLogger(__name__)


class FileCacheStore(ICacheStore):
    """
    ICacheStore backed by one file per key in a local directory.

    Writes go to a ``.tmp`` sibling first and are renamed into place, so a
    crash mid-write never leaves a truncated cache file behind.
    """

    def __init__(self, cache_dir: str) -> None:
        self._dir = cache_dir

    def _path(self, key: str) -> str:
        return os.path.join(self._dir, key)

    def read(self, key: str) -> tuple[dict, bytes] | None:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "rb") as fh:
                payload = fh.read()
            modified = os.path.getmtime(path)
        except OSError as exc:
            raise CacheReadFailed(f"cannot read {path}: {exc}") from exc

        metadata = {
            "path":        path,
            "modified_at": datetime.fromtimestamp(modified, tz=timezone.utc),
        }
        log.debug("Read %d bytes from %s", len(payload), path)
        return metadata, payload

    def write(self, key: str, payload: bytes) -> None:
        target = self._path(key)
        tmp = target + ".tmp"
        try:
            os.makedirs(self._dir, exist_ok=True)
            with open(tmp, "wb") as fh:
                fh.write(payload)
            os.replace(tmp, target)
        except OSError as exc:
            raise CacheWriteFailed(f"cannot write {target}: {exc}") from exc
        log.debug("Wrote %d bytes to %s", len(payload), target)
