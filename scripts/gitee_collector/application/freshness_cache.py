from __future__ import annotations
import json
import logging
from datetime import datetime, timedelta

from gitee_collector.domain.entities import RepositoryRecord
from gitee_collector.domain.errors import CacheReadFailed
from gitee_collector.domain.interfaces import ICacheStore

log = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=7)


class FreshnessCache:
    """
    Read-only view of the records persisted by the previous run.

    `now` is fixed when the cache is built, so every target in a run is
    judged against the same instant. A record is fresh iff
    generated_at + ttl > now.
    """

    def __init__(self,entries: dict[str, RepositoryRecord],now: datetime,ttl: timedelta = DEFAULT_TTL) -> None:
        self._entries = dict(entries)
        self._now = now
        self._ttl = ttl

    @classmethod
    def load(cls,store: ICacheStore,key: str,now: datetime,ttl: timedelta = DEFAULT_TTL) -> FreshnessCache:
        """
        Read the persisted mapping through `store`.

        Unreadable stores and corrupt JSON are logged and produce an empty
        cache; a single malformed entry is dropped on its own.
        """
        try:
            cached = store.read(key)
        except CacheReadFailed as exc:
            log.warning("error reading gitee cache file: %s", exc)
            return cls({}, now, ttl)

        if cached is None:
            log.info("No gitee cache found under %s", key)
            return cls({}, now, ttl)

        _, payload = cached
        try:
            raw = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            log.warning("error parsing gitee cache file: %s", exc)
            return cls({}, now, ttl)
        if not isinstance(raw, dict):
            log.warning("error parsing gitee cache file: expected an object, got %s", type(raw).__name__)
            return cls({}, now, ttl)

        entries: dict[str, RepositoryRecord] = {}
        for target, data in raw.items():
            try:
                entries[target] = RepositoryRecord.from_dict(data)
            except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as exc:
                log.debug("Skipping malformed cache entry %s: %s", target, exc)

        log.info("Loaded %d cached gitee records", len(entries))
        return cls(entries, now, ttl)

    def __len__(self) -> int:
        return len(self._entries)

    def is_fresh(self, record: RepositoryRecord) -> bool:
        # same as generated_at + ttl > now, without overflowing near datetime.max
        return self._now - record.generated_at < self._ttl

    def lookup(self, target: str) -> RepositoryRecord | None:
        """The cached record for `target` if it is still fresh, else None."""
        record = self._entries.get(target)
        if record is None or not self.is_fresh(record):
            return None
        return record
