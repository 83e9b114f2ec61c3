from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from gitee_collector.domain.entities import CatalogItem, CollectionResult
from gitee_collector.domain.interfaces import ICacheStore, IMetadataProvider
from .credential_pool import CredentialPool
from .freshness_cache import DEFAULT_TTL, FreshnessCache
from .merger import merge_outcomes, persist
from .orchestrator import FetchOrchestrator
from .repository_collector import RepositoryCollector
from .target_enumerator import TargetEnumerator

log = logging.getLogger(__name__)

GITEE_CACHE_KEY = "gitee.json"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class GiteeCollectionService:
    """
    The top-level use case: enrich the catalog with Gitee data and persist it.

    Receives all dependencies via constructor injection.
    Knows about the sequence of operations but not the implementation details:
    load cache → enumerate targets → orchestrate → merge → persist.
    """

    def __init__(self,store: ICacheStore,pool: CredentialPool[IMetadataProvider],enumerator: TargetEnumerator | None = None,collector: RepositoryCollector | None = None,cache_key: str = GITEE_CACHE_KEY,ttl: timedelta = DEFAULT_TTL,clock: Callable[[], datetime] = _utcnow) -> None:
        self._store      = store
        self._pool       = pool
        self._enumerator = enumerator or TargetEnumerator()
        self._collector  = collector or RepositoryCollector(clock=clock)
        self._cache_key  = cache_key
        self._ttl        = ttl
        self._clock      = clock

    async def execute(self, items: Iterable[CatalogItem]) -> CollectionResult:
        """
        Run one collection over `items`.

        Per-target failures are dropped from the result. CacheWriteFailed
        propagates to the caller.
        """
        started_at = self._clock()
        log.info("collecting repositories information from gitee (this may take a while)")

        cache = FreshnessCache.load(self._store, self._cache_key, now=started_at, ttl=self._ttl)
        targets, ohpm_urls = self._enumerator.enumerate(items)

        orchestrator = FetchOrchestrator(cache=cache, pool=self._pool, collector=self._collector)
        outcomes = await orchestrator.run(targets, ohpm_urls)

        data = merge_outcomes(outcomes)
        persist(self._store, self._cache_key, data)

        elapsed = (self._clock() - started_at).total_seconds()
        cache_hits = sum(1 for o in outcomes if o.ok and o.cached)
        failures   = sum(1 for o in outcomes if not o.ok)
        log.info("Gitee collection complete | %d targets | %d cached | %d fetched | %d failed | %.0fs",len(targets), cache_hits, len(data) - cache_hits, failures, elapsed)

        return CollectionResult(
            total_targets = len(targets),
            cache_hits    = cache_hits,
            live_fetches  = len(data) - cache_hits,
            failures      = failures,
            persisted     = len(data),
            elapsed_secs  = elapsed,
            data          = data,
        )
