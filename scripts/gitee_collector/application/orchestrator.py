from __future__ import annotations
import asyncio
import logging

from gitee_collector.domain.entities import Outcome
from gitee_collector.domain.interfaces import IMetadataProvider
from .credential_pool import CredentialPool
from .freshness_cache import FreshnessCache
from .repository_collector import RepositoryCollector

log = logging.getLogger(__name__)


class FetchOrchestrator:
    """
    Decides, per target, between the cache and a live fetch, and runs all
    targets concurrently with asyncio.

    All dependencies are injected — this class creates NOTHING itself:
      - FreshnessCache       → what we already know (read-only during a run)
      - CredentialPool       → who may talk to Gitee, and how many at once
      - RepositoryCollector  → how one record is assembled

    Live fetches are bounded by the pool: a coroutine that needs one waits in
    pool.lease() until a provider is free. Cache hits never touch the pool.
    A failing target becomes a failed Outcome and never disturbs the others.
    """

    def __init__(self,cache: FreshnessCache,pool: CredentialPool[IMetadataProvider],collector: RepositoryCollector) -> None:
        self._cache     = cache
        self._pool      = pool
        self._collector = collector

    async def _process(self, target: str, ohpm_url: str | None) -> Outcome:
        cached = self._cache.lookup(target)
        if cached is not None:
            log.debug("Using cached data for %s", target)
            return Outcome(target=target, record=cached, cached=True)

        try:
            async with self._pool.lease() as provider:
                record = await self._collector.collect(provider, target, ohpm_url)
        except Exception as exc:  # noqa: BLE001
            log.warning("Collecting %s failed, skipping: %s", target, exc)
            return Outcome(target=target, error=exc)

        log.info("Collected %s", target)
        return Outcome(target=target, record=record)

    async def run(self,targets: list[str],ohpm_urls: dict[str, str] | None = None) -> list[Outcome]:
        """
        Produce one Outcome per target, ordered by target.

        Completion order is whatever the event loop makes of it; sorting at
        the end keeps aggregation independent of it.
        """
        ohpm_urls = ohpm_urls or {}
        log.info("Starting collection | targets=%d | concurrency=%d | cached=%d",len(targets), self._pool.concurrency, len(self._cache))

        outcomes = await asyncio.gather(*[self._process(t, ohpm_urls.get(t)) for t in targets])

        ok = sum(1 for o in outcomes if o.ok)
        log.info("Collection finished | ok=%d | failed=%d", ok, len(outcomes) - ok)
        return sorted(outcomes, key=lambda o: o.target)
