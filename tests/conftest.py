from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from gitee_collector.domain.entities import (
    CatalogItem,
    CatalogRepository,
    Commit,
    Contributors,
    Release,
    RepositoryRecord,
    RepositorySummary,
)
from gitee_collector.domain.errors import CacheReadFailed, CacheWriteFailed, UpstreamRequestFailed
from gitee_collector.domain.interfaces import ICacheStore, IMetadataProvider

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_record(generated_at: datetime = NOW, stars: int = 10, url: str = "https://gitee.com/o/r") -> RepositoryRecord:
    return RepositoryRecord(
        generated_at        = generated_at,
        contributors        = Contributors(count=3, url=f"{url}/graphs/contributors"),
        description         = "demo repository",
        latest_commit       = Commit(url=f"{url}/commit/abc", ts=generated_at - timedelta(days=1)),
        stars               = stars,
        url                 = url,
        first_commit        = Commit(url=f"{url}/commit/000", ts=datetime(2020, 1, 1, tzinfo=timezone.utc)),
        latest_release      = Release(url=f"{url}/releases/tag/v1.0", ts=datetime(2024, 1, 1, tzinfo=timezone.utc)),
        license             = "MIT",
        languages           = {"Python": 1200, "C": 300},
        participation_stats = tuple([1] * 52),
        topics              = ("harmony", "sdk"),
    )


def make_item(name: str, *urls: str, ohpm_url: str | None = None) -> CatalogItem:
    return CatalogItem(
        name=name,
        repositories=tuple(CatalogRepository(url=u) for u in urls),
        ohpm_url=ohpm_url,
    )


class CallLog:
    """Shared instrumentation for every FakeProvider handed out by one pool."""

    def __init__(self) -> None:
        self.collected: list[str] = []
        self.ohpm_calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0


class FakeProvider(IMetadataProvider):
    """
    Deterministic IMetadataProvider double. No network.

    `fail_repos` names "owner/repo" pairs whose get_repository raises;
    `delay` yields to the event loop inside every pipeline so concurrent
    fetches genuinely overlap.
    """

    def __init__(self, calls: CallLog, fail_repos: set[str] | None = None, delay: float = 0.0) -> None:
        self._calls = calls
        self._fail = fail_repos or set()
        self._delay = delay

    async def get_repository(self, owner: str, repo: str) -> RepositorySummary:
        self._calls.in_flight += 1
        self._calls.max_in_flight = max(self._calls.max_in_flight, self._calls.in_flight)
        try:
            await asyncio.sleep(self._delay)
        finally:
            self._calls.in_flight -= 1
        self._calls.collected.append(f"{owner}/{repo}")
        if f"{owner}/{repo}" in self._fail:
            raise UpstreamRequestFailed(f"{owner}/{repo} returned HTTP 404", status_code=404)
        return RepositorySummary(
            default_branch="master",
            description=f"{repo} description",
            star_count=42,
            topics=("demo",),
            url=f"https://gitee.com/{owner}/{repo}",
        )

    async def get_contributors_count(self, owner: str, repo: str) -> int:
        return 5

    async def get_license(self, owner: str, repo: str) -> str:
        return "Apache-2.0"

    async def get_first_commit(self, owner: str, repo: str, ref: str) -> Commit | None:
        return Commit(url=f"https://gitee.com/{owner}/{repo}/commit/first", ts=datetime(2019, 5, 1, tzinfo=timezone.utc))

    async def get_latest_commit(self, owner: str, repo: str, ref: str) -> Commit:
        return Commit(url=f"https://gitee.com/{owner}/{repo}/commit/last", ts=datetime(2024, 5, 30, tzinfo=timezone.utc))

    async def get_latest_release(self, owner: str, repo: str) -> Release | None:
        return None

    async def get_languages(self, owner: str, repo: str) -> dict[str, int]:
        return {"ArkTS": 4096}

    async def get_participation_stats(self, owner: str, repo: str) -> list[int]:
        return [0] * 51 + [7]

    async def get_ohpm_downloads(self, owner: str, repo: str, ohpm_url: str) -> int:
        self._calls.ohpm_calls.append((f"{owner}/{repo}", ohpm_url))
        return 1234


class InMemoryCacheStore(ICacheStore):
    def __init__(self, payloads: dict[str, bytes] | None = None) -> None:
        self.payloads = dict(payloads or {})
        self.writes = 0
        self.fail_read = False
        self.fail_write = False

    def read(self, key: str) -> tuple[dict, bytes] | None:
        if self.fail_read:
            raise CacheReadFailed("disk on fire")
        if key not in self.payloads:
            return None
        return {}, self.payloads[key]

    def write(self, key: str, payload: bytes) -> None:
        if self.fail_write:
            raise CacheWriteFailed("read-only filesystem")
        self.writes += 1
        self.payloads[key] = payload


@pytest.fixture
def calls() -> CallLog:
    return CallLog()


@pytest.fixture
def store() -> InMemoryCacheStore:
    return InMemoryCacheStore()
