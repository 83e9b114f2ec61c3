from datetime import timedelta

import pytest

from conftest import NOW, CallLog, FakeProvider, make_record

from gitee_collector.application.credential_pool import CredentialPool
from gitee_collector.application.freshness_cache import FreshnessCache
from gitee_collector.application.orchestrator import FetchOrchestrator
from gitee_collector.application.repository_collector import RepositoryCollector
from gitee_collector.domain.errors import NoCredentialsError, UpstreamRequestFailed

A = "https://gitee.com/o/a"
B = "https://gitee.com/o/b"
C = "https://gitee.com/o/c"


def _orchestrator(cache: FreshnessCache, providers: list) -> tuple[FetchOrchestrator, CredentialPool]:
    pool = CredentialPool(providers)
    collector = RepositoryCollector(clock=lambda: NOW)
    return FetchOrchestrator(cache=cache, pool=pool, collector=collector), pool


@pytest.mark.asyncio
async def test_fresh_cache_hit_skips_provider(calls: CallLog) -> None:
    cached = make_record(generated_at=NOW - timedelta(days=3), url=A)
    orchestrator, _ = _orchestrator(FreshnessCache({A: cached}, now=NOW), [FakeProvider(calls)])

    outcomes = await orchestrator.run([A])

    assert calls.collected == []
    assert outcomes[0].record == cached
    assert outcomes[0].cached


@pytest.mark.asyncio
async def test_expired_cache_entry_is_refetched(calls: CallLog) -> None:
    stale = make_record(generated_at=NOW - timedelta(days=8), url=A)
    orchestrator, _ = _orchestrator(FreshnessCache({A: stale}, now=NOW), [FakeProvider(calls)])

    outcomes = await orchestrator.run([A])

    assert calls.collected == ["o/a"]
    assert outcomes[0].record != stale
    assert outcomes[0].record.generated_at == NOW
    assert not outcomes[0].cached


@pytest.mark.asyncio
async def test_live_fetches_never_exceed_pool_size(calls: CallLog) -> None:
    targets = [f"https://gitee.com/o/r{i:02d}" for i in range(12)]
    providers = [FakeProvider(calls, delay=0.01) for _ in range(3)]
    orchestrator, pool = _orchestrator(FreshnessCache({}, now=NOW), providers)

    outcomes = await orchestrator.run(targets)

    assert len(calls.collected) == 12
    assert calls.max_in_flight == 3
    assert all(o.ok for o in outcomes)
    assert pool.available == 3


@pytest.mark.asyncio
async def test_one_failure_does_not_affect_the_others(calls: CallLog) -> None:
    providers = [FakeProvider(calls, fail_repos={"o/b"}) for _ in range(2)]
    orchestrator, pool = _orchestrator(FreshnessCache({}, now=NOW), providers)

    outcomes = await orchestrator.run([C, B, A])

    assert [o.target for o in outcomes] == [A, B, C]
    assert [o.ok for o in outcomes] == [True, False, True]
    assert isinstance(outcomes[1].error, UpstreamRequestFailed)
    assert pool.available == 2


@pytest.mark.asyncio
async def test_empty_pool_fails_live_fetches_but_serves_cache(calls: CallLog) -> None:
    cached = make_record(generated_at=NOW - timedelta(days=1), url=A)
    orchestrator, _ = _orchestrator(FreshnessCache({A: cached}, now=NOW), [])

    outcomes = await orchestrator.run([A, B])

    assert outcomes[0].record == cached
    assert isinstance(outcomes[1].error, NoCredentialsError)


@pytest.mark.asyncio
async def test_ohpm_downloads_only_for_targets_with_ohpm_url(calls: CallLog) -> None:
    orchestrator, _ = _orchestrator(FreshnessCache({}, now=NOW), [FakeProvider(calls)])

    outcomes = await orchestrator.run([A, B], {A: "https://ohpm.example/a"})

    assert calls.ohpm_calls == [("o/a", "https://ohpm.example/a")]
    assert outcomes[0].record.ohpm_downloads == 1234
    assert outcomes[1].record.ohpm_downloads == 0


@pytest.mark.asyncio
async def test_collected_record_fields(calls: CallLog) -> None:
    orchestrator, _ = _orchestrator(FreshnessCache({}, now=NOW), [FakeProvider(calls)])

    [outcome] = await orchestrator.run([A])
    record = outcome.record

    assert record.url == A
    assert record.stars == 42
    assert record.license == "Apache-2.0"
    assert record.contributors.count == 5
    assert record.contributors.url == f"{A}/graphs/contributors"
    assert record.first_commit.url.endswith("/commit/first")
    assert record.latest_release is None
    assert record.languages == {"ArkTS": 4096}
    assert len(record.participation_stats) == 52
    assert record.topics == ("demo",)
