from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Callable

from gitee_collector.domain.entities import Contributors, RepositoryRecord
from gitee_collector.domain.interfaces import IMetadataProvider
from .target_enumerator import owner_and_repo

log = logging.getLogger(__name__)

WEB_BASE_URL = "https://gitee.com"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class RepositoryCollector:
    """
    Runs the full sub-query sequence for one target and assembles a record.

    The provider is whatever the credential pool lent for this fetch.
    Any sub-query raising fails the whole target; there are no partial
    records and no retries here.
    """

    def __init__(self,clock: Callable[[], datetime] = _utcnow,web_base_url: str = WEB_BASE_URL) -> None:
        self._clock = clock
        self._web_base_url = web_base_url.rstrip("/")

    async def collect(self,provider: IMetadataProvider,target: str,ohpm_url: str | None = None) -> RepositoryRecord:
        owner, repo = owner_and_repo(target)

        summary        = await provider.get_repository(owner, repo)
        contributors   = await provider.get_contributors_count(owner, repo)
        license_id     = await provider.get_license(owner, repo)
        first_commit   = await provider.get_first_commit(owner, repo, summary.default_branch)
        languages      = await provider.get_languages(owner, repo)
        latest_commit  = await provider.get_latest_commit(owner, repo, summary.default_branch)
        latest_release = await provider.get_latest_release(owner, repo)
        ohpm_downloads = 0
        if ohpm_url:
            ohpm_downloads = await provider.get_ohpm_downloads(owner, repo, ohpm_url)
        participation  = await provider.get_participation_stats(owner, repo)

        log.debug("Collected %s/%s (%d contributors, %d stars)", owner, repo, contributors, summary.star_count)

        return RepositoryRecord(
            generated_at        = self._clock(),
            contributors        = Contributors(
                count = contributors,
                url   = f"{self._web_base_url}/{owner}/{repo}/graphs/contributors",
            ),
            description         = summary.description,
            first_commit        = first_commit,
            languages           = dict(languages),
            latest_commit       = latest_commit,
            latest_release      = latest_release,
            license             = license_id,
            participation_stats = tuple(participation),
            stars               = summary.star_count,
            topics              = summary.topics,
            url                 = summary.url,
            ohpm_downloads      = ohpm_downloads,
        )
