from __future__ import annotations
import logging
import re
from typing import Iterable

from gitee_collector.domain.entities import CatalogItem
from gitee_collector.domain.errors import InvalidTargetError

log = logging.getLogger(__name__)

GITEE_REPO_URL = re.compile(r"^https://gitee\.com/(?P<owner>[^/]+)/(?P<repo>[^/]+)/?$")


def parse_repo_url(url: str) -> tuple[str, str] | None:
    """
    Return (owner, repo) for a Gitee repository URL, None for anything else.

    Only scheme + host + exactly two path segments are accepted, with an
    optional trailing slash:

        >>> parse_repo_url("https://gitee.com/openharmony/docs/")
        ('openharmony', 'docs')
        >>> parse_repo_url("https://gitee.com/openharmony/docs/tree/master") is None
        True
    """
    match = GITEE_REPO_URL.match(url)
    if match is None:
        return None
    return match.group("owner"), match.group("repo")


def owner_and_repo(url: str) -> tuple[str, str]:
    """Like parse_repo_url, but raises InvalidTargetError instead of returning None."""
    parsed = parse_repo_url(url)
    if parsed is None:
        raise InvalidTargetError(f"invalid repository url: {url}")
    return parsed


class TargetEnumerator:
    """
    Walks the catalog and produces the targets of one run.

    Targets are the repository URLs matching GITEE_REPO_URL with any trailing
    slash removed, sorted and deduplicated. OHPM package URLs are collected on the side, keyed by the
    same target string. Pure function of the catalog: no network, no cache.
    """

    def enumerate(self, items: Iterable[CatalogItem]) -> tuple[list[str], dict[str, str]]:
        targets: set[str] = set()
        ohpm_urls: dict[str, str] = {}
        skipped = 0

        for item in items:
            for repository in item.repositories:
                if parse_repo_url(repository.url) is None:
                    skipped += 1
                    continue
                target = repository.url.rstrip("/")
                targets.add(target)
                if item.ohpm_url:
                    ohpm_urls[target] = item.ohpm_url

        ordered = sorted(targets)
        log.info("TargetEnumerator found %d gitee repositories (%d other urls skipped)", len(ordered), skipped)
        return ordered, ohpm_urls
