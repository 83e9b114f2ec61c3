from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx

from gitee_collector.domain.entities import Commit, Release, RepositorySummary, parse_datetime
from gitee_collector.domain.errors import ResponseParseFailed, UpstreamRequestFailed
from gitee_collector.domain.interfaces import IMetadataProvider

log = logging.getLogger(__name__)

GITEE_API_URL = "https://gitee.com/api/v5"
GITEE_WEB_URL = "https://gitee.com"
USER_AGENT = "gitee-collector/0.1.0"
REQUEST_TIMEOUT = 30.0
PARTICIPATION_PAGE_SIZE = 100
PARTICIPATION_WEEKS = 52


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def last_page(headers: httpx.Headers, per_page: int) -> int | None:
    """
    Number of the last page of a paginated listing, from Gitee's
    ``total_page`` / ``total_count`` response headers. None when neither is sent.
    """
    try:
        if "total_page" in headers:
            return int(headers["total_page"])
        if "total_count" in headers:
            return math.ceil(int(headers["total_count"]) / per_page)
    except ValueError as exc:
        raise ResponseParseFailed(f"failed to parse pagination headers: {exc}") from exc
    return None


class GiteeClient(IMetadataProvider):
    """
    Concrete implementation of IMetadataProvider for the Gitee REST API v5.

    One instance per token: the credential pool lends these out. The
    constructor receives an httpx.AsyncClient (injected) rather than creating
    one internally, so all instances share one connection pool and tests can
    pass a client built on httpx.MockTransport. A token of None makes an
    unauthenticated client.
    """

    def __init__(self,token: str | None,client: httpx.AsyncClient,api_base_url: str = GITEE_API_URL,web_base_url: str = GITEE_WEB_URL,timeout: float = REQUEST_TIMEOUT,user_agent: str = USER_AGENT,participation_weeks: int = PARTICIPATION_WEEKS,clock: Callable[[], datetime] = _utcnow) -> None:
        self._client = client
        self._api = api_base_url.rstrip("/")
        self._web = web_base_url.rstrip("/")
        self._timeout = timeout
        self._weeks = participation_weeks
        self._clock = clock
        self._headers = {
            "Accept":     "application/json",
            "User-Agent": user_agent,
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    @property
    def authenticated(self) -> bool:
        return "Authorization" in self._headers

    # HTTP plumbing
    async def _request(self, method: str, url: str, params: dict | None = None) -> httpx.Response:
        try:
            response = await self._client.request(method,url,params=params,headers=self._headers,timeout=self._timeout)
        except httpx.RequestError as exc:
            raise UpstreamRequestFailed(f"{method} {url} failed: {exc}") from exc

        if not response.is_success:
            raise UpstreamRequestFailed(
                f"{method} {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        log.debug("%s %s -> %d", method, url, response.status_code)
        return response

    async def _get_json(self, url: str, params: dict | None = None) -> tuple[object, httpx.Response]:
        response = await self._request("GET", url, params)
        try:
            return response.json(), response
        except ValueError as exc:
            raise ResponseParseFailed(f"invalid JSON from {url}: {exc}") from exc

    @staticmethod
    def _expect(value: object, kind: type, what: str) -> object:
        if not isinstance(value, kind):
            raise ResponseParseFailed(f"{what}: expected {kind.__name__}, got {type(value).__name__}")
        return value

    # Anti-Corruption Layer
    def _parse_commit(self, value: object) -> Commit:
        """
        Translate a Gitee commit object into our Commit.

        Gitee sends:                 We store as:
          "html_url"             →  url
          "commit.author.date"   →  ts
        """
        value = self._expect(value, dict, "commit")
        author = (value.get("commit") or {}).get("author") or {}
        try:
            ts = parse_datetime(author.get("date"))
        except ValueError as exc:
            raise ResponseParseFailed(f"invalid commit date {author.get('date')!r}") from exc
        return Commit(url=value.get("html_url") or "", ts=ts)

    def _parse_release(self, owner: str, repo: str, value: object) -> Release:
        value = self._expect(value, dict, "release")
        tag_name = value.get("tag_name") or ""
        try:
            ts = parse_datetime(value.get("created_at"))
        except ValueError as exc:
            raise ResponseParseFailed(f"invalid release date {value.get('created_at')!r}") from exc
        return Release(url=f"{self._web}/{owner}/{repo}/releases/tag/{tag_name}", ts=ts)

    @staticmethod
    def _parse_topics(value: object) -> tuple[str, ...]:
        if not value:
            return ()
        if isinstance(value, str):
            return tuple(t.strip() for t in value.split(",") if t.strip())
        if isinstance(value, list):
            return tuple(t if isinstance(t, str) else str(t.get("name", "")) for t in value if t)
        raise ResponseParseFailed(f"topics: unexpected type {type(value).__name__}")

    # IMetadataProvider implementation
    async def get_repository(self, owner: str, repo: str) -> RepositorySummary:
        data, _ = await self._get_json(f"{self._api}/repos/{owner}/{repo}")
        data = self._expect(data, dict, "repository")
        try:
            return RepositorySummary(
                default_branch = data.get("default_branch") or "",
                description    = data.get("description") or "",
                star_count     = int(data.get("stargazers_count") or 0),
                topics         = self._parse_topics(data.get("topics")),
                url            = data.get("html_url") or f"{self._web}/{owner}/{repo}",
            )
        except (TypeError, ValueError) as exc:
            raise ResponseParseFailed(f"repository {owner}/{repo}: {exc}") from exc

    async def get_contributors_count(self, owner: str, repo: str) -> int:
        data, _ = await self._get_json(
            f"{self._api}/repos/{owner}/{repo}/contributors",
            params={"type": "authors"},
        )
        return len(self._expect(data, list, "contributors"))

    async def get_license(self, owner: str, repo: str) -> str:
        data, _ = await self._get_json(f"{self._api}/repos/{owner}/{repo}/license")
        data = self._expect(data, dict, "license")
        return data.get("license") or ""

    async def get_first_commit(self, owner: str, repo: str, ref: str) -> Commit | None:
        """
        With one commit per page, the total commit count is also the number of
        the page holding the oldest commit. A HEAD request reads it from the
        response headers without downloading a page.
        """
        url = f"{self._api}/repos/{owner}/{repo}/commits"
        head = await self._request("HEAD", url, params={"sha": ref, "per_page": 1, "page": 1})
        page = last_page(head.headers, per_page=1) or 1

        data, _ = await self._get_json(url, params={"sha": ref, "per_page": 1, "page": page})
        commits = self._expect(data, list, "commits")
        if not commits:
            return None
        return self._parse_commit(commits[0])

    async def get_latest_commit(self, owner: str, repo: str, ref: str) -> Commit:
        data, _ = await self._get_json(
            f"{self._api}/repos/{owner}/{repo}/commits",
            params={"sha": ref, "per_page": 1, "page": 1},
        )
        commits = self._expect(data, list, "commits")
        if not commits:
            return Commit(url="")
        return self._parse_commit(commits[0])

    async def get_latest_release(self, owner: str, repo: str) -> Release | None:
        data, _ = await self._get_json(
            f"{self._api}/repos/{owner}/{repo}/releases",
            params={"per_page": 1, "page": 1, "direction": "desc"},
        )
        releases = self._expect(data, list, "releases")
        if not releases:
            return None
        return self._parse_release(owner, repo, releases[0])

    async def get_languages(self, owner: str, repo: str) -> dict[str, int]:
        data, _ = await self._get_json(f"{self._api}/repos/{owner}/{repo}/languages")
        if data is None:
            return {}
        data = self._expect(data, dict, "languages")
        try:
            return {str(name): int(size) for name, size in data.items()}
        except (TypeError, ValueError) as exc:
            raise ResponseParseFailed(f"languages {owner}/{repo}: {exc}") from exc

    async def get_participation_stats(self, owner: str, repo: str) -> list[int]:
        """
        Weekly commit counts over the last `participation_weeks` weeks, oldest first.

        Walks every page of the `since`-filtered commit listing. The page
        count comes from the first response's headers; without them the walk
        stops at the first short page.
        """
        since = self._clock() - timedelta(weeks=self._weeks)
        url = f"{self._api}/repos/{owner}/{repo}/commits"
        weeks = [0] * self._weeks

        page = 1
        final_page: int | None = None
        while True:
            data, response = await self._get_json(url,params={"since": since.strftime("%Y-%m-%dT%H:%M:%SZ"),"per_page": PARTICIPATION_PAGE_SIZE,"page": page})
            commits = self._expect(data, list, "commits")
            if page == 1:
                final_page = last_page(response.headers, PARTICIPATION_PAGE_SIZE)

            for commit in commits:
                date = ((self._expect(commit, dict, "commit").get("commit") or {}).get("author") or {}).get("date")
                try:
                    created_at = parse_datetime(date)
                except ValueError:
                    log.debug("Error parsing commit date %r for %s/%s", date, owner, repo)
                    continue
                if created_at is None:
                    continue
                index = (created_at - since).days // 7
                if 0 <= index < self._weeks:
                    weeks[index] += 1

            if final_page is not None:
                if page >= final_page:
                    break
            elif len(commits) < PARTICIPATION_PAGE_SIZE:
                break
            page += 1

        return weeks

    async def get_ohpm_downloads(self, owner: str, repo: str, ohpm_url: str) -> int:
        data, _ = await self._get_json(ohpm_url)
        data = self._expect(data, dict, f"ohpm package of {owner}/{repo}")
        body = data.get("body")
        downloads = body.get("downloads") if isinstance(body, dict) else None
        if isinstance(downloads, bool) or not isinstance(downloads, int):
            return 0
        return downloads
