from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone


def parse_datetime(value: str | None) -> datetime | None:
    """Convert an ISO 8601 string (``Z`` or offset suffix) to an aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class CatalogRepository:
    url: str


@dataclass(frozen=True)
class CatalogItem:
    """
    One catalog entry as seen by the collector.

    Only the repository URLs and the optional OHPM package URL matter here;
    everything else about the entry belongs to the catalog itself.
    """
    name:         str
    repositories: tuple[CatalogRepository, ...] = ()
    ohpm_url:     str | None = None


@dataclass(frozen=True)
class Commit:
    url: str
    ts:  datetime | None = None

    def to_dict(self) -> dict:
        return {"url": self.url, "ts": format_datetime(self.ts)}

    @classmethod
    def from_dict(cls, data: dict) -> Commit:
        return cls(url=data.get("url") or "", ts=parse_datetime(data.get("ts")))


@dataclass(frozen=True)
class Release:
    url: str
    ts:  datetime | None = None

    def to_dict(self) -> dict:
        return {"url": self.url, "ts": format_datetime(self.ts)}

    @classmethod
    def from_dict(cls, data: dict) -> Release:
        return cls(url=data.get("url") or "", ts=parse_datetime(data.get("ts")))


@dataclass(frozen=True)
class Contributors:
    count: int
    url:   str


@dataclass(frozen=True)
class RepositorySummary:
    """
    The slice of GET /repos/{owner}/{repo} the collector needs.

    Field names are OURS, not Gitee's. The translation happens in the
    anti-corruption layer (GiteeClient), not here.
    """
    default_branch: str
    description:    str
    star_count:     int
    topics:         tuple[str, ...]
    url:            str


@dataclass(frozen=True)
class RepositoryRecord:
    """
    Immutable metadata record for one Gitee repository.

    This is the unit stored in the cache and handed to downstream consumers.
    to_dict()/from_dict() define the persisted JSON shape; the orchestrator
    and the freshness cache only ever see the dataclass.
    """
    generated_at:        datetime
    contributors:        Contributors
    description:         str
    latest_commit:       Commit
    stars:               int
    url:                 str
    first_commit:        Commit | None = None
    latest_release:      Release | None = None
    license:             str | None = None
    languages:           dict[str, int] = field(default_factory=dict)
    participation_stats: tuple[int, ...] = ()
    topics:              tuple[str, ...] = ()
    ohpm_downloads:      int = 0

    def to_dict(self) -> dict:
        return {
            "generated_at":        format_datetime(self.generated_at),
            "contributors":        {"count": self.contributors.count, "url": self.contributors.url},
            "description":         self.description,
            "first_commit":        self.first_commit.to_dict() if self.first_commit else None,
            "languages":           dict(self.languages),
            "latest_commit":       self.latest_commit.to_dict(),
            "latest_release":      self.latest_release.to_dict() if self.latest_release else None,
            "license":             self.license,
            "participation_stats": list(self.participation_stats),
            "stars":               self.stars,
            "topics":              list(self.topics),
            "url":                 self.url,
            "ohpm_downloads":      self.ohpm_downloads,
        }

    @classmethod
    def from_dict(cls, data: dict) -> RepositoryRecord:
        """Rebuild a record from its JSON form. Raises KeyError/TypeError/ValueError on bad input."""
        generated_at = parse_datetime(data["generated_at"])
        if generated_at is None:
            raise ValueError("generated_at is empty")
        contributors = data["contributors"]
        return cls(
            generated_at        = generated_at,
            contributors        = Contributors(count=int(contributors["count"]), url=contributors["url"]),
            description         = data.get("description") or "",
            first_commit        = Commit.from_dict(data["first_commit"]) if data.get("first_commit") else None,
            languages           = {str(k): int(v) for k, v in (data.get("languages") or {}).items()},
            latest_commit       = Commit.from_dict(data["latest_commit"]),
            latest_release      = Release.from_dict(data["latest_release"]) if data.get("latest_release") else None,
            license             = data.get("license"),
            participation_stats = tuple(int(n) for n in data.get("participation_stats") or ()),
            stars               = int(data.get("stars") or 0),
            topics              = tuple(data.get("topics") or ()),
            url                 = data.get("url") or "",
            ohpm_downloads      = int(data.get("ohpm_downloads") or 0),
        )


@dataclass(frozen=True)
class Outcome:
    """Per-target result of one dispatch: exactly one of record/error is set."""
    target: str
    record: RepositoryRecord | None = None
    error:  Exception | None = None
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class CollectionResult:
    """
    Immutable value object summarising a completed collection run.
    Returned by the application service when persistence succeeds.
    """
    total_targets: int
    cache_hits:    int
    live_fetches:  int
    failures:      int
    persisted:     int
    elapsed_secs:  float
    data:          dict[str, RepositoryRecord] = field(default_factory=dict)
