"""
Domain Layer — Interfaces (Abstract Contracts)
-----------------------------------------------
These are ABSTRACT definitions of what the infrastructure must provide.
The domain layer defines the shape; the infrastructure layer implements it.

The application layer (orchestrator, collector, merger) depends on these
and never on GiteeClient or a concrete cache store, so tests can pass a
deterministic FakeProvider and an in-memory store instead.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from .entities import Commit, Release, RepositorySummary


class IMetadataProvider(ABC):
    """
    Contract that any Gitee API client must fulfil.

    One instance is one credential slot: the credential pool lends whole
    providers, so every method runs with the token the instance was built with.
    Every method raises a CollectorError subclass on failure.
    """

    @abstractmethod
    async def get_repository(self, owner: str, repo: str) -> RepositorySummary:
        """Repository summary: default branch, description, stars, topics, url."""
        ...

    @abstractmethod
    async def get_contributors_count(self, owner: str, repo: str) -> int:
        ...

    @abstractmethod
    async def get_license(self, owner: str, repo: str) -> str:
        ...

    @abstractmethod
    async def get_first_commit(self, owner: str, repo: str, ref: str) -> Commit | None:
        """Oldest commit reachable from `ref`, None for an empty repository."""
        ...

    @abstractmethod
    async def get_latest_commit(self, owner: str, repo: str, ref: str) -> Commit:
        ...

    @abstractmethod
    async def get_latest_release(self, owner: str, repo: str) -> Release | None:
        ...

    @abstractmethod
    async def get_languages(self, owner: str, repo: str) -> dict[str, int]:
        """Bytes of code per language."""
        ...

    @abstractmethod
    async def get_participation_stats(self, owner: str, repo: str) -> list[int]:
        """52 weekly commit counts for the last year, oldest week first."""
        ...

    @abstractmethod
    async def get_ohpm_downloads(self, owner: str, repo: str, ohpm_url: str) -> int:
        """Download count published on the repository's OHPM package page."""
        ...


class ICacheStore(ABC):
    """
    Contract that any cache backend must fulfil.
    Swap the JSON file directory for PostgreSQL without touching application code.
    """

    @abstractmethod
    def read(self, key: str) -> tuple[dict, bytes] | None:
        """
        Return (metadata, payload) for `key`, or None if nothing is stored.
        Raises CacheReadFailed if the backend cannot be read.
        """
        ...

    @abstractmethod
    def write(self, key: str, payload: bytes) -> None:
        """
        Replace whatever is stored under `key` with `payload`.
        Raises CacheWriteFailed if the backend cannot be written.
        """
        ...

