"""
gitee_collector/config.py — Tunable parameters for the Gitee collector.

Every TTL, endpoint and limit lives here so a calibration change is a
single-file diff. Override by constructing a new CollectorConfig, or read
the environment with CollectorConfig.from_env().
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

TOKENS_ENV = "GITEE_TOKENS"
CACHE_DIR_ENV = "GITEE_CACHE_DIR"
DATABASE_URL_ENV = "DATABASE_URL"


def parse_tokens(raw: str | None) -> tuple[str, ...]:
    """
    Split a comma separated token list.

    Absence or emptiness means "no credentials", never an error.
    Blank pieces (e.g. a trailing comma) are ignored.
    """
    if not raw:
        return ()
    return tuple(token.strip() for token in raw.split(",") if token.strip())


@dataclass(frozen=True)
class CollectorConfig:
    """
    Immutable configuration for one collection run.

    All fields have documented defaults.
    """

    # ── Cache ─────────────────────────────────────────────────────────────────
    cache_ttl_days: int = 7
    # Cached records older than this are refetched.

    cache_key: str = "gitee.json"
    # Logical key the collected mapping is stored under.

    cache_dir: str = ".cache"
    # Directory used by the file cache store.

    database_url: str | None = None
    # When set, the PostgreSQL cache store is used instead of cache_dir.

    # ── Credentials ───────────────────────────────────────────────────────────
    tokens: tuple[str, ...] = field(default=(), repr=False)
    # One credential slot per token; the pool size bounds live fetches.

    allow_anonymous: bool = False
    # With no tokens, lend a single unauthenticated client instead of
    # failing every live fetch with NoCredentialsError.

    # ── Upstream API ──────────────────────────────────────────────────────────
    api_base_url: str = "https://gitee.com/api/v5"
    web_base_url: str = "https://gitee.com"

    request_timeout_secs: float = 30.0
    # Transport-level timeout per HTTP call.

    user_agent: str = "gitee-collector/0.1.0"

    participation_weeks: int = 52
    # Length of the weekly commit histogram (one year).

    @classmethod
    def from_env(cls, environ: dict | None = None, **overrides) -> CollectorConfig:
        """Build a config from GITEE_TOKENS / GITEE_CACHE_DIR / DATABASE_URL."""
        env = os.environ if environ is None else environ
        values: dict = {"tokens": parse_tokens(env.get(TOKENS_ENV))}
        if env.get(CACHE_DIR_ENV):
            values["cache_dir"] = env[CACHE_DIR_ENV]
        if env.get(DATABASE_URL_ENV):
            values["database_url"] = env[DATABASE_URL_ENV]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

