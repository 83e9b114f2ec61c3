"""
main.py — Dependency Wiring (Composition Root)
------------------------------------------------
This file has ONE job: wire all the pieces together and run the collector.

It does NOT contain any business logic. It just:
  1. Reads configuration from the environment and the command line
  2. Creates concrete implementations of each interface
  3. Injects them into the classes that need them
  4. Calls the top-level use case (GiteeCollectionService.execute)
  5. Reports the result and exits

Dependency graph (what depends on what):
                         main.py  (wires everything)
                            │
              ┌─────────────┼───────────────────┐
              ▼             ▼                   ▼
    GiteeCollectionService  │     FileCacheStore / PostgresCacheStore
              │             │
              ▼             ▼
    FetchOrchestrator    CredentialPool[GiteeClient]
              │
    ┌─────────┼──────────────┐
    ▼         ▼              ▼
FreshnessCache  TargetEnumerator  RepositoryCollector
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import timedelta

import httpx
import psycopg2

from gitee_collector.config import CollectorConfig

# Application layer
from gitee_collector.application.collect_service import GiteeCollectionService
from gitee_collector.application.credential_pool import CredentialPool
from gitee_collector.application.merger import serialize
from gitee_collector.application.repository_collector import RepositoryCollector
from gitee_collector.domain.entities import CatalogItem
from gitee_collector.domain.errors import CollectorError

# Infrastructure layer
from gitee_collector.infrastructure.catalog_loader import load_catalog
from gitee_collector.infrastructure.file_cache import FileCacheStore
from gitee_collector.infrastructure.gitee_client import GiteeClient
from gitee_collector.infrastructure.postgres_cache import PostgresCacheStore

log = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Dependency wiring
# ---------------------------------------------------------------------------

async def build_and_run(config: CollectorConfig, items: list[CatalogItem], output_path: str | None) -> int:
    """
    Wires all dependencies together and executes the collection use case.

    This is the Composition Root — the only place that knows which
    concrete class implements each interface. Returns the process exit code.
    """
    conn   = psycopg2.connect(config.database_url) if config.database_url else None
    client = httpx.AsyncClient()

    try:
        # Infrastructure implementations
        if conn is not None:
            store = PostgresCacheStore(conn=conn)
            store.ensure_schema()
        else:
            store = FileCacheStore(cache_dir=config.cache_dir)

        pool = CredentialPool.from_tokens(
            config.tokens,
            lambda token: GiteeClient(
                token        = token,
                client       = client,   # injected, shared by every handle
                api_base_url = config.api_base_url,
                web_base_url = config.web_base_url,
                timeout      = config.request_timeout_secs,
                user_agent   = config.user_agent,
                participation_weeks = config.participation_weeks,
            ),
            allow_anonymous = config.allow_anonymous,
        )

        service = GiteeCollectionService(
            store     = store,
            pool      = pool,
            collector = RepositoryCollector(web_base_url=config.web_base_url),
            cache_key = config.cache_key,
            ttl       = timedelta(days=config.cache_ttl_days),
        )

        try:
            result = await service.execute(items)
        except CollectorError as exc:
            log.error("❌ Failed | collected data could not be persisted: %s", exc)
            return 1

        log.info(
            "✅ Success | %d targets | %d cached | %d fetched | %d failed | %.0fs",
            result.total_targets,
            result.cache_hits,
            result.live_fetches,
            result.failures,
            result.elapsed_secs,
        )

        if output_path:
            with open(output_path, "wb") as fh:
                fh.write(serialize(result.data))
            log.info("Gitee data written to %s", output_path)
        return 0

    finally:
        # Always clean up connections, even if an exception occurred
        await client.aclose()
        if conn is not None:
            conn.close()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Collect Gitee repository metadata for the catalog items"
    )
    parser.add_argument("--catalog", required=True, help="JSON file with the catalog items")
    parser.add_argument("--cache-dir", default=None, help="Directory for the file cache (default: $GITEE_CACHE_DIR or .cache)")
    parser.add_argument("--output", default=None, help="Also write the collected data to this file")
    parser.add_argument(
        "--allow-anonymous",
        action  = "store_true",
        help    = "Without GITEE_TOKENS, fetch with one unauthenticated client instead of skipping live fetches",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    _configure_logging(args.verbose)
    config = CollectorConfig.from_env(
        cache_dir       = args.cache_dir,
        allow_anonymous = args.allow_anonymous or None,
    )

    try:
        items = load_catalog(args.catalog)
    except (OSError, json.JSONDecodeError, ValueError) as exc:
        log.error("Cannot load catalog %s: %s", args.catalog, exc)
        sys.exit(1)

    sys.exit(asyncio.run(build_and_run(config, items, args.output)))
