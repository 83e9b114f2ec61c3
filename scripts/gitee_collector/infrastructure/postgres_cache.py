from __future__ import annotations
import logging

import psycopg2

from gitee_collector.domain.errors import CacheReadFailed, CacheWriteFailed
from gitee_collector.domain.interfaces import ICacheStore

log = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS collector_cache (
    cache_key  TEXT PRIMARY KEY,
    payload    BYTEA NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


class PostgresCacheStore(ICacheStore):
    """
    ICacheStore backed by a PostgreSQL table, one row per cache key.

    Receives an already-connected psycopg2 connection (injected).
    Does not create or manage the connection itself — that's the
    responsibility of the caller (main.py / dependency wiring).
    """

    def __init__(self, conn) -> None:
        self._conn = conn

    def ensure_schema(self) -> None:
        with self._conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        self._conn.commit()

    def read(self, key: str) -> tuple[dict, bytes] | None:
        try:
            with self._conn.cursor() as cur:
                cur.execute(
                    "SELECT payload, updated_at FROM collector_cache WHERE cache_key = %s",
                    (key,),
                )
                row = cur.fetchone()
        except psycopg2.Error as exc:
            self._conn.rollback()
            raise CacheReadFailed(f"cannot read cache key {key}: {exc}") from exc

        if row is None:
            return None
        payload, updated_at = row
        log.debug("Read cache key %s (updated %s)", key, updated_at)
        return {"updated_at": updated_at}, bytes(payload)

    def write(self, key: str, payload: bytes) -> None:
        """
        Replace the row for `key` in a single statement.

        ON CONFLICT (cache_key) DO UPDATE means:
          - First run      → INSERT
          - Every later run → the whole payload is overwritten
        """
        try:
            with self._conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO collector_cache (cache_key, payload, updated_at)
                    VALUES (%s, %s, NOW())
                    ON CONFLICT (cache_key) DO UPDATE SET
                        payload    = EXCLUDED.payload,
                        updated_at = EXCLUDED.updated_at
                    """,
                    (key, psycopg2.Binary(payload)),
                )
            self._conn.commit()
        except psycopg2.Error as exc:
            self._conn.rollback()
            raise CacheWriteFailed(f"cannot write cache key {key}: {exc}") from exc
        log.debug("Wrote %d bytes to cache key %s", len(payload), key)
