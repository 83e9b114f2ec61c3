from __future__ import annotations
import json
import logging
from typing import Iterable

from gitee_collector.domain.entities import Outcome, RepositoryRecord
from gitee_collector.domain.errors import CacheWriteFailed
from gitee_collector.domain.interfaces import ICacheStore

log = logging.getLogger(__name__)


def merge_outcomes(outcomes: Iterable[Outcome]) -> dict[str, RepositoryRecord]:
    """Keep successful outcomes only, one entry per target."""
    return {o.target: o.record for o in outcomes if o.record is not None}


def serialize(data: dict[str, RepositoryRecord]) -> bytes:
    return json.dumps(
        {target: record.to_dict() for target, record in data.items()},
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")


def persist(store: ICacheStore, key: str, data: dict[str, RepositoryRecord]) -> None:
    """
    Replace the cache content under `key` with `data`.

    Serialization and store failures both surface as CacheWriteFailed.
    """
    try:
        payload = serialize(data)
    except (TypeError, ValueError, OverflowError) as exc:
        raise CacheWriteFailed(f"cannot serialize gitee data: {exc}") from exc

    try:
        store.write(key, payload)
    except CacheWriteFailed:
        raise
    except Exception as exc:
        raise CacheWriteFailed(f"cannot write gitee cache {key}: {exc}") from exc

    log.info("Persisted %d gitee records to %s", len(data), key)
