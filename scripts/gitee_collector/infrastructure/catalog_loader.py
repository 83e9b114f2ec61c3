from __future__ import annotations
import json
import logging

from gitee_collector.domain.entities import CatalogItem, CatalogRepository

log = logging.getLogger(__name__)


def _parse_item(raw: dict) -> CatalogItem:
    repositories = tuple(
        CatalogRepository(url=repo["url"])
        for repo in raw.get("repositories") or []
        if isinstance(repo, dict) and repo.get("url")
    )
    return CatalogItem(
        name         = raw.get("name") or "",
        repositories = repositories,
        ohpm_url     = raw.get("ohpm_url") or None,
    )


def load_catalog(path: str) -> list[CatalogItem]:
    """
    Read catalog items from a JSON file.

    Accepts either a list of items or an object with an "items" list. Each
    item looks like {"name": ..., "repositories": [{"url": ...}], "ohpm_url": ...}.
    """
    with open(path, "r", encoding="utf-8") as fh:
        raw = json.load(fh)

    if isinstance(raw, dict):
        raw = raw.get("items") or []
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a list of catalog items")

    items = [_parse_item(entry) for entry in raw if isinstance(entry, dict)]
    log.info("Loaded %d catalog items from %s", len(items), path)
    return items
