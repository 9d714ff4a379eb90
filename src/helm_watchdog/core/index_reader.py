"""Fetch and parse the chart repository index."""

from __future__ import annotations

import logging

import httpx
import yaml

from helm_watchdog.config.settings import Settings, settings as default_settings
from helm_watchdog.models.chart import ChartIndexEntry

logger = logging.getLogger(__name__)

# Prefer the C-accelerated YAML loader when available (~10x faster).
_YamlLoader = getattr(yaml, "CSafeLoader", yaml.SafeLoader)


class IndexFetchError(RuntimeError):
    """Raised when the repository index cannot be downloaded or parsed."""


def parse_index(text: str, chart_name: str) -> list[ChartIndexEntry]:
    """Turn an index.yaml document into chart entries, in document order."""
    try:
        data = yaml.load(text, Loader=_YamlLoader)
    except yaml.YAMLError as e:
        raise IndexFetchError(f"Failed to parse helm index: {e}") from e

    if not isinstance(data, dict):
        raise IndexFetchError("Helm index is not a YAML mapping")

    entries = data.get("entries") or {}
    raw_entries = entries.get(chart_name) if isinstance(entries, dict) else None
    if not isinstance(raw_entries, list):
        logger.warning("Chart %r not present in index", chart_name)
        return []

    result: list[ChartIndexEntry] = []
    for raw in raw_entries:
        entry = ChartIndexEntry.from_dict(raw)
        if entry is None:
            logger.debug("Dropping index entry without version or urls: %r", raw)
            continue
        result.append(entry)
    return result


def fetch_index(
    client: httpx.Client,
    cfg: Settings | None = None,
) -> list[ChartIndexEntry]:
    """Download the configured index and return its chart entries."""
    cfg = cfg or default_settings
    try:
        response = client.get(cfg.index_url, headers={"Cache-Control": "no-store"})
    except httpx.HTTPError as e:
        raise IndexFetchError(f"Failed to download helm index: {e}") from e

    if not response.is_success:
        raise IndexFetchError(
            f"Failed to download helm index: {response.status_code} {response.reason_phrase}"
        )

    entries = parse_index(response.text, cfg.chart_name)
    logger.info("Index %s lists %d %s versions", cfg.index_url, len(entries), cfg.chart_name)
    return entries
