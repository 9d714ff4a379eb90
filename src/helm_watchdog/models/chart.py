"""Chart index models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


def _timestamp_text(value: object) -> str | None:
    # YAML loaders turn unquoted ISO timestamps into datetime objects.
    if not value:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True)
class ChartIndexEntry:
    version: str
    urls: list[str] = field(default_factory=list)
    app_version: str | None = None
    created: str | None = None
    digest: str | None = None

    @property
    def chart_url(self) -> str:
        """The canonical archive URL (first listed)."""
        return self.urls[0]

    @classmethod
    def from_dict(cls, d: dict) -> ChartIndexEntry | None:
        """Build an entry from one raw index record.

        Returns None for records without a version or without any URL.
        """
        if not isinstance(d, dict):
            return None
        version = d.get("version")
        if version is None or str(version) == "":
            return None

        raw_urls = d.get("urls")
        if isinstance(raw_urls, list):
            urls = [str(u) for u in raw_urls if u]
        elif d.get("url"):
            urls = [str(d["url"])]
        else:
            urls = []
        if not urls:
            return None

        return cls(
            version=str(version),
            urls=urls,
            app_version=str(d["appVersion"]) if d.get("appVersion") else None,
            created=_timestamp_text(d.get("created")),
            digest=str(d["digest"]) if d.get("digest") else None,
        )
