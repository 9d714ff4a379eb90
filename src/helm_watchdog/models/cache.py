"""Persisted cache manifest and sync summary models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class StoredAsset:
    path: str
    url: str
    hash: str
    inline: str | None = None

    def sanitized(self) -> StoredAsset:
        """Drop inline content; persisted manifests only carry pointers."""
        return replace(self, inline=None)

    def with_inline(self, content: str | None) -> StoredAsset:
        return replace(self, inline=content)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"path": self.path, "url": self.url, "hash": self.hash}
        if self.inline is not None:
            d["inline"] = self.inline
        return d

    @classmethod
    def from_dict(cls, d: dict) -> StoredAsset:
        if not isinstance(d, dict):
            raise ValueError(f"stored asset is not an object: {d!r}")
        return cls(
            path=str(d.get("path", "")),
            url=str(d.get("url", "")),
            hash=str(d.get("hash", "")),
            inline=d.get("inline"),
        )


@dataclass(frozen=True)
class StoredVersion:
    version: str
    chart_url: str
    values: StoredAsset
    images: StoredAsset
    image_validation: StoredAsset | None = None
    app_version: str | None = None
    created_at: str | None = None
    digest: str | None = None

    def sanitized(self) -> StoredVersion:
        return replace(
            self,
            values=self.values.sanitized(),
            images=self.images.sanitized(),
            image_validation=self.image_validation.sanitized() if self.image_validation else None,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "version": self.version,
            "appVersion": self.app_version,
            "createdAt": self.created_at,
            "chartUrl": self.chart_url,
        }
        if self.digest:
            d["digest"] = self.digest
        d["values"] = self.values.to_dict()
        d["images"] = self.images.to_dict()
        if self.image_validation is not None:
            d["imageValidation"] = self.image_validation.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> StoredVersion:
        if not isinstance(d, dict):
            raise ValueError(f"cached version is not an object: {d!r}")
        validation = d.get("imageValidation")
        return cls(
            version=str(d["version"]),
            chart_url=str(d.get("chartUrl", "")),
            values=StoredAsset.from_dict(d.get("values", {})),
            images=StoredAsset.from_dict(d.get("images", {})),
            image_validation=StoredAsset.from_dict(validation) if validation else None,
            app_version=d.get("appVersion"),
            # createTime is the legacy key
            created_at=d.get("createdAt") or d.get("createTime"),
            digest=d.get("digest"),
        )


@dataclass
class CachePayload:
    last_updated: str | None = None
    versions: list[StoredVersion] = field(default_factory=list)

    def sanitized(self) -> CachePayload:
        return CachePayload(
            last_updated=self.last_updated,
            versions=[v.sanitized() for v in self.versions],
        )

    def get(self, version: str) -> StoredVersion | None:
        for v in self.versions:
            if v.version == version:
                return v
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastUpdated": self.last_updated,
            "versions": [v.to_dict() for v in self.versions],
        }

    @classmethod
    def from_dict(cls, d: dict) -> CachePayload:
        if not isinstance(d, dict):
            raise ValueError("cache manifest is not a JSON object")
        versions = d.get("versions") or []
        if not isinstance(versions, list):
            raise ValueError("cache manifest 'versions' is not a list")
        return cls(
            last_updated=d.get("lastUpdated") or d.get("updateTime"),
            versions=[StoredVersion.from_dict(v) for v in versions],
        )


@dataclass
class SyncResult:
    processed: int = 0
    created: list[str] = field(default_factory=list)
    refreshed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    unmatched_forced: list[str] = field(default_factory=list)
    last_updated: str = ""

    @property
    def skipped(self) -> int:
        return self.processed - len(self.created) - len(self.refreshed) - len(self.failed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "created": len(self.created),
            "refreshed": len(self.refreshed),
            "skipped": self.skipped,
            "failed": len(self.failed),
            "versions": list(self.created),
            "refreshedVersions": list(self.refreshed),
            "failedVersions": dict(self.failed),
            "unmatchedForced": list(self.unmatched_forced),
            "lastUpdated": self.last_updated,
        }
