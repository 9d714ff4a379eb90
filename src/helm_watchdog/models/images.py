"""Image manifest and registry validation models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from helm_watchdog.models import OverallStatus, VariantName, VariantStatus
from helm_watchdog.utils.encoding import normalize_timestamp, utc_now_iso


@dataclass(frozen=True)
class ImageEntry:
    repository: str
    tag: str

    def to_dict(self) -> dict[str, str]:
        return {"repository": self.repository, "tag": self.tag}


@dataclass(frozen=True)
class ImageVariantCheck:
    name: VariantName
    tag: str
    image: str
    status: VariantStatus
    checked_at: str
    http_status: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name.value,
            "tag": self.tag,
            "image": self.image,
            "status": self.status.value,
            "checkedAt": self.checked_at,
        }
        if self.http_status is not None:
            d["httpStatus"] = self.http_status
        if self.error:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, d: dict) -> ImageVariantCheck:
        # Older payloads used checkTime and upper-case enum values.
        checked = normalize_timestamp(d.get("checkedAt") or d.get("checkTime"))
        http_status = d.get("httpStatus")
        return cls(
            name=VariantName.from_str(d.get("name", "")),
            tag=str(d.get("tag", "")),
            image=str(d.get("image", "")),
            status=VariantStatus.from_str(d.get("status", "")),
            checked_at=checked or utc_now_iso(),
            http_status=http_status if isinstance(http_status, int) else None,
            error=str(d["error"]) if d.get("error") else None,
        )


@dataclass
class ImageValidationRecord:
    source_repository: str
    source_tag: str
    target_image_name: str
    paths: list[str] = field(default_factory=list)
    variants: list[ImageVariantCheck] = field(default_factory=list)
    status: OverallStatus = OverallStatus.ERROR

    def variant(self, name: VariantName) -> ImageVariantCheck | None:
        for v in self.variants:
            if v.name is name:
                return v
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceRepository": self.source_repository,
            "sourceTag": self.source_tag,
            "targetImageName": self.target_image_name,
            "paths": list(self.paths),
            "variants": [v.to_dict() for v in self.variants],
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> ImageValidationRecord:
        paths = d.get("paths")
        variants = d.get("variants")
        return cls(
            source_repository=str(d.get("sourceRepository", "")),
            source_tag=str(d.get("sourceTag", "")),
            target_image_name=str(d.get("targetImageName", "")),
            paths=[str(p) for p in paths] if isinstance(paths, list) else [],
            variants=[ImageVariantCheck.from_dict(v) for v in variants if isinstance(v, dict)]
            if isinstance(variants, list) else [],
            status=OverallStatus.from_str(d.get("status", "")),
        )


@dataclass
class ImageValidationPayload:
    version: str
    checked_at: str
    host: str
    namespace: str
    images: list[ImageValidationRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "checkedAt": self.checked_at,
            "host": self.host,
            "namespace": self.namespace,
            "images": [r.to_dict() for r in self.images],
        }

    @classmethod
    def from_dict(cls, d: dict) -> ImageValidationPayload:
        checked = normalize_timestamp(d.get("checkedAt") or d.get("checkTime"))
        images = d.get("images")
        return cls(
            version=str(d.get("version", "")),
            checked_at=checked or utc_now_iso(),
            host=str(d.get("host", "")),
            namespace=str(d.get("namespace", "")),
            images=[ImageValidationRecord.from_dict(r) for r in images if isinstance(r, dict)]
            if isinstance(images, list) else [],
        )


def count_validation_statuses(images: list[ImageValidationRecord]) -> dict[str, int]:
    """Tally records per aggregate status."""
    counts = {"total": len(images)}
    for status in OverallStatus:
        counts[status.value] = 0
    for record in images:
        counts[record.status.value] += 1
    return counts
