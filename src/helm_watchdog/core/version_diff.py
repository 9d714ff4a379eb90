"""Compare the cached artifacts of two chart versions."""

from __future__ import annotations

import logging

from deepdiff import DeepDiff

from helm_watchdog.core.image_collector import parse_values
from helm_watchdog.core.image_manifest import parse_images_yaml
from helm_watchdog.core.storage import Storage
from helm_watchdog.models.cache import CachePayload, StoredVersion
from helm_watchdog.models.diff import ChangeKind, ImageChange, VersionDiff
from helm_watchdog.models.images import ImageEntry
from helm_watchdog.utils.version_compare import natural_key

logger = logging.getLogger(__name__)


class UnknownVersionError(LookupError):
    """Raised when a requested version is not in the cache manifest."""


def resolve_version(payload: CachePayload, version: str) -> StoredVersion:
    """Find a cached version; ``latest`` means the newest one."""
    if version == "latest":
        if not payload.versions:
            raise UnknownVersionError("Cache is empty")
        return payload.versions[0]
    stored = payload.get(version)
    if stored is None and version[:1] in ("v", "V"):
        stored = payload.get(version[1:])
    if stored is None:
        raise UnknownVersionError(f"Version {version} is not cached")
    return stored


def _image_ref(entry: ImageEntry) -> str:
    return f"{entry.repository}:{entry.tag}"


def diff_images(old: dict[str, ImageEntry], new: dict[str, ImageEntry]) -> list[ImageChange]:
    changes: list[ImageChange] = []
    for path in sorted(old.keys() | new.keys(), key=natural_key):
        before, after = old.get(path), new.get(path)
        if before is None and after is not None:
            changes.append(ImageChange(path, ChangeKind.ADDED, new=_image_ref(after)))
        elif after is None and before is not None:
            changes.append(ImageChange(path, ChangeKind.REMOVED, old=_image_ref(before)))
        elif before != after:
            changes.append(ImageChange(path, ChangeKind.RETAGGED, _image_ref(before), _image_ref(after)))
    return changes


def _format_diff(diff: DeepDiff) -> list[str]:
    """Format DeepDiff output into human-readable strings."""
    details: list[str] = []

    if "values_changed" in diff:
        for path, change in diff["values_changed"].items():
            details.append(f"Changed {path}: {change.get('old_value')!r} -> {change.get('new_value')!r}")

    if "type_changes" in diff:
        for path, change in diff["type_changes"].items():
            details.append(f"Type changed {path}: {change.get('old_value')!r} -> {change.get('new_value')!r}")

    for key, label in (
        ("dictionary_item_added", "Added"),
        ("dictionary_item_removed", "Removed"),
        ("iterable_item_added", "List item added"),
        ("iterable_item_removed", "List item removed"),
    ):
        if key in diff:
            for path in diff[key]:
                details.append(f"{label}: {path}")

    return details


def diff_values(old_yaml: str, new_yaml: str) -> list[str]:
    diff = DeepDiff(parse_values(old_yaml), parse_values(new_yaml), ignore_order=False, verbose_level=2)
    return _format_diff(diff)


def diff_versions(storage: Storage, payload: CachePayload, old: str, new: str) -> VersionDiff:
    """Compare the image manifests and values documents of two cached versions."""
    before = resolve_version(payload, old)
    after = resolve_version(payload, new)
    logger.debug("Diffing %s -> %s", before.version, after.version)

    result = VersionDiff(old_version=before.version, new_version=after.version)
    result.image_changes = diff_images(
        parse_images_yaml(storage.read_content(before.images.url)),
        parse_images_yaml(storage.read_content(after.images.url)),
    )
    result.values_changes = diff_values(
        storage.read_content(before.values.url),
        storage.read_content(after.values.url),
    )
    return result
