"""Build the sorted per-version image manifest."""

from __future__ import annotations

import yaml

from helm_watchdog.core.image_collector import collect_images, parse_values
from helm_watchdog.models.images import ImageEntry
from helm_watchdog.utils.version_compare import sort_by_version

NO_IMAGES_PLACEHOLDER = "# No image data found in values.yaml\n"


def sort_image_entries(images: dict[str, ImageEntry]) -> list[tuple[str, ImageEntry]]:
    """Order entries by path: semver when both paths are semver, else natural order."""
    return sort_by_version(images.items(), key=lambda item: item[0])


def extract_image_entries(values_yaml: str) -> list[tuple[str, ImageEntry]]:
    """Parse a values document and return its image references, sorted by path."""
    return sort_image_entries(collect_images(parse_values(values_yaml)))


def build_images_yaml(entries: list[tuple[str, ImageEntry]]) -> str:
    """Render sorted entries as the persisted ``path -> {repository, tag}`` document."""
    if not entries:
        return NO_IMAGES_PLACEHOLDER
    mapping = {path: entry.to_dict() for path, entry in entries}
    return yaml.safe_dump(mapping, sort_keys=False, default_flow_style=False, allow_unicode=True)


def parse_images_yaml(text: str) -> dict[str, ImageEntry]:
    """Read a persisted image manifest back; the placeholder yields no images."""
    data = yaml.safe_load(text) if text else None
    if not isinstance(data, dict):
        return {}
    result: dict[str, ImageEntry] = {}
    for path, value in data.items():
        if isinstance(value, dict) and "repository" in value and "tag" in value:
            result[str(path)] = ImageEntry(repository=str(value["repository"]), tag=str(value["tag"]))
    return result
