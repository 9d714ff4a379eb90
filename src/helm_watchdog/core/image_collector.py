"""Find every ``image: {repository, tag}`` block in a chart values document."""

from __future__ import annotations

import logging
from typing import Any

import yaml

from helm_watchdog.models.images import ImageEntry

logger = logging.getLogger(__name__)

ROOT_PATH = "root"

_YamlLoader = getattr(yaml, "CSafeLoader", yaml.SafeLoader)


class ValuesParseError(ValueError):
    """Raised when a values document is not valid YAML."""


def parse_values(values_yaml: str) -> Any:
    """Parse a values document into plain Python containers.

    Duplicate keys are tolerated (the last one wins), matching how Helm
    itself reads chart values.
    """
    try:
        doc = yaml.load(values_yaml, Loader=_YamlLoader)
    except yaml.YAMLError as e:
        raise ValuesParseError(f"Malformed values document: {e}") from e
    return {} if doc is None else doc


def _segment(key: Any) -> str:
    if isinstance(key, bool):
        return "true" if key else "false"
    return str(key)


def _tag_text(tag: Any) -> str | None:
    # bool is an int subclass but never a valid tag
    if isinstance(tag, bool):
        return None
    if isinstance(tag, str):
        return tag
    if isinstance(tag, int):
        return str(tag)
    if isinstance(tag, float):
        return str(int(tag)) if tag.is_integer() else repr(tag)
    return None


def _image_from_block(block: Any) -> ImageEntry | None:
    if not isinstance(block, dict):
        return None
    repository = block.get("repository")
    if not isinstance(repository, str):
        return None
    tag = _tag_text(block.get("tag"))
    if tag is None:
        return None
    return ImageEntry(repository=repository, tag=tag)


def _visit(node: Any, path: list[str], found: dict[str, ImageEntry]) -> None:
    if isinstance(node, list):
        for index, item in enumerate(node):
            _visit(item, path + [str(index)], found)
        return

    if not isinstance(node, dict):
        return

    entry = _image_from_block(node.get("image"))
    if entry is not None:
        found[".".join(path) or ROOT_PATH] = entry

    for key, value in node.items():
        # already captured above; never descend into an image block
        if key == "image":
            continue
        _visit(value, path + [_segment(key)], found)


def collect_images(document: Any) -> dict[str, ImageEntry]:
    """Depth-first walk returning ``{structural path: ImageEntry}``.

    The path is the dot-joined sequence of keys and list indices leading to
    the map that owns the ``image`` block, or ``"root"`` for the top level.
    """
    found: dict[str, ImageEntry] = {}
    _visit(document, [], found)
    logger.debug("Collected %d image references", len(found))
    return found
