"""Version comparison models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class ChangeKind(enum.Enum):
    ADDED = "added"
    REMOVED = "removed"
    RETAGGED = "retagged"


@dataclass
class ImageChange:
    path: str
    kind: ChangeKind
    old: str = ""
    new: str = ""


@dataclass
class VersionDiff:
    old_version: str
    new_version: str
    image_changes: list[ImageChange] = field(default_factory=list)
    values_changes: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.image_changes or self.values_changes)

    @property
    def summary(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for c in self.image_changes:
            key = c.kind.value
            counts[key] = counts.get(key, 0) + 1
        counts["values"] = len(self.values_changes)
        return counts
