"""Data models for Helm Watchdog."""

from __future__ import annotations

import enum


class VariantName(enum.Enum):
    ORIGINAL = "original"
    AMD64 = "amd64"
    ARM64 = "arm64"

    @classmethod
    def from_str(cls, s: str) -> VariantName:
        lowered = str(s or "").lower()
        for member in cls:
            if member.value == lowered:
                return member
        return cls.ORIGINAL

    def tag_for(self, base_tag: str) -> str:
        if self is VariantName.ORIGINAL:
            return base_tag
        return f"{base_tag}-{self.value}"


class VariantStatus(enum.Enum):
    FOUND = "found"
    MISSING = "missing"
    ERROR = "error"

    @classmethod
    def from_str(cls, s: str) -> VariantStatus:
        lowered = str(s or "").lower()
        for member in cls:
            if member.value == lowered:
                return member
        return cls.ERROR


class OverallStatus(enum.Enum):
    ALL_FOUND = "all_found"
    PARTIAL = "partial"
    MISSING = "missing"
    ERROR = "error"

    @classmethod
    def from_str(cls, s: str) -> OverallStatus:
        lowered = str(s or "").lower()
        for member in cls:
            if member.value == lowered:
                return member
        return cls.ERROR


# Declared probe order; every validation record carries exactly these.
VARIANT_NAMES: tuple[VariantName, ...] = (
    VariantName.ORIGINAL,
    VariantName.AMD64,
    VariantName.ARM64,
)
