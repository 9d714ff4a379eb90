"""Status color maps."""

from helm_watchdog.models import OverallStatus, VariantStatus
from helm_watchdog.models.diff import ChangeKind

VARIANT_COLORS: dict[VariantStatus, str] = {
    VariantStatus.FOUND: "green",
    VariantStatus.MISSING: "yellow",
    VariantStatus.ERROR: "red bold",
}

OVERALL_COLORS: dict[OverallStatus, str] = {
    OverallStatus.ALL_FOUND: "green",
    OverallStatus.PARTIAL: "yellow",
    OverallStatus.MISSING: "red",
    OverallStatus.ERROR: "red bold",
}

CHANGE_COLORS: dict[ChangeKind, str] = {
    ChangeKind.ADDED: "green",
    ChangeKind.REMOVED: "red",
    ChangeKind.RETAGGED: "yellow",
}


def styled_variant(status: VariantStatus) -> str:
    color = VARIANT_COLORS.get(status, "white")
    return f"[{color}]{status.value}[/{color}]"


def styled_overall(status: OverallStatus) -> str:
    color = OVERALL_COLORS.get(status, "white")
    return f"[{color}]{status.value}[/{color}]"


def styled_change(kind: ChangeKind) -> str:
    color = CHANGE_COLORS.get(kind, "white")
    return f"[{color}]{kind.value}[/{color}]"
