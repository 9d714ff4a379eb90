"""Check that every image of a chart version is mirrored in the target registry."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from helm_watchdog.core.registry import ProbeResult, RegistryClient
from helm_watchdog.models import VARIANT_NAMES, OverallStatus, VariantName, VariantStatus
from helm_watchdog.models.images import (
    ImageEntry,
    ImageValidationPayload,
    ImageValidationRecord,
    ImageVariantCheck,
)
from helm_watchdog.utils.encoding import utc_now_iso
from helm_watchdog.utils.version_compare import natural_key

logger = logging.getLogger(__name__)


@dataclass
class ImageGroup:
    repository: str
    tag: str
    paths: list[str] = field(default_factory=list)


def resolve_target_image_name(repository: str) -> str:
    """Mirror name is the last path segment: ``org/app`` -> ``app``."""
    return repository.rstrip("/").split("/")[-1] or repository


def dedupe_image_entries(entries: list[tuple[str, ImageEntry]]) -> list[ImageGroup]:
    """Merge entries sharing ``(repository, tag)``, unioning their paths."""
    groups: dict[tuple[str, str], ImageGroup] = {}
    for path, entry in entries:
        key = (entry.repository, entry.tag)
        group = groups.get(key)
        if group is None:
            group = groups[key] = ImageGroup(repository=entry.repository, tag=entry.tag)
        normalized = path or "root"
        if normalized not in group.paths:
            group.paths.append(normalized)

    for group in groups.values():
        group.paths.sort(key=lambda p: (natural_key(p), p))
    return list(groups.values())


def determine_overall_status(variants: list[ImageVariantCheck]) -> OverallStatus:
    """Roll three variant results up into one status.

    An image that publishes only a multi-arch manifest under its plain tag
    counts as fully available even when the arch-suffixed tags are absent.
    """
    statuses = [v.status for v in variants]
    if all(s is VariantStatus.FOUND for s in statuses):
        return OverallStatus.ALL_FOUND
    if all(s is VariantStatus.MISSING for s in statuses):
        return OverallStatus.MISSING
    if any(s is VariantStatus.ERROR for s in statuses):
        return OverallStatus.ERROR
    original = next((v for v in variants if v.name is VariantName.ORIGINAL), None)
    if original is not None and original.status is VariantStatus.FOUND:
        return OverallStatus.ALL_FOUND
    return OverallStatus.PARTIAL


class ImageValidator:
    """Probes each unique image in all declared variants."""

    def __init__(self, registry: RegistryClient, namespace: str, workers: int = 1):
        self.registry = registry
        self.namespace = namespace.rstrip("/")
        self.workers = max(1, workers)

    def repository_path(self, target_image_name: str) -> str:
        return f"{self.namespace}/{target_image_name}"

    def _probe(self, repository_path: str, tag: str) -> ProbeResult:
        try:
            return self.registry.check_manifest(repository_path, tag)
        except Exception as e:
            logger.debug("Unexpected failure probing %s:%s", repository_path, tag, exc_info=True)
            return ProbeResult(VariantStatus.ERROR, None, f"Unexpected error while contacting registry: {e}")

    def validate(self, version: str, entries: list[tuple[str, ImageEntry]]) -> ImageValidationPayload:
        groups = dedupe_image_entries(entries)
        checked_at = utc_now_iso()

        jobs: list[tuple[str, str]] = []
        for group in groups:
            path = self.repository_path(resolve_target_image_name(group.repository))
            for variant in VARIANT_NAMES:
                jobs.append((path, variant.tag_for(group.tag)))

        if self.workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                results = list(pool.map(lambda job: self._probe(*job), jobs))
        else:
            results = [self._probe(*job) for job in jobs]

        records: list[ImageValidationRecord] = []
        it = iter(results)
        for group in groups:
            target = resolve_target_image_name(group.repository)
            path = self.repository_path(target)
            variants: list[ImageVariantCheck] = []
            for variant in VARIANT_NAMES:
                tag = variant.tag_for(group.tag)
                result = next(it)
                variants.append(ImageVariantCheck(
                    name=variant,
                    tag=tag,
                    image=f"{self.registry.host}/{path}:{tag}",
                    status=result.status,
                    checked_at=checked_at,
                    http_status=result.http_status,
                    error=result.error,
                ))
            record = ImageValidationRecord(
                source_repository=group.repository,
                source_tag=group.tag,
                target_image_name=target,
                paths=group.paths,
                variants=variants,
                status=determine_overall_status(variants),
            )
            logger.debug("%s:%s -> %s", group.repository, group.tag, record.status.value)
            records.append(record)

        records.sort(key=lambda r: natural_key(r.target_image_name))
        return ImageValidationPayload(
            version=version,
            checked_at=checked_at,
            host=self.registry.host,
            namespace=self.namespace,
            images=records,
        )
