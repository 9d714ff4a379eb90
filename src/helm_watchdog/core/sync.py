"""Sync the chart index into the artifact cache and validate mirrored images."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Callable, Iterable
from urllib.parse import urljoin

import httpx

from helm_watchdog.config.settings import Settings, settings as default_settings
from helm_watchdog.core.archive import ArchiveDownloadError, ValuesNotFoundError, fetch_values_yaml
from helm_watchdog.core.image_collector import ValuesParseError
from helm_watchdog.core.image_manifest import build_images_yaml, extract_image_entries
from helm_watchdog.core.index_reader import fetch_index
from helm_watchdog.core.registry import RegistryClient, TokenCache
from helm_watchdog.core.storage import InvalidAssetPathError, Storage
from helm_watchdog.core.validator import ImageValidator
from helm_watchdog.models.cache import CachePayload, StoredVersion, SyncResult
from helm_watchdog.models.chart import ChartIndexEntry
from helm_watchdog.utils.encoding import to_json, utc_now_iso
from helm_watchdog.utils.version_compare import natural_key, sort_by_version

logger = logging.getLogger(__name__)

LogCallback = Callable[[str], None]

# Failures that belong to one chart version rather than to the whole run.
VERSION_ERRORS = (
    ArchiveDownloadError,
    ValuesNotFoundError,
    ValuesParseError,
    InvalidAssetPathError,
    httpx.HTTPError,
)


class SyncError(RuntimeError):
    """A chart version failed and the run was configured to stop.

    ``result`` holds the summary up to and including the failed version;
    the cache manifest has already been written with every version that
    succeeded before it.
    """

    def __init__(self, version: str, cause: Exception, result: SyncResult):
        super().__init__(f"Failed to process version {version}: {cause}")
        self.version = version
        self.cause = cause
        self.result = result


def normalize_forced_versions(values: Iterable[str] | None) -> set[str]:
    """Trim, drop blanks and strip a leading ``v``/``V`` from requested versions."""
    forced: set[str] = set()
    for value in values or []:
        value = value.strip()
        if value[:1] in ("v", "V"):
            value = value[1:]
        if value:
            forced.add(value)
    return forced


def sort_stored_versions(versions: Iterable[StoredVersion]) -> list[StoredVersion]:
    """Newest first: semver precedence, else natural order."""
    return sort_by_version(versions, key=lambda v: v.version, newest_first=True)


def _attach_inline(storage: Storage, payload: CachePayload) -> CachePayload:
    enriched: list[StoredVersion] = []
    for version in payload.versions:
        try:
            values = storage.read_content(version.values.url)
            images = storage.read_content(version.images.url)
            validation = (
                storage.read_content(version.image_validation.url)
                if version.image_validation else None
            )
        except (OSError, ValueError, httpx.HTTPError):
            logger.warning(
                "Failed to load inline content for version %s, skipping", version.version,
                exc_info=True,
            )
            enriched.append(version)
            continue
        enriched.append(replace(
            version,
            values=version.values.with_inline(values),
            images=version.images.with_inline(images),
            image_validation=(
                version.image_validation.with_inline(validation)
                if version.image_validation else None
            ),
        ))
    return CachePayload(last_updated=payload.last_updated, versions=enriched)


def load_cache(
    storage: Storage,
    cfg: Settings | None = None,
    with_inline: bool = False,
) -> CachePayload | None:
    """Read the persisted manifest; None when absent or unreadable."""
    cfg = cfg or default_settings
    meta = storage.read(cfg.cache_path)
    if meta is None:
        return None
    try:
        payload = CachePayload.from_dict(json.loads(storage.read_content(meta.url)))
    except (ValueError, KeyError, TypeError):
        logger.warning("Cache manifest %s is corrupt, ignoring it", cfg.cache_path, exc_info=True)
        return None

    payload = payload.sanitized()
    if with_inline:
        payload = _attach_inline(storage, payload)
    return payload


def _process_entry(
    entry: ChartIndexEntry,
    client: httpx.Client,
    validator: ImageValidator,
    storage: Storage,
    cfg: Settings,
    emit: LogCallback,
) -> StoredVersion:
    chart_url = urljoin(cfg.repo_base, entry.chart_url)
    emit(f"Downloading chart archive: {chart_url}")
    values_yaml = fetch_values_yaml(client, chart_url, cfg.values_filename)
    image_entries = extract_image_entries(values_yaml)
    images_yaml = build_images_yaml(image_entries)
    validation = validator.validate(entry.version, image_entries)
    validation_json = to_json(validation.to_dict())

    values_asset = storage.write(cfg.values_path(entry.version), values_yaml, "application/yaml")
    emit(f"Stored values.yaml at {values_asset.path}")
    images_asset = storage.write(cfg.images_path(entry.version), images_yaml, "application/yaml")
    emit(f"Stored docker-images.yaml at {images_asset.path}")
    validation_asset = storage.write(
        cfg.validation_path(entry.version), validation_json, "application/json"
    )
    emit(f"Stored image validation summary at {validation_asset.path}")

    return StoredVersion(
        version=entry.version,
        chart_url=chart_url,
        values=values_asset,
        images=images_asset,
        image_validation=validation_asset,
        app_version=entry.app_version,
        created_at=entry.created,
        digest=entry.digest,
    )


def _persist_manifest(
    storage: Storage,
    cfg: Settings,
    known: dict[str, StoredVersion],
    emit: LogCallback,
) -> str:
    versions = sort_stored_versions(known.values())
    payload = CachePayload(last_updated=utc_now_iso(), versions=versions).sanitized()
    emit(f"Persisting cache manifest with {len(versions)} versions to {cfg.cache_path}")
    storage.write(cfg.cache_path, to_json(payload.to_dict()), "application/json")
    return payload.last_updated


def sync_helm_data(
    storage: Storage,
    client: httpx.Client | None = None,
    cfg: Settings | None = None,
    force_versions: Iterable[str] | None = None,
    continue_on_error: bool | None = None,
    log: LogCallback | None = None,
) -> SyncResult:
    """Run one sync pass over the chart index.

    New versions are processed, known versions skipped unless forced, and the
    cache manifest is rewritten as a whole at the end. Concurrent runs against
    the same storage must be serialized by the caller.
    """
    cfg = cfg or default_settings
    if continue_on_error is None:
        continue_on_error = cfg.continue_on_error

    def emit(message: str) -> None:
        logger.info(message)
        if log is not None:
            log(message)

    storage.ensure_access()

    forced = normalize_forced_versions(force_versions)
    if forced:
        ordered = sorted(forced, key=natural_key, reverse=True)
        emit(f"Forcing refresh for versions: {', '.join(ordered)}")

    owns_client = client is None
    if client is None:
        client = httpx.Client(
            timeout=cfg.http_timeout,
            headers={"User-Agent": cfg.user_agent},
            follow_redirects=True,
        )

    try:
        emit("Fetching Helm repository index...")
        index_entries = fetch_index(client, cfg)
        emit(f"Retrieved {len(index_entries)} chart versions from index.")

        cache = load_cache(storage, cfg)
        known: dict[str, StoredVersion] = {v.version: v for v in cache.versions} if cache else {}

        # one token cache per run; tokens are never reused across runs
        registry = RegistryClient(client, cfg.registry_host, cfg.registry_auth, TokenCache())
        validator = ImageValidator(registry, cfg.registry_namespace, workers=cfg.probe_workers)

        result = SyncResult()
        matched_forced: set[str] = set()

        for entry in index_entries:
            result.processed += 1
            was_known = entry.version in known
            is_forced = entry.version in forced
            if is_forced:
                matched_forced.add(entry.version)

            if was_known and not is_forced:
                emit(f"Skipping cached version {entry.version}")
                continue

            if is_forced and was_known:
                emit(f"Refreshing cached version {entry.version}")
            elif is_forced:
                emit(f"Processing new version {entry.version} (forced)")
            else:
                emit(f"Processing new version {entry.version}")

            try:
                stored = _process_entry(entry, client, validator, storage, cfg, emit)
            except VERSION_ERRORS as e:
                result.failed[entry.version] = str(e)
                if not continue_on_error:
                    logger.error("Aborting sync at version %s: %s", entry.version, e)
                    result.last_updated = _persist_manifest(storage, cfg, known, emit)
                    raise SyncError(entry.version, e, result) from e
                emit(f"Failed to process version {entry.version}: {e}")
                continue

            known[entry.version] = stored
            if is_forced and was_known:
                result.refreshed.append(entry.version)
            else:
                result.created.append(entry.version)

        for version in sorted(forced - matched_forced, key=natural_key, reverse=True):
            result.unmatched_forced.append(version)
            emit(f"Unable to refresh version {version}: not found in Helm repository index.")

        result.last_updated = _persist_manifest(storage, cfg, known, emit)
    finally:
        if owns_client:
            client.close()

    emit("Helm sync completed.")
    return result
