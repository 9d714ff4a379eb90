"""Application configuration and defaults."""

from __future__ import annotations

import base64
import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_INDEX_URL = "https://langgenius.github.io/dify-helm/index.yaml"
DEFAULT_REPO_BASE = "https://langgenius.github.io/dify-helm/"
DEFAULT_REGISTRY_HOST = "g-hsod9681-docker.pkg.coding.net"
DEFAULT_REGISTRY_NAMESPACE = "dify-artifact/dify"

MANIFEST_ACCEPT_HEADER = ",".join([
    "application/vnd.docker.distribution.manifest.v2+json",
    "application/vnd.docker.distribution.manifest.list.v2+json",
    "application/vnd.oci.image.manifest.v1+json",
    "application/vnd.oci.image.index.v1+json",
])

_ENV_PREFIX = "HELM_WATCHDOG_"


def _env(name: str, default: str = "") -> str:
    return os.environ.get(_ENV_PREFIX + name, default)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name)
    if not raw:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _default_registry_auth() -> str | None:
    """Build the Authorization header value for the mirror registry.

    Resolution order matches the deployment docs: an explicit header, then
    username/password (Basic), then a static bearer token.
    """
    explicit = _env("REGISTRY_AUTH")
    if explicit:
        return explicit
    username = _env("REGISTRY_USERNAME")
    password = _env("REGISTRY_PASSWORD")
    if username and password:
        creds = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return f"Basic {creds}"
    token = _env("REGISTRY_BEARER_TOKEN")
    if token:
        return f"Bearer {token}"
    return None


def _default_storage_dir() -> Path:
    return Path(_env("STORAGE_DIR", ".cache/helm"))


@dataclass
class Settings:
    index_url: str = field(default_factory=lambda: _env("INDEX_URL", DEFAULT_INDEX_URL))
    repo_base: str = field(default_factory=lambda: _env("REPO_BASE", DEFAULT_REPO_BASE))
    chart_name: str = field(default_factory=lambda: _env("CHART", "dify"))
    values_filename: str = "values.yaml"
    storage_dir: Path = field(default_factory=_default_storage_dir)
    storage_prefix: str = "helm-watchdog"
    registry_host: str = field(default_factory=lambda: _env("REGISTRY_HOST", DEFAULT_REGISTRY_HOST))
    registry_namespace: str = field(
        default_factory=lambda: _env("REGISTRY_NAMESPACE", DEFAULT_REGISTRY_NAMESPACE)
    )
    registry_auth: str | None = field(default_factory=_default_registry_auth)
    http_timeout: float = field(default_factory=lambda: float(_env("HTTP_TIMEOUT", "30")))
    probe_workers: int = field(default_factory=lambda: int(_env("PROBE_WORKERS", "3")))
    continue_on_error: bool = field(default_factory=lambda: _env_bool("CONTINUE_ON_ERROR"))
    user_agent: str = "helm-watchdog"

    @property
    def cache_path(self) -> str:
        return f"{self.storage_prefix}/cache.json"

    def values_path(self, version: str) -> str:
        return f"{self.storage_prefix}/values/{version}.yaml"

    def images_path(self, version: str) -> str:
        return f"{self.storage_prefix}/images/{version}.yaml"

    def validation_path(self, version: str) -> str:
        return f"{self.storage_prefix}/image-validation/{version}.json"


# Global singleton
settings = Settings()
