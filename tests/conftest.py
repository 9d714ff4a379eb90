"""Shared test fixtures for Helm Watchdog."""

from __future__ import annotations

import io
import json
import tarfile
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from helm_watchdog.config.settings import Settings
from helm_watchdog.core.storage import LocalStorage

INDEX_URL = "https://charts.example.com/index.yaml"
REPO_BASE = "https://charts.example.com/"
REGISTRY_HOST = "registry.example.com"
REGISTRY_NAMESPACE = "mirror/dify"

Handler = Callable[[httpx.Request], httpx.Response]


def make_chart_archive(files: dict[str, str | bytes]) -> bytes:
    """Build an in-memory .tgz holding the given ``{member name: content}`` files."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, text in files.items():
            data = text if isinstance(text, bytes) else text.encode("utf-8")
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def index_yaml(entries: list[dict], chart: str = "dify") -> str:
    # JSON is valid YAML and keeps the fixtures readable
    return json.dumps({"apiVersion": "v1", "entries": {chart: entries}})


class FakeRemote:
    """Routes requests by ``(method, url-without-query)`` and records every call."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, handler: Handler | httpx.Response) -> None:
        if isinstance(handler, httpx.Response):
            response = handler
            handler = lambda request: response  # noqa: E731
        self.routes[(method, url)] = handler

    def calls(self, method: str, url_prefix: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and str(r.url).startswith(url_prefix)
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = request.url
        key = (request.method, f"{url.scheme}://{url.host}{url.path}")
        handler = self.routes.get(key)
        if handler is None:
            return httpx.Response(404)
        return handler(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


def manifest_url(image: str, tag: str) -> str:
    return f"https://{REGISTRY_HOST}/v2/{REGISTRY_NAMESPACE}/{image}/manifests/{tag}"


@pytest.fixture
def cfg(tmp_path: Path) -> Settings:
    """Settings pointed at fake endpoints and a temp storage directory."""
    return Settings(
        index_url=INDEX_URL,
        repo_base=REPO_BASE,
        chart_name="dify",
        storage_dir=tmp_path / "store",
        registry_host=REGISTRY_HOST,
        registry_namespace=REGISTRY_NAMESPACE,
        registry_auth=None,
        http_timeout=5.0,
        probe_workers=1,
        continue_on_error=False,
    )


@pytest.fixture
def storage(cfg: Settings) -> LocalStorage:
    return LocalStorage(cfg.storage_dir, prefix=cfg.storage_prefix)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


def serve_charts(remote: FakeRemote, charts: dict[str, str | bytes]) -> None:
    """Publish an index plus one archive per ``{version: values.yaml text}``."""
    entries = []
    for version, values in charts.items():
        name = f"dify-{version}.tgz"
        entries.append({"version": version, "appVersion": version, "urls": [name]})
        archive = make_chart_archive({"dify/Chart.yaml": f"version: {version}\n", "dify/values.yaml": values})
        remote.add("GET", REPO_BASE + name, httpx.Response(200, content=archive))
    remote.add("GET", INDEX_URL, httpx.Response(200, text=index_yaml(entries)))


def mirror_everything(remote: FakeRemote, image: str, tag: str, status: int = 200) -> None:
    for suffix in ("", "-amd64", "-arm64"):
        remote.add("HEAD", manifest_url(image, tag + suffix), httpx.Response(status))
