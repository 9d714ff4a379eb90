"""Manifest existence probes against a Docker Registry v2 endpoint."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable
from urllib.parse import quote

import httpx

from helm_watchdog.config.settings import MANIFEST_ACCEPT_HEADER
from helm_watchdog.models import VariantStatus

logger = logging.getLogger(__name__)


class RegistryTokenError(RuntimeError):
    """Raised when a pull token cannot be obtained from the auth realm."""


@dataclass(frozen=True)
class BearerChallenge:
    realm: str
    service: str | None = None
    scope: str | None = None


@dataclass(frozen=True)
class ProbeResult:
    status: VariantStatus
    http_status: int | None = None
    error: str | None = None


def parse_bearer_challenge(header: str | None) -> BearerChallenge | None:
    """Parse ``Bearer realm="...",service="...",scope="..."``.

    Returns None when the header is absent, uses another scheme, or has no realm.
    """
    if not header:
        return None
    trimmed = header.strip()
    if not trimmed.lower().startswith("bearer "):
        return None

    params: dict[str, str] = {}
    for part in trimmed[len("bearer "):].split(","):
        part = part.strip()
        # split on the first '=' only; realms may carry query strings
        key, sep, raw_value = part.partition("=")
        if not sep or not key or not raw_value:
            continue
        params[key.strip().lower()] = raw_value.strip().strip('"')

    realm = params.get("realm")
    if not realm:
        return None
    return BearerChallenge(realm=realm, service=params.get("service"), scope=params.get("scope"))


class TokenCache:
    """Single-flight memo of pull tokens keyed by token URL.

    Concurrent callers asking for the same key share one in-flight exchange.
    A failed exchange is evicted so later callers retry.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Future] = {}

    def get_or_fetch(self, key: str, fetch: Callable[[], str]) -> str:
        with self._lock:
            future = self._entries.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._entries[key] = future

        if owner:
            try:
                future.set_result(fetch())
            except Exception as e:
                with self._lock:
                    self._entries.pop(key, None)
                future.set_exception(e)
        return future.result()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries


class RegistryClient:
    """Checks whether ``<host>/<repository>:<tag>`` resolves to a manifest."""

    def __init__(
        self,
        client: httpx.Client,
        host: str,
        auth_header: str | None = None,
        token_cache: TokenCache | None = None,
    ):
        self.client = client
        self.host = host.rstrip("/")
        self.auth_header = auth_header
        self.tokens = token_cache if token_cache is not None else TokenCache()

    def manifest_url(self, repository_path: str, tag: str) -> str:
        return (
            f"https://{self.host}/v2/{repository_path.lstrip('/')}"
            f"/manifests/{quote(tag, safe='')}"
        )

    # ------------------------------------------------------------------
    # Token exchange
    # ------------------------------------------------------------------

    def token_url(self, challenge: BearerChallenge, repository_path: str) -> str:
        scope = challenge.scope or f"repository:{repository_path}:pull"
        params: dict[str, str] = {}
        if challenge.service:
            params["service"] = challenge.service
        params["scope"] = scope
        return str(httpx.URL(challenge.realm).copy_merge_params(params))

    def _request_token(self, url: str, with_auth: bool) -> str:
        headers = {"Cache-Control": "no-store"}
        if with_auth and self.auth_header:
            headers["Authorization"] = self.auth_header
        response = self.client.get(url, headers=headers)
        if not response.is_success:
            raise RegistryTokenError(f"Registry token request failed with status {response.status_code}")
        try:
            body = response.json()
        except ValueError as e:
            raise RegistryTokenError("Registry token response was not valid JSON") from e
        token = None
        if isinstance(body, dict):
            token = body.get("token") or body.get("access_token")
        if not token:
            raise RegistryTokenError("Registry token response did not include a token")
        return token

    def _exchange_token(self, url: str) -> str:
        # Anonymous first so public registries never see our credentials.
        try:
            return self._request_token(url, with_auth=False)
        except (RegistryTokenError, httpx.HTTPError):
            if not self.auth_header:
                raise
            logger.debug("Anonymous token request failed, retrying with credentials")
            return self._request_token(url, with_auth=True)

    def resolve_token(self, challenge: BearerChallenge, repository_path: str) -> str:
        url = self.token_url(challenge, repository_path)
        return self.tokens.get_or_fetch(url, lambda: self._exchange_token(url))

    # ------------------------------------------------------------------
    # Manifest probe
    # ------------------------------------------------------------------

    def _send(self, url: str, token: str | None) -> httpx.Response:
        headers = {"Accept": MANIFEST_ACCEPT_HEADER}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        elif self.auth_header:
            headers["Authorization"] = self.auth_header

        response = self.client.head(url, headers=headers)
        if response.status_code in (400, 405):
            logger.debug("HEAD rejected with %d for %s, retrying with GET", response.status_code, url)
            response = self.client.get(url, headers=headers)
        return response

    @staticmethod
    def _classify(response: httpx.Response) -> ProbeResult:
        code = response.status_code
        if response.is_success:
            return ProbeResult(VariantStatus.FOUND, code)
        if code == 404:
            return ProbeResult(VariantStatus.MISSING, code)
        if code in (401, 403):
            return ProbeResult(
                VariantStatus.ERROR, code, "Registry denied access to this image (unauthorized)."
            )
        if code in (400, 405):
            verb = "HEAD" if code == 405 else "request"
            return ProbeResult(
                VariantStatus.ERROR, code, f"Registry does not support {verb} for manifest lookup"
            )
        return ProbeResult(VariantStatus.ERROR, code, f"Registry responded with status {code}")

    def check_manifest(self, repository_path: str, tag: str) -> ProbeResult:
        """Probe one tag. Never raises; failures come back as ``error`` results."""
        url = self.manifest_url(repository_path, tag)
        try:
            response = self._send(url, token=None)
            if response.status_code in (401, 403):
                challenge = parse_bearer_challenge(response.headers.get("www-authenticate"))
                if challenge is not None:
                    try:
                        token = self.resolve_token(challenge, repository_path)
                    except (RegistryTokenError, httpx.HTTPError) as e:
                        return ProbeResult(
                            VariantStatus.ERROR,
                            response.status_code,
                            f"Failed to authorize registry request: {e}",
                        )
                    response = self._send(url, token=token)
            result = self._classify(response)
        except httpx.HTTPError as e:
            logger.debug("Transport failure probing %s", url, exc_info=True)
            return ProbeResult(VariantStatus.ERROR, None, str(e) or type(e).__name__)

        logger.debug("Probe %s -> %s (%s)", url, result.status.value, result.http_status)
        return result
