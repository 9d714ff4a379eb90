"""Tests for image deduplication, variant probing and status roll-up."""

import httpx
import pytest

from conftest import REGISTRY_HOST, REGISTRY_NAMESPACE, manifest_url
from helm_watchdog.core.registry import RegistryClient
from helm_watchdog.core.validator import (
    ImageValidator,
    dedupe_image_entries,
    determine_overall_status,
    resolve_target_image_name,
)
from helm_watchdog.models import OverallStatus, VariantName, VariantStatus
from helm_watchdog.models.images import ImageEntry, ImageVariantCheck

F, M, E = VariantStatus.FOUND, VariantStatus.MISSING, VariantStatus.ERROR


def _checks(original, amd64, arm64):
    return [
        ImageVariantCheck(name, "t", "img", status, "2024-01-01T00:00:00.000Z")
        for name, status in zip(
            (VariantName.ORIGINAL, VariantName.AMD64, VariantName.ARM64),
            (original, amd64, arm64),
        )
    ]


class TestDetermineOverallStatus:
    @pytest.mark.parametrize("statuses,expected", [
        ((F, F, F), OverallStatus.ALL_FOUND),
        ((M, M, M), OverallStatus.MISSING),
        ((E, F, F), OverallStatus.ERROR),
        ((F, E, M), OverallStatus.ERROR),
        ((E, E, E), OverallStatus.ERROR),
        ((F, M, M), OverallStatus.ALL_FOUND),
        ((F, F, M), OverallStatus.ALL_FOUND),
        ((M, F, F), OverallStatus.PARTIAL),
        ((M, F, M), OverallStatus.PARTIAL),
    ])
    def test_priority_table(self, statuses, expected):
        assert determine_overall_status(_checks(*statuses)) is expected


class TestDedupe:
    def test_target_name_is_last_segment(self):
        assert resolve_target_image_name("langgenius/dify-api") == "dify-api"
        assert resolve_target_image_name("docker.io/library/nginx") == "nginx"
        assert resolve_target_image_name("redis") == "redis"

    def test_shared_reference_merges_paths(self):
        entries = [
            ("worker", ImageEntry("langgenius/dify-api", "1.0")),
            ("api", ImageEntry("langgenius/dify-api", "1.0")),
            ("web", ImageEntry("langgenius/dify-web", "1.0")),
            ("api", ImageEntry("langgenius/dify-api", "1.0")),
        ]
        groups = dedupe_image_entries(entries)
        assert len(groups) == 2
        assert groups[0].paths == ["api", "worker"]
        assert groups[1].paths == ["web"]

    def test_different_tags_stay_separate(self):
        groups = dedupe_image_entries([
            ("a", ImageEntry("acme/x", "1")),
            ("b", ImageEntry("acme/x", "2")),
        ])
        assert [(g.tag, g.paths) for g in groups] == [("1", ["a"]), ("2", ["b"])]


class TestImageValidator:
    def _validator(self, remote, workers=1):
        registry = RegistryClient(remote.client(), REGISTRY_HOST)
        return ImageValidator(registry, REGISTRY_NAMESPACE, workers=workers)

    def test_partial_when_original_missing(self, remote):
        remote.add("HEAD", manifest_url("api", "1.2.0"), httpx.Response(404))
        remote.add("HEAD", manifest_url("api", "1.2.0-amd64"), httpx.Response(200))
        remote.add("HEAD", manifest_url("api", "1.2.0-arm64"), httpx.Response(200))

        payload = self._validator(remote).validate("1.0.0", [("api", ImageEntry("acme/api", "1.2.0"))])

        assert payload.version == "1.0.0"
        assert payload.host == REGISTRY_HOST
        assert payload.namespace == REGISTRY_NAMESPACE
        [record] = payload.images
        assert record.status is OverallStatus.PARTIAL
        assert record.target_image_name == "api"
        assert [v.status for v in record.variants] == [M, F, F]
        assert record.variant(VariantName.AMD64).image == (
            f"{REGISTRY_HOST}/{REGISTRY_NAMESPACE}/api:1.2.0-amd64"
        )
        assert {v.checked_at for v in record.variants} == {payload.checked_at}

    def test_shared_image_probed_once(self, remote):
        for tag in ("1.0", "1.0-amd64", "1.0-arm64"):
            remote.add("HEAD", manifest_url("dify-api", tag), httpx.Response(200))

        payload = self._validator(remote).validate("2.0.0", [
            ("api", ImageEntry("langgenius/dify-api", "1.0")),
            ("worker", ImageEntry("langgenius/dify-api", "1.0")),
        ])

        assert len(remote.requests) == 3
        [record] = payload.images
        assert record.paths == ["api", "worker"]
        assert record.status is OverallStatus.ALL_FOUND

    def test_no_images(self, remote):
        payload = self._validator(remote).validate("1.0.0", [])
        assert payload.images == []
        assert remote.requests == []

    def test_records_sorted_by_target_name(self, remote):
        entries = [
            ("z", ImageEntry("acme/web", "1")),
            ("y", ImageEntry("acme/api", "1")),
            ("x", ImageEntry("other/sandbox", "1")),
        ]
        payload = self._validator(remote).validate("1.0.0", entries)
        assert [r.target_image_name for r in payload.images] == ["api", "sandbox", "web"]
        assert all(r.status is OverallStatus.MISSING for r in payload.images)

    def test_parallel_probes_keep_order(self, remote):
        remote.add("HEAD", manifest_url("api", "1"), httpx.Response(200))
        remote.add("HEAD", manifest_url("web", "1-arm64"), httpx.Response(500))
        entries = [
            ("api", ImageEntry("acme/api", "1")),
            ("web", ImageEntry("acme/web", "1")),
        ]

        payload = self._validator(remote, workers=4).validate("1.0.0", entries)

        api, web = payload.images
        assert [v.name for v in api.variants] == [VariantName.ORIGINAL, VariantName.AMD64, VariantName.ARM64]
        assert [v.status for v in api.variants] == [F, M, M]
        assert api.status is OverallStatus.ALL_FOUND
        assert [v.status for v in web.variants] == [M, M, E]
        assert web.variant(VariantName.ARM64).http_status == 500
        assert web.status is OverallStatus.ERROR

    def test_unexpected_probe_failure_becomes_error(self, remote):
        class Broken(RegistryClient):
            def check_manifest(self, repository_path, tag):
                raise RuntimeError("boom")

        validator = ImageValidator(Broken(remote.client(), REGISTRY_HOST), REGISTRY_NAMESPACE)
        [record] = validator.validate("1.0.0", [("api", ImageEntry("acme/api", "1"))]).images
        assert record.status is OverallStatus.ERROR
        assert record.variants[0].error == "Unexpected error while contacting registry: boom"
