"""End-to-end tests for the sync orchestrator against fake remotes."""

import json

import httpx
import pytest
import yaml

from conftest import REPO_BASE, mirror_everything, serve_charts
from helm_watchdog.core.image_manifest import NO_IMAGES_PLACEHOLDER
from helm_watchdog.core.storage import LocalStorage, StorageUnavailableError
from helm_watchdog.core.sync import SyncError, load_cache, normalize_forced_versions, sync_helm_data

API_VALUES = "api:\n  image:\n    repository: acme/api\n    tag: 1.2.0\n"


def _run(remote, storage, cfg, **kwargs):
    with remote.client() as client:
        return sync_helm_data(storage, client=client, cfg=cfg, **kwargs)


def _manifest(storage, cfg) -> dict:
    return json.loads((storage.root / "cache.json").read_text())


class TestNormalizeForcedVersions:
    def test_trims_and_strips_prefix(self):
        assert normalize_forced_versions([" v1.0.0 ", "V2.0.0", "3.0.0", "", "  "]) == {
            "1.0.0", "2.0.0", "3.0.0",
        }

    def test_none(self):
        assert normalize_forced_versions(None) == set()


class TestSyncHelmData:
    def test_new_version_end_to_end(self, remote, storage, cfg):
        serve_charts(remote, {"1.0.0": API_VALUES})
        mirror_everything(remote, "api", "1.2.0")
        messages = []

        result = _run(remote, storage, cfg, log=messages.append)

        assert result.processed == 1
        assert result.created == ["1.0.0"]
        assert result.skipped == 0
        assert result.refreshed == []
        assert result.last_updated

        images = yaml.safe_load((storage.root / "images" / "1.0.0.yaml").read_text())
        assert images == {"api": {"repository": "acme/api", "tag": "1.2.0"}}
        assert (storage.root / "values" / "1.0.0.yaml").read_text() == API_VALUES

        validation = json.loads((storage.root / "image-validation" / "1.0.0.json").read_text())
        assert validation["images"][0]["status"] == "all_found"
        assert [v["name"] for v in validation["images"][0]["variants"]] == ["original", "amd64", "arm64"]

        manifest = _manifest(storage, cfg)
        assert manifest["lastUpdated"] == result.last_updated
        [stored] = manifest["versions"]
        assert stored["version"] == "1.0.0"
        assert stored["chartUrl"] == REPO_BASE + "dify-1.0.0.tgz"
        assert stored["images"]["path"] == "helm-watchdog/images/1.0.0.yaml"
        assert "inline" not in stored["values"]

        assert "Stored values.yaml at helm-watchdog/values/1.0.0.yaml" in messages
        assert messages[-1] == "Helm sync completed."

    def test_second_run_is_noop(self, remote, storage, cfg):
        serve_charts(remote, {"1.0.0": API_VALUES})
        mirror_everything(remote, "api", "1.2.0")
        _run(remote, storage, cfg)
        remote.requests.clear()

        again = _run(remote, storage, cfg)

        assert (again.processed, len(again.created), len(again.refreshed), again.skipped) == (1, 0, 0, 1)
        assert [r.url.path for r in remote.requests] == ["/index.yaml"]

    def test_versions_sorted_newest_first(self, remote, storage, cfg):
        serve_charts(remote, {"1.9.0": "{}", "1.10.0": "{}", "1.0.0": "{}", "2.0.0-beta.1": "{}"})
        _run(remote, storage, cfg)
        order = [v["version"] for v in _manifest(storage, cfg)["versions"]]
        assert order == ["2.0.0-beta.1", "1.10.0", "1.9.0", "1.0.0"]

    def test_forced_refresh_and_unmatched(self, remote, storage, cfg):
        serve_charts(remote, {"1.0.0": API_VALUES, "1.1.0": API_VALUES})
        _run(remote, storage, cfg)
        messages = []

        result = _run(remote, storage, cfg, force_versions=["v1.0.0", "9.9.9"], log=messages.append)

        assert result.refreshed == ["1.0.0"]
        assert result.created == []
        assert result.skipped == 1
        assert result.unmatched_forced == ["9.9.9"]
        assert "Unable to refresh version 9.9.9: not found in Helm repository index." in messages
        assert len(_manifest(storage, cfg)["versions"]) == 2

    def test_forcing_unknown_version_counts_as_created(self, remote, storage, cfg):
        serve_charts(remote, {"1.0.0": "{}"})
        result = _run(remote, storage, cfg, force_versions=["1.0.0"])
        assert result.created == ["1.0.0"]
        assert result.refreshed == []

    def test_chart_without_images(self, remote, storage, cfg):
        serve_charts(remote, {"1.0.0": "replicaCount: 1\n"})
        _run(remote, storage, cfg)
        assert (storage.root / "images" / "1.0.0.yaml").read_text() == NO_IMAGES_PLACEHOLDER
        validation = json.loads((storage.root / "image-validation" / "1.0.0.json").read_text())
        assert validation["images"] == []

    def test_abort_persists_completed_versions(self, remote, storage, cfg):
        serve_charts(remote, {"1.0.0": "{}", "1.1.0": "{}", "1.2.0": "{}"})
        remote.add("GET", REPO_BASE + "dify-1.1.0.tgz", httpx.Response(500))

        with pytest.raises(SyncError) as excinfo:
            _run(remote, storage, cfg)

        err = excinfo.value
        assert err.version == "1.1.0"
        assert err.result.created == ["1.0.0"]
        assert list(err.result.failed) == ["1.1.0"]
        assert [v["version"] for v in _manifest(storage, cfg)["versions"]] == ["1.0.0"]
        assert remote.calls("GET", REPO_BASE + "dify-1.2.0.tgz") == []

    def test_continue_on_error(self, remote, storage, cfg):
        serve_charts(remote, {"1.0.0": "{}", "1.1.0": "{}", "1.2.0": "{}"})
        remote.add("GET", REPO_BASE + "dify-1.1.0.tgz", httpx.Response(200, content=b"garbage"))

        result = _run(remote, storage, cfg, continue_on_error=True)

        assert result.created == ["1.0.0", "1.2.0"]
        assert list(result.failed) == ["1.1.0"]
        assert result.skipped == 0
        assert [v["version"] for v in _manifest(storage, cfg)["versions"]] == ["1.2.0", "1.0.0"]

        # the failed version is retried on the next run
        remote.add("GET", REPO_BASE + "dify-1.1.0.tgz", httpx.Response(404))
        retry = _run(remote, storage, cfg, continue_on_error=True)
        assert retry.skipped == 2
        assert list(retry.failed) == ["1.1.0"]

    def test_undecodable_values_fails_only_that_version(self, remote, storage, cfg):
        serve_charts(remote, {"1.0.0": "{}", "1.1.0": b"a: \xff\xfe\n"})

        result = _run(remote, storage, cfg, continue_on_error=True)

        assert result.created == ["1.0.0"]
        assert list(result.failed) == ["1.1.0"]
        assert "not valid UTF-8" in result.failed["1.1.0"]
        assert [v["version"] for v in _manifest(storage, cfg)["versions"]] == ["1.0.0"]

    def test_undecodable_values_aborts_with_partial_result(self, remote, storage, cfg):
        serve_charts(remote, {"1.0.0": "{}", "1.1.0": b"a: \xff\xfe\n"})

        with pytest.raises(SyncError) as excinfo:
            _run(remote, storage, cfg)

        assert excinfo.value.result.created == ["1.0.0"]
        assert [v["version"] for v in _manifest(storage, cfg)["versions"]] == ["1.0.0"]

    def test_version_escaping_storage_root_fails_only_that_version(self, remote, storage, cfg):
        from conftest import INDEX_URL, index_yaml, make_chart_archive

        entries = [
            {"version": "1.0.0", "urls": ["ok.tgz"]},
            {"version": "../../../escape", "urls": ["evil.tgz"]},
        ]
        archive = make_chart_archive({"dify/values.yaml": "{}"})
        remote.add("GET", INDEX_URL, httpx.Response(200, text=index_yaml(entries)))
        remote.add("GET", REPO_BASE + "ok.tgz", httpx.Response(200, content=archive))
        remote.add("GET", REPO_BASE + "evil.tgz", httpx.Response(200, content=archive))

        result = _run(remote, storage, cfg, continue_on_error=True)

        assert result.created == ["1.0.0"]
        assert list(result.failed) == ["../../../escape"]
        assert "escapes storage root" in result.failed["../../../escape"]
        assert not (storage.root.parent.parent / "escape.yaml").exists()

    def test_missing_values_file_fails_version(self, remote, storage, cfg):
        from conftest import INDEX_URL, index_yaml, make_chart_archive

        remote.add("GET", INDEX_URL, httpx.Response(200, text=index_yaml([{"version": "1.0.0", "urls": ["c.tgz"]}])))
        remote.add("GET", REPO_BASE + "c.tgz", httpx.Response(200, content=make_chart_archive({"dify/Chart.yaml": "x"})))

        with pytest.raises(SyncError) as excinfo:
            _run(remote, storage, cfg)
        assert "values.yaml not found" in str(excinfo.value)

    def test_storage_checked_before_network(self, remote, cfg, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(StorageUnavailableError):
            _run(remote, LocalStorage(blocker / "store"), cfg)
        assert remote.requests == []


class TestLoadCache:
    def test_missing(self, storage, cfg):
        assert load_cache(storage, cfg) is None

    def test_corrupt(self, storage, cfg):
        storage.write(cfg.cache_path, "{not json", "application/json")
        assert load_cache(storage, cfg) is None

    @pytest.mark.parametrize("versions", [
        ["1.0.0"],
        [{"version": "1.0.0", "values": "oops", "images": {}}],
        [{"version": "1.0.0", "values": {}, "images": {}, "imageValidation": 7}],
    ])
    def test_malformed_entries(self, storage, cfg, versions):
        storage.write(cfg.cache_path, json.dumps({"versions": versions}), "application/json")
        assert load_cache(storage, cfg) is None

    def test_inline_content(self, remote, storage, cfg):
        serve_charts(remote, {"1.0.0": API_VALUES})
        _run(remote, storage, cfg)

        plain = load_cache(storage, cfg)
        assert plain.versions[0].values.inline is None

        loaded = load_cache(storage, cfg, with_inline=True)
        stored = loaded.versions[0]
        assert stored.values.inline == API_VALUES
        assert "acme/api" in stored.images.inline
        assert json.loads(stored.image_validation.inline)["version"] == "1.0.0"
