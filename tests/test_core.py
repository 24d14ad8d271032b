"""
Tests for feedsync.core module.

End-to-end pipeline tests with HTTP mocked by requests-mock and a fake
package feed client. Covers:
- Full update (download, publish, checksum, package files, pack/push)
- Up-to-date entries
- Dry runs
- Checksum read-back failure
- Upload failure with the package stages still running
- Nested installers inside zip downloads
- The packaging tool's own package
- Failure isolation and counters
- Resolve-only runs
"""

from __future__ import annotations

from dataclasses import replace
import hashlib
import json
from pathlib import Path

import pytest
import requests

from feedsync.config.entries import SourceType
from feedsync.core import prepare_workspace, resolve_intent, sync_entries
from feedsync.discovery import base
from feedsync.discovery.intent import NestedArchiveRef, ResolvedIntent
from feedsync.exceptions import ConfigError, PackagingError, VersionError
from feedsync.paths import build_path_context
from feedsync.results import EntryReport, ResolveReport, SyncCounters

SOURCE_URL = "https://downloads.example.com/7zip-23.01-x64.msi"
STORE = "https://assets.example.com/endpoints/software"
FOLDER = "Igor%20Pavlov/7zip"
PAYLOAD = b"MSI payload 23.01"


class FakePackages:
    """Package feed client that records pack/push calls."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[Path] = []
        self.error = error

    def pack_and_push(self, package_dir: Path) -> Path:
        self.calls.append(package_dir)
        if self.error:
            raise self.error
        return package_dir / "7zip.23.01.nupkg"


def _fixed_resolver(intent: ResolvedIntent):
    class _Resolver:
        def resolve(self, entry, paths, context):
            return intent

    return _Resolver


@pytest.fixture
def entry(make_entry):
    return make_entry(source_ref=SOURCE_URL)


@pytest.fixture
def packages() -> FakePackages:
    return FakePackages()


@pytest.fixture
def run(settings, packages, make_version_supplier):
    """Run sync_entries with a plain session and the fake feed client."""

    def _run(entries, **kwargs):
        kwargs.setdefault("version_supplier", make_version_supplier())
        return sync_entries(
            entries,
            settings,
            session=requests.Session(),
            packages=packages,
            **kwargs,
        )

    return _run


def _mock_store(requests_mock, *, published=(), folder=FOLDER, sha256="f00d"):
    requests_mock.get(
        f"{STORE}/dir/{folder}",
        json=[{"name": name, "type": "file"} for name in published],
    )
    requests_mock.post(f"{STORE}/content/{folder}/7zip_x64_23.01.msi", status_code=201)
    requests_mock.get(
        f"{STORE}/metadata/{folder}/7zip_x64_23.01.msi", json={"sha256": sha256.upper()}
    )


def _mock_source(requests_mock, url=SOURCE_URL, content=PAYLOAD):
    requests_mock.get(url, content=content, headers={"Content-Type": "application/x-msi"})


def _methods(requests_mock) -> list[str]:
    return [r.method for r in requests_mock.request_history]


class TestSync:
    """Tests for the full pipeline."""

    def test_full_update(
        self, entry, settings, make_package_source, packages, run, requests_mock
    ):
        package_dir = make_package_source(settings, entry, old_installers=("7zip_x64_22.01.msi",))
        _mock_source(requests_mock)
        _mock_store(requests_mock, published=["7zip_x64_9.20.msi", "7zip_x64_22.01.msi"])

        summary = run([entry])

        assert (summary.checked, summary.warnings, summary.errors) == (1, 0, 0)
        report = summary.reports[0]
        assert isinstance(report, EntryReport)
        assert report.outcome == "updated"
        assert report.message == "22.01 -> 23.01"
        assert report.existing_version == "22.01"
        assert report.artifact_name == "7zip_x64_23.01.msi"
        assert set(report.stages.values()) == {"ok"}
        assert report.package_path == package_dir / "7zip.23.01.nupkg"

        tools = package_dir / "tools"
        assert sorted(p.name for p in tools.iterdir()) == [
            "7zip_x64_23.01.msi",
            "checksums.json",
            "chocolateyinstall.ps1",
        ]
        assert (tools / "7zip_x64_23.01.msi").read_bytes() == PAYLOAD
        assert json.loads((tools / "checksums.json").read_text()) == {"x86": "", "x64": "f00d"}
        assert "<version>23.01</version>" in (package_dir / "7zip.nuspec").read_text()

        script = (tools / "chocolateyinstall.ps1").read_text()
        content_url = f"{STORE}/content/{FOLDER}/7zip_x64_23.01.msi"
        assert f"url64          = '{content_url}' # internal mirror" in script
        assert "checksum64     = 'f00d'" in script
        assert "fileType       = 'msi'" in script

        upload = next(r for r in requests_mock.request_history if r.method == "POST")
        assert upload.headers["X-ApiKey"] == "asset-key"
        assert packages.calls == [package_dir]
        assert list(settings.work_dir.iterdir()) == []

    def test_up_to_date(self, entry, settings, make_package_source, packages, run, requests_mock):
        make_package_source(settings, entry)
        _mock_source(requests_mock)
        _mock_store(requests_mock, published=["7zip_x64_23.01.msi"])

        report = run([entry]).reports[0]

        assert report.outcome == "up_to_date"
        assert report.message == "23.01 already published"
        assert set(report.stages.values()) == {"skipped"}
        assert "POST" not in _methods(requests_mock)
        assert packages.calls == []

    def test_force_updates_current_version(
        self, entry, settings, make_package_source, run, requests_mock
    ):
        make_package_source(settings, entry, old_installers=("7zip_x64_23.01.msi",))
        _mock_source(requests_mock)
        _mock_store(requests_mock, published=["7zip_x64_23.01.msi"])

        report = run([entry], force=True).reports[0]

        assert report.outcome == "updated"

    def test_dry_run(self, entry, settings, make_package_source, packages, run, requests_mock):
        package_dir = make_package_source(settings, entry, old_installers=("7zip_x64_22.01.msi",))
        _mock_source(requests_mock)
        _mock_store(requests_mock, published=["7zip_x64_22.01.msi"])

        summary = run([entry], dry_run=True)

        report = summary.reports[0]
        assert report.outcome == "updated"
        assert report.message.endswith("(dry run)")
        assert report.stages == {
            "download": "ok",
            "publish": "skipped",
            "manifest": "ok",
            "script": "ok",
            "pack": "skipped",
        }
        local_sha = hashlib.sha256(PAYLOAD).hexdigest()
        checksums = json.loads((package_dir / "tools" / "checksums.json").read_text())
        assert checksums["x64"] == local_sha
        assert "POST" not in _methods(requests_mock)
        assert not any("/metadata/" in r.url for r in requests_mock.request_history)
        assert packages.calls == []
        assert summary.errors == 0

    def test_checksum_failure_continues(
        self, entry, settings, make_package_source, packages, run, requests_mock
    ):
        package_dir = make_package_source(settings, entry, old_installers=("7zip_x64_22.01.msi",))
        _mock_source(requests_mock)
        _mock_store(requests_mock)
        requests_mock.get(f"{STORE}/metadata/{FOLDER}/7zip_x64_23.01.msi", status_code=500)

        summary = run([entry])

        assert summary.errors == 1
        assert summary.reports[0].outcome == "updated"
        checksums = json.loads((package_dir / "tools" / "checksums.json").read_text())
        assert checksums["x64"] == ""
        assert packages.calls == [package_dir]

    def test_upload_failure_still_updates_package(
        self, entry, settings, make_package_source, packages, run, requests_mock
    ):
        package_dir = make_package_source(settings, entry, old_installers=("7zip_x64_22.01.msi",))
        _mock_source(requests_mock)
        _mock_store(requests_mock)
        requests_mock.post(f"{STORE}/content/{FOLDER}/7zip_x64_23.01.msi", status_code=500)
        requests_mock.get(f"{STORE}/metadata/{FOLDER}/7zip_x64_23.01.msi", status_code=404)

        summary = run([entry])

        report = summary.reports[0]
        assert report.outcome == "failed"
        assert "Upload of 7zip_x64_23.01.msi failed" in report.message
        assert report.stages == {
            "download": "ok",
            "publish": "failed",
            "manifest": "ok",
            "script": "ok",
            "pack": "ok",
        }
        assert summary.errors == 2
        assert "<version>23.01</version>" in (package_dir / "7zip.nuspec").read_text()
        tools = package_dir / "tools"
        assert json.loads((tools / "checksums.json").read_text())["x64"] == ""
        content_url = f"{STORE}/content/{FOLDER}/7zip_x64_23.01.msi"
        assert content_url in (tools / "chocolateyinstall.ps1").read_text()
        assert packages.calls == [package_dir]

    def test_missing_old_installer_is_a_warning(
        self, entry, settings, make_package_source, run, requests_mock
    ):
        make_package_source(settings, entry)
        _mock_source(requests_mock)
        _mock_store(requests_mock)

        summary = run([entry])

        assert summary.reports[0].outcome == "updated"
        assert (summary.warnings, summary.errors) == (1, 0)

    def test_missing_script_assignment_is_a_warning(
        self, entry, settings, make_package_source, run, requests_mock
    ):
        make_package_source(
            settings, entry, old_installers=("7zip_x64_22.01.msi",), script="$checksum64 = ''\n"
        )
        _mock_source(requests_mock)
        _mock_store(requests_mock)

        summary = run([entry])

        assert summary.reports[0].outcome == "updated"
        assert summary.warnings == 1

    def test_nested_installer(
        self,
        make_entry,
        settings,
        make_package_source,
        make_zip,
        run,
        requests_mock,
        monkeypatch,
    ):
        entry = make_entry(source_type=SourceType.WINGET, source_ref="7zip.7zip")
        zip_url = "https://downloads.example.com/7zip-bundle.zip"
        monkeypatch.setitem(
            base._RESOLVER_REGISTRY,
            SourceType.WINGET,
            _fixed_resolver(
                ResolvedIntent(
                    version="23.01",
                    installer_url=zip_url,
                    file_name="7zip-bundle.zip",
                    extension=".zip",
                    nested=NestedArchiveRef("bin/x64/7zip.msi"),
                )
            ),
        )
        archive = make_zip("bundle.zip", {"bin/x64/7zip.msi": PAYLOAD, "readme.txt": b"hi"})
        package_dir = make_package_source(settings, entry, old_installers=("7zip_x64_22.01.msi",))
        _mock_source(requests_mock, url=zip_url, content=archive.read_bytes())
        _mock_store(requests_mock, published=["7zip_x64_22.01.msi", "7zip_x64_99.0.zip"])

        report = run([entry]).reports[0]

        assert report.outcome == "updated"
        assert report.existing_version == "22.01"
        assert report.artifact_name == "7zip_x64_23.01.msi"
        assert (package_dir / "tools" / "7zip_x64_23.01.msi").read_bytes() == PAYLOAD
        assert list(settings.work_dir.iterdir()) == []

    def test_self_package_replaces_tools(
        self, make_entry, settings, make_package_source, make_zip, run, requests_mock, monkeypatch
    ):
        entry = make_entry(
            publisher="Chocolatey",
            software_name="chocolatey",
            preferred_extension=".nupkg",
            source_type=SourceType.GITHUB_RELEASE,
            source_ref="chocolatey/choco",
        )
        nupkg_url = "https://github.com/chocolatey/choco/releases/download/2.3.0/chocolatey.2.3.0.nupkg"
        monkeypatch.setitem(
            base._RESOLVER_REGISTRY,
            SourceType.GITHUB_RELEASE,
            _fixed_resolver(
                ResolvedIntent(
                    release_version="2.3.0",
                    url=nupkg_url,
                    file_name="chocolatey.2.3.0.nupkg",
                )
            ),
        )
        nupkg = make_zip(
            "chocolatey.2.3.0.nupkg",
            {"tools/chocolateyInstall.ps1": b"# shipped", "chocolatey.nuspec": b"<package/>"},
        )
        package_dir = make_package_source(settings, entry)
        folder = "Chocolatey/chocolatey"
        _mock_source(requests_mock, url=nupkg_url, content=nupkg.read_bytes())
        requests_mock.get(f"{STORE}/dir/{folder}", status_code=404)
        requests_mock.post(f"{STORE}/content/{folder}/chocolatey_x64_2.3.0.nupkg", status_code=201)
        requests_mock.get(
            f"{STORE}/metadata/{folder}/chocolatey_x64_2.3.0.nupkg", json={"sha256": "abc"}
        )

        summary = run([entry])

        report = summary.reports[0]
        assert report.outcome == "updated"
        assert report.message == "none -> 2.3.0"
        assert report.stages["script"] == "skipped"
        tools = package_dir / "tools"
        assert sorted(p.name for p in tools.iterdir()) == ["checksums.json", "chocolateyInstall.ps1"]
        assert (tools / "chocolateyInstall.ps1").read_bytes() == b"# shipped"
        assert "<version>2.3.0</version>" in (package_dir / "chocolatey.nuspec").read_text()
        assert summary.warnings == 0

    def test_download_failure(
        self, make_entry, settings, make_package_source, run, requests_mock, monkeypatch
    ):
        entry = make_entry()
        url = "https://downloads.example.com/gone/7zip-23.01.msi"
        intent = ResolvedIntent(version="23.01", installer_url=url, file_name="7zip-23.01.msi")
        monkeypatch.setitem(base._RESOLVER_REGISTRY, SourceType.DIRECT_URL, _fixed_resolver(intent))
        make_package_source(settings, entry, old_installers=("7zip_x64_22.01.msi",))
        requests_mock.get(url, status_code=404)
        _mock_store(requests_mock, published=["7zip_x64_22.01.msi"])

        summary = run([entry])

        report = summary.reports[0]
        assert report.outcome == "failed"
        assert report.stages["download"] == "failed"
        assert summary.errors == 1
        assert "POST" not in _methods(requests_mock)

    def test_pack_failure(self, entry, settings, make_package_source, run, requests_mock, packages):
        packages.error = PackagingError("pack failed (exit code 1)")
        make_package_source(settings, entry, old_installers=("7zip_x64_22.01.msi",))
        _mock_source(requests_mock)
        _mock_store(requests_mock)

        summary = run([entry])

        report = summary.reports[0]
        assert report.outcome == "failed"
        assert report.stages["publish"] == "ok"
        assert report.stages["pack"] == "failed"
        assert summary.errors == 1

    def test_missing_package_source(self, entry, settings, run, requests_mock):
        settings.packages_root.mkdir(parents=True)
        _mock_source(requests_mock)
        _mock_store(requests_mock)

        summary = run([entry])

        report = summary.reports[0]
        assert report.outcome == "failed"
        assert "Package source not found" in report.message
        assert summary.errors == 1
        assert "GET" in _methods(requests_mock)
        assert "POST" not in _methods(requests_mock)

    def test_unresolved_entry_is_skipped(
        self, entry, settings, make_package_source, run, requests_mock
    ):
        make_package_source(settings, entry)
        requests_mock.get(
            SOURCE_URL, text="<html>sign in</html>", headers={"Content-Type": "text/html"}
        )

        summary = run([entry])

        assert summary.reports[0].outcome == "skipped"
        assert (summary.warnings, summary.errors) == (1, 0)

    def test_failures_are_isolated(
        self, make_entry, entry, settings, make_package_source, run, requests_mock, monkeypatch
    ):
        class Exploding:
            def resolve(self, entry, paths, context):
                raise RuntimeError("boom")

        broken = make_entry(software_name="Broken", source_type=SourceType.WINGET, source_ref="x.y")
        monkeypatch.setitem(base._RESOLVER_REGISTRY, SourceType.WINGET, Exploding)
        make_package_source(settings, entry)
        _mock_source(requests_mock)
        _mock_store(requests_mock, published=["7zip_x64_23.01.msi"])

        summary = run([broken, entry])

        assert [r.outcome for r in summary.reports] == ["failed", "up_to_date"]
        assert summary.reports[0].message == "boom"
        assert (summary.checked, summary.errors) == (2, 1)
        assert not summary.ok

    def test_missing_packages_root_aborts(self, entry, settings, run):
        with pytest.raises(ConfigError, match="Packages root not found"):
            run([entry])


class TestResolveOnly:
    """Tests for resolve-only runs."""

    def test_reports_versions_without_changes(self, entry, settings, run, requests_mock):
        _mock_source(requests_mock)
        _mock_store(requests_mock, published=["7zip_x64_22.01.msi"])

        summary = run([entry], resolve_only=True)

        report = summary.reports[0]
        assert isinstance(report, ResolveReport)
        assert report.version == "23.01"
        assert report.existing_version == "22.01"
        assert report.decision == "update_needed"
        assert report.installer_url == SOURCE_URL
        assert _methods(requests_mock) == ["GET", "GET"]
        assert not settings.work_dir.exists()

    def test_resolution_error_is_counted(self, make_entry, run):
        entry = make_entry(source_type=SourceType.GITHUB_RELEASE, source_ref="bad")

        summary = run([entry], resolve_only=True)

        assert summary.reports[0].decision == "unresolved"
        assert summary.errors == 1


class TestResolveIntent:
    """Tests for resolve_intent validation."""

    def _resolve(self, entry, settings, context, monkeypatch, intent):
        monkeypatch.setitem(base._RESOLVER_REGISTRY, entry.source_type, _fixed_resolver(intent))
        return resolve_intent(entry, build_path_context(entry, settings), context, SyncCounters())

    def test_manual_version_overrides(
        self, make_entry, settings, context, monkeypatch, make_version_supplier
    ):
        entry = make_entry(manual_version_required=True)
        supplier = make_version_supplier("v24.1")
        ctx = replace(context, version_supplier=supplier)
        raw = ResolvedIntent(version="0.0.0.0", installer_url=SOURCE_URL, file_name="a.msi")

        intent = self._resolve(entry, settings, ctx, monkeypatch, raw)

        assert intent.version == "24.1"
        assert supplier.calls == [("7zip", "0.0.0.0")]

    def test_invalid_version_raises(self, make_entry, settings, context, monkeypatch):
        raw = ResolvedIntent(version="beta", installer_url=SOURCE_URL, file_name="a.msi")
        with pytest.raises(VersionError, match="Invalid version 'beta'"):
            self._resolve(make_entry(), settings, context, monkeypatch, raw)

    def test_missing_url_raises(self, make_entry, settings, context, monkeypatch):
        with pytest.raises(ConfigError, match="No installer URL"):
            self._resolve(
                make_entry(), settings, context, monkeypatch, ResolvedIntent(version="1.0")
            )

    def test_unresolvable_placeholder_is_a_warning(
        self, make_entry, settings, context, monkeypatch, requests_mock
    ):
        url = "https://downloads.example.com/download"
        requests_mock.get(url, status_code=503)
        counters = SyncCounters()
        entry = make_entry()
        monkeypatch.setitem(
            base._RESOLVER_REGISTRY,
            entry.source_type,
            _fixed_resolver(ResolvedIntent(version="1.0", installer_url=url, file_name="download")),
        )

        intent = resolve_intent(entry, build_path_context(entry, settings), context, counters)

        assert intent.file_name == "download"
        assert counters.warnings == 1


def test_prepare_workspace_creates_work_dir(settings):
    settings.packages_root.mkdir(parents=True)
    prepare_workspace(settings)
    assert settings.work_dir.is_dir()
