"""
Pytest configuration and shared fixtures for feedsync tests.

This module provides reusable fixtures and test utilities used across
the test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
import zipfile

import pytest
import requests

from feedsync.config.entries import SoftwareEntry, SourceType
from feedsync.config.loader import Settings, build_settings
from feedsync.discovery.base import ResolveContext
from feedsync.logging import SilentLogger, set_global_logger

ASSET_BASE = "https://assets.example.com"

INSTALL_SCRIPT = """\
$ErrorActionPreference = 'Stop'
$toolsDir   = "$(Split-Path -parent $MyInvocation.MyCommand.Definition)"

$packageArgs = @{
  packageName    = $env:ChocolateyPackageName
  fileType       = 'exe'
  url            = 'https://old.example.com/App_x86_1.0.msi'
  url64          = 'https://old.example.com/App_x64_1.0.msi' # internal mirror
  checksum       = 'aaaa'
  checksum64     = 'bbbb'
  checksumType   = 'md5'
  checksumType64 = 'md5'
  silentArgs     = '/qn /norestart'
}

Install-ChocolateyPackage @packageArgs
"""

NUSPEC = """\
<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://schemas.microsoft.com/packaging/2015/06/nuspec.xsd">
  <metadata>
    <id>{id}</id>
    <version>{version}</version>
    <title>{id}</title>
  </metadata>
</package>
"""


@pytest.fixture(autouse=True)
def silent_global_logger():
    """Keep the global logger silent between tests."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def make_settings(tmp_test_dir: Path):
    """
    Factory fixture for Settings rooted in the temporary directory.

    Usage:
        settings = make_settings({"self_package": "choco"})
    """

    def _create(overrides: dict[str, Any] | None = None) -> Settings:
        data: dict[str, Any] = {
            "asset_store": {"base_url": ASSET_BASE, "asset_dir": "software", "api_key": "asset-key"},
            "feed": {"name": "choco", "api_key": "feed-key"},
            "github": {"token": ""},
            "paths": {
                "packages_root": "packages",
                "work_dir": "work",
                "local_drop_dir": "drop",
            },
        }
        for key, value in (overrides or {}).items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value
        return build_settings(data, tmp_test_dir)

    return _create


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def make_entry():
    """
    Factory fixture for SoftwareEntry with sensible defaults.

    Usage:
        entry = make_entry(source_type=SourceType.WINGET, source_ref="7zip.7zip")
    """

    def _create(**overrides: Any) -> SoftwareEntry:
        values: dict[str, Any] = {
            "publisher": "Igor Pavlov",
            "software_name": "7zip",
            "preferred_extension": ".msi",
            "arch": "x64",
            "source_type": SourceType.DIRECT_URL,
            "source_ref": "https://downloads.example.com/7zip.msi",
        }
        values.update(overrides)
        return SoftwareEntry(**values)

    return _create


class FixedVersionSupplier:
    """Version supplier returning a preset answer and recording calls."""

    def __init__(self, answer: str = "1.0") -> None:
        self.answer = answer
        self.calls: list[tuple[str, str | None]] = []

    def supply(self, entry: SoftwareEntry, candidate: str | None) -> str:
        self.calls.append((entry.display_name, candidate))
        return self.answer


@pytest.fixture
def make_version_supplier():
    """
    Factory fixture for version suppliers with a preset answer.

    Usage:
        supplier = make_version_supplier("24.1")
    """
    return FixedVersionSupplier


@pytest.fixture
def version_supplier(make_version_supplier) -> FixedVersionSupplier:
    return make_version_supplier()


@pytest.fixture
def install_script() -> str:
    """Chocolatey install script with a $packageArgs hashtable."""
    return INSTALL_SCRIPT


@pytest.fixture
def nuspec_template() -> str:
    """Minimal nuspec with {id} and {version} placeholders."""
    return NUSPEC


@pytest.fixture
def context(settings: Settings, version_supplier: FixedVersionSupplier) -> ResolveContext:
    """ResolveContext with a plain session and a silent logger."""
    return ResolveContext(
        session=requests.Session(),
        settings=settings,
        logger=SilentLogger(),
        version_supplier=version_supplier,
    )


@pytest.fixture
def make_zip(tmp_test_dir: Path):
    """
    Factory fixture for zip archives.

    Usage:
        archive = make_zip("bundle.zip", {"bin/setup.msi": b"MSI"})
    """

    def _create(name: str, files: dict[str, bytes]) -> Path:
        path = tmp_test_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as zf:
            for member, data in files.items():
                zf.writestr(member, data)
        return path

    return _create


@pytest.fixture
def make_package_source():
    """
    Factory fixture for a package source tree (nuspec, tools/, old installer).

    Usage:
        package_dir = make_package_source(settings, entry)
    """

    def _create(
        settings: Settings,
        entry: SoftwareEntry,
        *,
        version: str = "1.0",
        old_installers: tuple[str, ...] = (),
        script: str | None = INSTALL_SCRIPT,
    ) -> Path:
        package_dir = settings.packages_root.joinpath(*entry.name_segments)
        tools = package_dir / "tools"
        tools.mkdir(parents=True, exist_ok=True)
        (package_dir / f"{entry.software_name.lower()}.nuspec").write_text(
            NUSPEC.format(id=entry.software_name.lower(), version=version),
            encoding="utf-8",
        )
        if script is not None:
            (tools / "chocolateyinstall.ps1").write_text(script, encoding="utf-8")
        for name in old_installers:
            (tools / name).write_bytes(b"old installer")
        settings.work_dir.mkdir(parents=True, exist_ok=True)
        return package_dir

    return _create
