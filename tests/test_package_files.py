"""
Tests for feedsync.package module.

Tests package source rewriting including:
- nuspec version update that leaves the rest untouched
- checksums.json creation and upsert
- Old installer removal and new installer copy
- Install script rewriting for both architectures
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from feedsync.exceptions import PackagingError
from feedsync.package import (
    ChocolateyScriptRewriter,
    find_install_script,
    find_nuspec,
    install_artifact,
    remove_old_installers,
    update_checksums,
    update_nuspec_version,
)


class TestNuspec:
    """Tests for nuspec helpers."""

    def test_update_version_preserves_layout(self, tmp_test_dir: Path, nuspec_template):
        nuspec = tmp_test_dir / "app.nuspec"
        original = nuspec_template.format(id="app", version="1.0")
        nuspec.write_text(original, encoding="utf-8")

        update_nuspec_version(find_nuspec(tmp_test_dir), "23.01")

        assert nuspec.read_text(encoding="utf-8") == original.replace(
            "<version>1.0</version>", "<version>23.01</version>"
        )

    def test_missing_nuspec(self, tmp_test_dir: Path):
        with pytest.raises(PackagingError, match="No .nuspec"):
            find_nuspec(tmp_test_dir)

    def test_nuspec_without_version(self, tmp_test_dir: Path):
        nuspec = tmp_test_dir / "app.nuspec"
        nuspec.write_text("<package><metadata/></package>", encoding="utf-8")
        with pytest.raises(PackagingError, match="No <version>"):
            update_nuspec_version(nuspec, "1.0")


class TestChecksums:
    """Tests for checksums.json."""

    def test_created_with_both_keys(self, tmp_test_dir: Path):
        path = update_checksums(tmp_test_dir / "tools", "x64", "abc")
        assert json.loads(path.read_text()) == {"x86": "", "x64": "abc"}

    def test_upsert_keeps_other_arch(self, tmp_test_dir: Path):
        tools = tmp_test_dir / "tools"
        tools.mkdir()
        (tools / "checksums.json").write_text(json.dumps({"x86": "old86", "x64": "old64"}))

        update_checksums(tools, "x86", "new86")

        assert json.loads((tools / "checksums.json").read_text()) == {
            "x86": "new86",
            "x64": "old64",
        }

    def test_invalid_json_raises(self, tmp_test_dir: Path):
        tools = tmp_test_dir / "tools"
        tools.mkdir()
        (tools / "checksums.json").write_text("{nope")
        with pytest.raises(PackagingError, match="Invalid JSON"):
            update_checksums(tools, "x64", "abc")


class TestInstallers:
    """Tests for tools/ installer replacement."""

    def test_remove_only_matching_arch_and_extension(self, tmp_test_dir: Path):
        tools = tmp_test_dir / "tools"
        tools.mkdir()
        for name in (
            "7zip_x64_22.01.msi",
            "7ZIP_X64_19.00.MSI",
            "7zip_x86_22.01.msi",
            "7zip_x64_22.01.exe",
            "chocolateyinstall.ps1",
        ):
            (tools / name).write_bytes(b"x")

        removed = remove_old_installers(tools, "7zip", "x64", ".msi")

        assert sorted(p.name for p in removed) == ["7ZIP_X64_19.00.MSI", "7zip_x64_22.01.msi"]
        assert sorted(p.name for p in tools.iterdir()) == [
            "7zip_x64_22.01.exe",
            "7zip_x86_22.01.msi",
            "chocolateyinstall.ps1",
        ]

    def test_install_artifact_copies(self, tmp_test_dir: Path):
        artifact = tmp_test_dir / "7zip_x64_23.01.msi"
        artifact.write_bytes(b"MSI")
        target = install_artifact(tmp_test_dir / "tools", artifact)
        assert target.read_bytes() == b"MSI"
        assert artifact.exists()

    def test_find_install_script_case_insensitive(self, tmp_test_dir: Path):
        tools = tmp_test_dir / "tools"
        tools.mkdir()
        (tools / "chocolateyInstall.ps1").write_text("#")
        assert find_install_script(tools).name == "chocolateyInstall.ps1"

    def test_find_install_script_missing(self, tmp_test_dir: Path):
        with pytest.raises(PackagingError, match="not found"):
            find_install_script(tmp_test_dir / "tools")


class TestChocolateyScriptRewriter:
    """Tests for install script rewriting."""

    def test_x64_sets_url64_and_both_checksums(self, install_script):
        result = ChocolateyScriptRewriter().rewrite(
            install_script,
            arch="x64",
            url="https://assets/7zip_x64_23.01.msi",
            sha256="f00d",
            file_type="msi",
        )

        text = result.text
        assert "url64          = 'https://assets/7zip_x64_23.01.msi' # internal mirror" in text
        assert "url            = 'https://old.example.com/App_x86_1.0.msi'" in text
        assert "checksum       = 'f00d'" in text
        assert "checksum64     = 'f00d'" in text
        assert "checksumType   = 'sha256'" in text
        assert "checksumType64 = 'sha256'" in text
        assert "fileType       = 'msi'" in text
        assert result.missing == []

    def test_x86_leaves_x64_fields(self, install_script):
        result = ChocolateyScriptRewriter().rewrite(
            install_script, arch="x86", url="https://assets/a.exe", sha256="beef", file_type="exe"
        )

        assert "url            = 'https://assets/a.exe'" in result.text
        assert "checksum       = 'beef'" in result.text
        assert "checksum64     = 'bbbb'" in result.text
        assert "url64          = 'https://old.example.com/App_x64_1.0.msi'" in result.text

    def test_dollar_variable_style(self):
        script = '$url = "https://old/a.msi"\n$checksum = ""\n$checksumType = "md5"  # legacy\n'
        result = ChocolateyScriptRewriter().rewrite(
            script, arch="x86", url="https://new/b.msi", sha256="cafe", file_type="msi"
        )
        assert result.text == (
            '$url = "https://new/b.msi"\n$checksum = "cafe"\n$checksumType = "sha256"  # legacy\n'
        )

    def test_reports_missing_required_assignments(self):
        result = ChocolateyScriptRewriter().rewrite(
            "$checksum = ''\n", arch="x64", url="https://n", sha256="x", file_type="msi"
        )
        assert result.missing == ["url64", "checksum64"]
        assert "checksum" in result.updated

    def test_other_lines_untouched(self, install_script):
        result = ChocolateyScriptRewriter().rewrite(
            install_script, arch="x64", url="https://n", sha256="x", file_type="msi"
        )
        assert "silentArgs     = '/qn /norestart'" in result.text
        assert result.text.endswith("Install-ChocolateyPackage @packageArgs\n")
