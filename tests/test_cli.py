"""
Tests for feedsync.cli module.

Tests the command line interface including:
- sync and resolve dispatch
- Exit codes from the run summary
- Entry filtering with --only
- Configuration errors
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from feedsync.cli import main
from feedsync.discovery import NonInteractiveVersionSupplier
from feedsync.results import EntryReport, ResolveReport, RunSummary

CSV = """\
Publisher,SoftwareName,SubName1,SubName2,PreferredExtension,Arch,SourceType,SourceRef
Igor Pavlov,7zip,,,msi,x64,DirectUrl,https://downloads.example.com/7zip.msi
Mozilla,Firefox,ESR,,msi,x64,Winget,Mozilla.Firefox.ESR
"""

SETTINGS = """\
asset_store:
  base_url: https://assets.example.com
  api_key: asset-key
feed:
  api_key: feed-key
"""


@pytest.fixture
def files(tmp_test_dir: Path) -> tuple[str, str]:
    entries = tmp_test_dir / "software.csv"
    entries.write_text(CSV, encoding="utf-8")
    settings = tmp_test_dir / "feedsync.yaml"
    settings.write_text(SETTINGS, encoding="utf-8")
    return str(entries), str(settings)


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


def _summary(errors: int = 0) -> RunSummary:
    report = EntryReport(
        name="7zip", arch="x64", source_type="DirectUrl", outcome="updated", message="1.0 -> 2.0"
    )
    return RunSummary(checked=1, warnings=0, errors=errors, reports=[report])


def test_sync_success(files, capsys):
    entries, settings = files
    with patch("feedsync.cli.sync_entries", return_value=_summary()) as mock_sync:
        code = _run(["sync", entries, "--settings", settings, "--non-interactive"])

    assert code == 0
    args, kwargs = mock_sync.call_args
    assert [e.display_name for e in args[0]] == ["7zip", "Firefox_ESR"]
    assert args[1].asset_base_url == "https://assets.example.com"
    assert kwargs["force"] is False
    assert kwargs["dry_run"] is False
    assert isinstance(kwargs["version_supplier"], NonInteractiveVersionSupplier)

    out = capsys.readouterr().out
    assert "7zip (x64): UPDATED  1.0 -> 2.0" in out
    assert "checked 1, warnings 0, errors 0" in out


def test_sync_errors_exit_nonzero(files):
    entries, settings = files
    with patch("feedsync.cli.sync_entries", return_value=_summary(errors=2)):
        assert _run(["sync", entries, "--settings", settings]) == 1


def test_sync_flags_and_only(files):
    entries, settings = files
    with patch("feedsync.cli.sync_entries", return_value=_summary()) as mock_sync:
        _run(
            [
                "sync",
                entries,
                "--settings",
                settings,
                "--force",
                "--dry-run",
                "--only",
                "firefox_esr",
            ]
        )

    args, kwargs = mock_sync.call_args
    assert [e.software_name for e in args[0]] == ["Firefox"]
    assert kwargs["force"] is True
    assert kwargs["dry_run"] is True


def test_resolve_command(files, capsys):
    entries, settings = files
    report = ResolveReport(
        name="7zip",
        arch="x64",
        source_type="DirectUrl",
        version="23.01",
        installer_url="https://downloads.example.com/7zip.msi",
        file_name="7zip.msi",
        nested_path=None,
        existing_version="22.01",
        decision="update_needed",
        reason="23.01 is newer than 22.01",
    )
    summary = RunSummary(checked=1, warnings=0, errors=0, reports=[report])

    with patch("feedsync.cli.sync_entries", return_value=summary) as mock_sync:
        code = _run(["resolve", entries, "--settings", settings])

    assert code == 0
    assert mock_sync.call_args.kwargs["resolve_only"] is True
    out = capsys.readouterr().out
    assert "Decision:   update_needed (23.01 is newer than 22.01)" in out


def test_missing_entries_file(tmp_test_dir, files, capsys):
    _, settings = files
    code = _run(["sync", str(tmp_test_dir / "nope.csv"), "--settings", settings])

    assert code == 1
    assert "Error: Entries file not found" in capsys.readouterr().out


def test_invalid_settings(files, tmp_test_dir, capsys):
    entries, _ = files
    broken = tmp_test_dir / "broken.yaml"
    broken.write_text("asset_store: [unclosed", encoding="utf-8")

    assert _run(["resolve", entries, "--settings", str(broken)]) == 1
    assert "Error parsing YAML" in capsys.readouterr().out


def test_version_flag(capsys):
    assert _run(["--version"]) == 0
    assert capsys.readouterr().out.startswith("feedsync ")
