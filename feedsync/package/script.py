"""Install script rewriting for feedsync.

Chocolatey install scripts are PowerShell. Rather than parse PowerShell,
the known variable assignments are rewritten line by line:

    $url64          = 'https://old/App_x64_1.0.exe' # vendor mirror
    checksum64      = '...'

Only the quoted value changes; indentation, the assignment style (`$var =`
or hashtable `key =`), and any trailing comment are preserved.

Private Helpers:
    - _assignment: Compile the line-anchored pattern for one variable
    - _replace_value: Substitute the quoted value of one variable

The pipeline depends only on the ScriptRewriter protocol, so a different
script format needs a new rewriter, not pipeline changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Protocol


@dataclass(frozen=True)
class ScriptRewrite:
    """Outcome of rewriting an install script.

    Attributes:
        text: Rewritten script.
        updated: Variables whose value was replaced.
        missing: Required variables that were not found.
    """

    text: str
    updated: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


class ScriptRewriter(Protocol):
    """Interface for install script rewriters."""

    def rewrite(
        self, text: str, *, arch: str, url: str, sha256: str, file_type: str
    ) -> ScriptRewrite:
        """Point the script at a new installer.

        Args:
            text: Current script content.
            arch: "x86" or "x64".
            url: Asset store URL of the new installer.
            sha256: SHA-256 of the new installer (may be empty).
            file_type: Installer type without dot ("msi", "exe").
        """
        ...


def _assignment(name: str) -> re.Pattern[str]:
    return re.compile(
        rf"^(?P<lead>[ \t]*\$?{name}[ \t]*=[ \t]*)(?P<q>['\"])(?P<value>.*?)(?P=q)"
        rf"(?P<tail>[ \t]*;?[ \t]*(?:#.*)?)$",
        re.MULTILINE | re.IGNORECASE,
    )


def _replace_value(text: str, name: str, value: str) -> tuple[str, bool]:
    def sub(m: re.Match[str]) -> str:
        return f"{m.group('lead')}{m.group('q')}{value}{m.group('q')}{m.group('tail')}"

    new_text, count = _assignment(name).subn(sub, text)
    return new_text, count > 0


class ChocolateyScriptRewriter:
    """Rewrites `chocolateyinstall.ps1` assignments.

    Variables by architecture:

    - x86: `url`, `checksum`
    - x64: `url64`, `checksum64`, and `checksum` set to the same digest
    - both: `checksumType`/`checksumType64` -> 'sha256', `fileType` -> type
    """

    def rewrite(
        self, text: str, *, arch: str, url: str, sha256: str, file_type: str
    ) -> ScriptRewrite:
        if arch == "x64":
            required = {"url64": url, "checksum64": sha256}
            optional = {"checksum": sha256}
        else:
            required = {"url": url, "checksum": sha256}
            optional = {}
        optional.update(
            {"checksumType": "sha256", "checksumType64": "sha256", "fileType": file_type}
        )

        updated: list[str] = []
        missing: list[str] = []
        for name, value in required.items():
            text, found = _replace_value(text, name, value)
            (updated if found else missing).append(name)
        for name, value in optional.items():
            text, found = _replace_value(text, name, value)
            if found:
                updated.append(name)
        return ScriptRewrite(text=text, updated=updated, missing=missing)
