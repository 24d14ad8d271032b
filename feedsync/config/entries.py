# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Software entries for feedsync.

A software entry is one row of the entries CSV: which product to track,
where to look for it, and how its published artifact is named.

CSV Columns:

- **Publisher** (required): Vendor folder name (e.g. "Igor Pavlov")
- **SoftwareName** (required): Product name (e.g. "7zip")
- **SubName1**, **SubName2** (optional): Disambiguating suffixes
- **PreferredExtension** (required): Target installer extension ("msi")
- **Arch** (required): "x86" or "x64"
- **SourceType** (required): Winget, GitHubRelease, WebDirectory,
    DirectUrl, or Local
- **SourceRef**: Manifest id, owner/repo, listing URL, download URL, or
    empty for Local
- **ManifestSubPath** (optional): Extra path below a Winget package id
- **AssetPattern** (optional): Regex to choose among release assets
- **ManualVersionRequired** (optional): true/false

Example:
    ```python
    from pathlib import Path
    from feedsync.config import load_entries

    for entry in load_entries(Path("software.csv")):
        print(entry.display_name, entry.source_type.value)
    ```
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from feedsync.exceptions import ConfigError
from feedsync.versioning.naming import normalize_extension

ARCHITECTURES = ("x86", "x64")

_TRUE = {"1", "true", "yes", "y"}
_FALSE = {"", "0", "false", "no", "n"}


class SourceType(str, Enum):
    """Where the latest installer for an entry is discovered."""

    WINGET = "Winget"
    GITHUB_RELEASE = "GitHubRelease"
    WEB_DIRECTORY = "WebDirectory"
    DIRECT_URL = "DirectUrl"
    LOCAL = "Local"

    @classmethod
    def parse(cls, value: str) -> SourceType:
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        available = ", ".join(m.value for m in cls)
        raise ConfigError(f"Unknown source type {value!r}. Available: {available}")


@dataclass(frozen=True)
class SoftwareEntry:
    """One configured product.

    Attributes:
        publisher: Vendor name, first path segment in the stores.
        software_name: Product name.
        preferred_extension: Installer extension with leading dot (".msi").
        arch: "x86" or "x64".
        source_type: Which resolver handles this entry.
        source_ref: Resolver-specific locator.
        sub_name1: Optional first suffix.
        sub_name2: Optional second suffix.
        manifest_sub_path: Optional extra Winget manifest path.
        asset_pattern: Optional regex for release assets.
        manual_version_required: Ask the version supplier for the version.
    """

    publisher: str
    software_name: str
    preferred_extension: str
    arch: str
    source_type: SourceType
    source_ref: str = ""
    sub_name1: str = ""
    sub_name2: str = ""
    manifest_sub_path: str = ""
    asset_pattern: str = ""
    manual_version_required: bool = False

    @property
    def display_name(self) -> str:
        """`SoftwareName[_Sub1][_Sub2]`, unsanitized."""
        parts = [self.software_name, self.sub_name1, self.sub_name2]
        return "_".join(p for p in parts if p)

    @property
    def name_segments(self) -> list[str]:
        """Path segments below the store root, unsanitized."""
        parts = [self.publisher, self.software_name, self.sub_name1, self.sub_name2]
        return [p for p in parts if p]


def _parse_bool(value: str | None, row: int) -> bool:
    v = (value or "").strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigError(f"Row {row}: ManualVersionRequired must be true/false, got {value!r}")


def entry_from_row(row: dict[str, str], line: int) -> SoftwareEntry:
    """Build and validate a SoftwareEntry from one CSV row.

    Args:
        row: Mapping of column name to raw cell value.
        line: Line number for error messages.

    Raises:
        ConfigError: On a missing required field or an invalid value.
    """

    def cell(name: str) -> str:
        return (row.get(name) or "").strip()

    for required in ("Publisher", "SoftwareName", "PreferredExtension", "Arch", "SourceType"):
        if not cell(required):
            raise ConfigError(f"Row {line}: missing required field {required!r}")

    arch = cell("Arch").lower()
    if arch not in ARCHITECTURES:
        raise ConfigError(f"Row {line}: Arch must be x86 or x64, got {cell('Arch')!r}")

    try:
        source_type = SourceType.parse(cell("SourceType"))
    except ConfigError as err:
        raise ConfigError(f"Row {line}: {err}") from err

    source_ref = cell("SourceRef")
    if source_type is not SourceType.LOCAL and not source_ref:
        raise ConfigError(f"Row {line}: SourceRef is required for {source_type.value}")

    return SoftwareEntry(
        publisher=cell("Publisher"),
        software_name=cell("SoftwareName"),
        sub_name1=cell("SubName1"),
        sub_name2=cell("SubName2"),
        preferred_extension=normalize_extension(cell("PreferredExtension")),
        arch=arch,
        source_type=source_type,
        source_ref=source_ref,
        manifest_sub_path=cell("ManifestSubPath").strip("/"),
        asset_pattern=cell("AssetPattern"),
        manual_version_required=_parse_bool(row.get("ManualVersionRequired"), line),
    )


def load_entries(csv_path: Path) -> list[SoftwareEntry]:
    """Load software entries from a CSV file with a header row.

    Blank rows and rows whose first cell starts with '#' are skipped.

    Raises:
        ConfigError: If the file is missing or a row is invalid.
    """
    if not csv_path.exists():
        raise ConfigError(f"Entries file not found: {csv_path}")

    entries: list[SoftwareEntry] = []
    with csv_path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            values = [v for v in row.values() if isinstance(v, str)]
            if not any(v.strip() for v in values):
                continue
            if values and values[0].lstrip().startswith("#"):
                continue
            entries.append(entry_from_row(row, reader.line_num))
    return entries
