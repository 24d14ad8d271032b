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

"""Per-entry path context for feedsync.

The asset store folder and the local package source directory are derived
from the same sanitized name segments, so
`Publisher/Software/Sub1/Sub2` maps to both
`<asset_dir>/Publisher/Software/Sub1/Sub2/<file>` and
`<packages_root>/Publisher/Software/Sub1/Sub2/`.

For Winget entries the context also carries the manifest repository URLs
for the package id, e.g. `7zip.7zip` -> `.../manifests/7/7zip/7zip`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from feedsync.config.entries import SoftwareEntry, SourceType
from feedsync.config.loader import Settings
from feedsync.versioning.naming import sanitize_name


@dataclass(frozen=True)
class PathContext:
    """Derived locations for one software entry.

    Attributes:
        asset_folder: Folder path inside the asset directory.
        package_dir: Local package source directory.
        tools_dir: `tools/` folder inside the package source.
        work_dir: Scratch folder for downloads and extractions.
        manifest_api_url: Winget tree-listing URL (Winget sources only).
        manifest_raw_url: Winget raw-content base URL (Winget sources only).
    """

    asset_folder: str
    package_dir: Path
    tools_dir: Path
    work_dir: Path
    manifest_api_url: str | None = None
    manifest_raw_url: str | None = None


def winget_manifest_path(package_id: str, sub_path: str = "") -> str:
    """Relative manifest path for a Winget package identifier.

    Example:
        ```python
        winget_manifest_path("Mozilla.Firefox", "de")
        # "m/Mozilla/Firefox/de"
        ```
    """
    parts = [p for p in package_id.strip().split(".") if p]
    if not parts:
        return ""
    path = "/".join([parts[0][0].lower(), *parts])
    if sub_path:
        path = f"{path}/{sub_path.strip('/')}"
    return path


def build_path_context(entry: SoftwareEntry, settings: Settings) -> PathContext:
    """Build the PathContext for an entry."""
    segments = [sanitize_name(s) for s in entry.name_segments]
    package_dir = settings.packages_root.joinpath(*segments)

    api_url = raw_url = None
    if entry.source_type is SourceType.WINGET:
        rel = winget_manifest_path(entry.source_ref, entry.manifest_sub_path)
        api_url = f"{settings.manifest_api_url}/{rel}"
        raw_url = f"{settings.manifest_raw_url}/{rel}"

    return PathContext(
        asset_folder="/".join(segments),
        package_dir=package_dir,
        tools_dir=package_dir / "tools",
        work_dir=settings.work_dir,
        manifest_api_url=api_url,
        manifest_raw_url=raw_url,
    )
