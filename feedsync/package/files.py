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

"""Package source tree editing for feedsync.

A package source directory looks like:

    <package_dir>/
        app.nuspec                  # <version> is rewritten
        tools/
            chocolateyinstall.ps1   # url/checksum assignments are rewritten
            checksums.json          # {"x86": "<sha256>", "x64": "<sha256>"}
            App_x64_1.2.msi         # installer copy, replaced per update

The directory itself is owned by the package maintainers; these helpers only
edit known files in place.
"""

from __future__ import annotations

import json
from pathlib import Path
import re
import shutil

from feedsync.exceptions import PackagingError
from feedsync.versioning.naming import normalize_extension

CHECKSUMS_FILE = "checksums.json"
INSTALL_SCRIPT = "chocolateyinstall.ps1"

_NUSPEC_VERSION = re.compile(r"(<version>)([^<]*)(</version>)", re.IGNORECASE)


def find_nuspec(package_dir: Path) -> Path:
    """Return the package's nuspec file.

    Raises:
        PackagingError: If the directory holds no .nuspec.
    """
    nuspecs = sorted(package_dir.glob("*.nuspec"))
    if not nuspecs:
        raise PackagingError(f"No .nuspec found in {package_dir}")
    return nuspecs[0]


def update_nuspec_version(nuspec: Path, version: str) -> None:
    """Set the `<version>` element, leaving the rest of the file untouched.

    Raises:
        PackagingError: If the nuspec has no version element.
    """
    text = nuspec.read_text(encoding="utf-8-sig")
    new_text, count = _NUSPEC_VERSION.subn(
        lambda m: f"{m.group(1)}{version}{m.group(3)}", text, count=1
    )
    if count == 0:
        raise PackagingError(f"No <version> element in {nuspec.name}")
    nuspec.write_text(new_text, encoding="utf-8")


def update_checksums(tools_dir: Path, arch: str, sha256: str) -> Path:
    """Upsert the architecture's SHA-256 into `tools/checksums.json`.

    A missing file is created with empty x86/x64 entries first.
    """
    path = tools_dir / CHECKSUMS_FILE
    data: dict[str, str] = {"x86": "", "x64": ""}
    if path.exists():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8-sig") or "{}")
        except ValueError as err:
            raise PackagingError(f"Invalid JSON in {path}: {err}") from err
        if isinstance(loaded, dict):
            data.update(loaded)
    data[arch] = sha256
    tools_dir.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


def find_install_script(tools_dir: Path) -> Path:
    """Locate `chocolateyinstall.ps1` (case-insensitive).

    Raises:
        PackagingError: If the script is absent.
    """
    if tools_dir.is_dir():
        for p in sorted(tools_dir.iterdir()):
            if p.is_file() and p.name.lower() == INSTALL_SCRIPT:
                return p
    raise PackagingError(f"Install script {INSTALL_SCRIPT} not found in {tools_dir}")


def remove_old_installers(
    tools_dir: Path, prefix: str, arch: str, extension: str
) -> list[Path]:
    """Delete `<prefix>_<arch>_*<ext>` installers from tools_dir.

    Returns:
        The files removed (empty if none matched).
    """
    if not tools_dir.is_dir():
        return []
    ext = normalize_extension(extension)
    head = f"{prefix}_{arch}_".lower()
    removed: list[Path] = []
    for p in sorted(tools_dir.iterdir()):
        name = p.name.lower()
        if p.is_file() and name.startswith(head) and name.endswith(ext):
            p.unlink()
            removed.append(p)
    return removed


def install_artifact(tools_dir: Path, artifact: Path) -> Path:
    """Copy the new installer into tools_dir."""
    tools_dir.mkdir(parents=True, exist_ok=True)
    target = tools_dir / artifact.name
    shutil.copy2(artifact, target)
    return target
