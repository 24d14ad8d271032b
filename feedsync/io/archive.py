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

"""Archive introspection for feedsync.

Two pipeline stages look inside zip archives:

- Nested installers: some vendors ship the real installer inside a zip
  (Winget `NestedInstallerFiles`). The entry is located by its exact
  relative path and written out byte for byte.
- The self package: the package manager's own `.nupkg` already contains a
  ready `tools/` folder, which replaces the local package source's `tools/`.

Entry paths are compared with forward slashes; Winget manifests often use
backslashes (`bin\\setup.exe`).
"""

from __future__ import annotations

from pathlib import Path
import shutil
import tempfile
import zipfile

from feedsync.exceptions import PackagingError


def _norm(name: str) -> str:
    return name.replace("\\", "/").lstrip("/")


def extract_nested(archive: Path, relative_path: str, target: Path) -> Path:
    """Extract one entry from a zip archive to an exact target path.

    Args:
        archive: Zip file to read.
        relative_path: Path of the entry inside the archive.
        target: File to write.

    Returns:
        The target path.

    Raises:
        PackagingError: If the archive is unreadable or lacks the entry.
    """
    wanted = _norm(relative_path)
    try:
        with zipfile.ZipFile(archive, "r") as zf:
            match = next(
                (i for i in zf.infolist() if _norm(i.filename) == wanted and not i.is_dir()),
                None,
            )
            if match is None:
                raise PackagingError(
                    f"Nested file {relative_path!r} not found in {archive.name}"
                )
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(match) as src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)
    except zipfile.BadZipFile as err:
        raise PackagingError(f"Failed to read archive {archive.name}: {err}") from err
    return target


def replace_tools_dir(package_archive: Path, tools_dir: Path) -> int:
    """Replace tools_dir with the `tools/` folder of a package archive.

    The archive's tools are staged in a temporary directory first; the
    target is only cleared once staging succeeded.

    Args:
        package_archive: Downloaded `.nupkg` (zip) file.
        tools_dir: Local package source `tools/` folder.

    Returns:
        Number of files copied into tools_dir.

    Raises:
        PackagingError: If the archive is unreadable or has no tools folder.
    """
    with tempfile.TemporaryDirectory(prefix="feedsync-tools-") as tmp:
        staging = Path(tmp) / "tools"
        count = 0
        try:
            with zipfile.ZipFile(package_archive, "r") as zf:
                for info in zf.infolist():
                    name = _norm(info.filename)
                    if info.is_dir() or not name.lower().startswith("tools/"):
                        continue
                    rel = Path(name[len("tools/"):])
                    if ".." in rel.parts:
                        continue
                    dest = staging / rel
                    dest.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(info) as src, dest.open("wb") as dst:
                        shutil.copyfileobj(src, dst)
                    count += 1
        except zipfile.BadZipFile as err:
            raise PackagingError(
                f"Failed to read package archive {package_archive.name}: {err}"
            ) from err

        if count == 0:
            raise PackagingError(f"No tools/ folder in {package_archive.name}")

        if tools_dir.exists():
            shutil.rmtree(tools_dir)
        shutil.copytree(staging, tools_dir)
    return count
