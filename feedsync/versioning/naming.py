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

"""Artifact naming conventions for feedsync.

Every installer published to the asset store is named
`<Name>[_<Sub1>][_<Sub2>]_<Arch>_<Version><.ext>`, for example
`NotepadPlusPlus_x64_8.6.2.exe`. The same names are used for the copy kept
in the package's `tools/` folder, so both sides can be matched with one
pattern.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from feedsync.config.entries import SoftwareEntry

# Characters the asset store rejects (or mangles) in path segments.
_ILLEGAL = re.compile(r'[=#?%&*:<>|"\\]')


def sanitize_name(name: str) -> str:
    """Make a name safe for use as an asset store path segment.

    `+` becomes `Plus` and other illegal characters are dropped. Applying it
    twice gives the same result as applying it once.

    Example:
        ```python
        sanitize_name("Notepad++")  # "NotepadPlusPlus"
        sanitize_name("C#=Tools")   # "CTools"
        ```
    """
    return _ILLEGAL.sub("", name.replace("+", "Plus")).strip()


def normalize_extension(ext: str | None) -> str:
    """Lowercase an extension and make sure it has a leading dot."""
    ext = (ext or "").strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def artifact_prefix(entry: SoftwareEntry) -> str:
    """Sanitized `Name[_Sub1][_Sub2]` part of an artifact name."""
    return sanitize_name(entry.display_name)


def build_artifact_name(entry: SoftwareEntry, version: str, extension: str) -> str:
    """Build the deterministic artifact file name for an entry.

    Args:
        entry: Software entry being processed.
        version: Resolved version string.
        extension: File extension, with or without the leading dot.

    Returns:
        File name such as `7zip_x64_23.01.msi`.
    """
    return f"{artifact_prefix(entry)}_{entry.arch}_{version}{normalize_extension(extension)}"


def artifact_pattern(prefix: str, arch: str, extension: str) -> re.Pattern[str]:
    """Compile a pattern matching published names for prefix/arch/extension.

    The single capture group holds the version.
    """
    return re.compile(
        rf"^{re.escape(prefix)}_{re.escape(arch)}_(\d+(?:\.\d+){{1,3}})"
        rf"{re.escape(normalize_extension(extension))}$",
        re.IGNORECASE,
    )
