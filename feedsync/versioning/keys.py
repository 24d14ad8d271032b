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

"""Core version comparison utilities for feedsync.

This module is format-agnostic: it does NOT download or read files.
It only parses and compares version strings consistently across sources.

Comparison is purely numeric and component-wise. There are no pre-release
or build-metadata semantics: the asset store naming convention only ever
carries `major.minor[.patch[.build]]`, so anything richer has already been
lost by the time two versions are compared.
"""

from __future__ import annotations

import re

from feedsync.exceptions import VersionError

# Sentinel for sources that cannot tell us a version (no digits in the
# file name or release tag). Never equal to a published version.
UNKNOWN_VERSION = "0.0.0.0"

VersionKey = tuple[int, int, int, int]

_STRICT = re.compile(r"^\d+(?:\.\d+){1,3}$")
_EMBEDDED = re.compile(r"\d+(?:\.\d+){1,3}")


def normalize_version(raw: str | None) -> str:
    """Trim whitespace and drop a leading 'v' ("v1.2.3" -> "1.2.3")."""
    s = (raw or "").strip()
    if s[:1] in ("v", "V"):
        s = s[1:]
    return s


def is_valid_version(raw: str | None) -> bool:
    """Return True if raw has 2-4 numeric dot-separated components."""
    return bool(_STRICT.match(normalize_version(raw)))


def parse_version(raw: str) -> VersionKey:
    """Parse a strict version string into a comparable 4-tuple.

    Missing components are padded with zeros so "23.01" == "23.1.0.0".

    Args:
        raw: Version string such as "23.01" or "v1.2.3.4".

    Returns:
        Tuple of four integers.

    Raises:
        VersionError: If the string is not a strict version.

    Example:
        ```python
        parse_version("23.01")  # (23, 1, 0, 0)
        ```
    """
    s = normalize_version(raw)
    if not _STRICT.match(s):
        raise VersionError(
            f"Invalid version {raw!r}: expected 2-4 numeric components "
            "(e.g. 1.2 or 1.2.3.4)"
        )
    nums = [int(p) for p in s.split(".")]
    nums += [0] * (4 - len(nums))
    return (nums[0], nums[1], nums[2], nums[3])


def extract_version(text: str | None) -> str:
    """Return the first version-like substring of text.

    Used for file names ("tool_2.3.exe" -> "2.3") and release tags
    ("release-v1.4.0" -> "1.4.0"). A version needs at least two dotted
    components, so architecture tags like "x64" never match. Returns
    UNKNOWN_VERSION when nothing version-like is present.
    """
    if text:
        m = _EMBEDDED.search(text)
        if m:
            return m.group(0)
    return UNKNOWN_VERSION


def compare_versions(a: str, b: str) -> int:
    """Compare two strict versions.

    Returns -1 if a < b, 0 if equal, 1 if a > b.

    Raises:
        VersionError: If either side is not a strict version.
    """
    ka = parse_version(a)
    kb = parse_version(b)
    return (ka > kb) - (ka < kb)


def is_newer(remote: str, current: str | None) -> bool:
    """Decide if 'remote' is strictly newer than 'current'.

    A missing current version always counts as older.
    """
    if current is None:
        return True
    return compare_versions(remote, current) > 0
