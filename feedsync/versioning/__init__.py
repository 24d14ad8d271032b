"""
Version comparison and artifact naming utilities for feedsync.

Modules
-------
keys : module
    Strict version parsing, numeric comparison, and version extraction.
naming : module
    Name sanitization and the deterministic artifact naming convention.
fileinfo : module
    Embedded installer metadata (product name, company) for ranking.

Examples
--------
    >>> from feedsync.versioning import compare_versions, is_newer
    >>> compare_versions("23.01", "21.07")
    1
    >>> is_newer("1.2", "1.2.0.0")
    False
    >>> from feedsync.versioning import sanitize_name
    >>> sanitize_name("Notepad++")
    'NotepadPlusPlus'
"""

from .keys import (
    UNKNOWN_VERSION,
    VersionKey,
    compare_versions,
    extract_version,
    is_newer,
    is_valid_version,
    normalize_version,
    parse_version,
)
from .naming import (
    artifact_pattern,
    artifact_prefix,
    build_artifact_name,
    normalize_extension,
    sanitize_name,
)

__all__ = [
    "UNKNOWN_VERSION",
    "VersionKey",
    "artifact_pattern",
    "artifact_prefix",
    "build_artifact_name",
    "compare_versions",
    "extract_version",
    "is_newer",
    "is_valid_version",
    "normalize_extension",
    "normalize_version",
    "parse_version",
    "sanitize_name",
]
