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

"""Resolved installer intent and its normalization.

Resolvers describe what they found as a ResolvedIntent. Not every resolver
fills the same fields: some report `latest_version` or `release_version`
instead of `version`, or `url` instead of `installer_url`. normalize_intent()
folds these aliases into the canonical fields so the pipeline reads one
shape only.

Example:
    ```python
    raw = ResolvedIntent(release_version="2.1", url="https://x/App.msi")
    intent = normalize_intent(raw, entry)
    intent.version, intent.installer_url, intent.extension
    # ("2.1", "https://x/App.msi", ".msi")
    ```
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from feedsync.config.entries import SoftwareEntry, SourceType
from feedsync.versioning.keys import VersionKey, parse_version
from feedsync.versioning.naming import normalize_extension

from .base import ResolveContext
from .probe import probe_url

_PLACEHOLDER_NAMES = {"download", "installer"}


@dataclass(frozen=True)
class NestedArchiveRef:
    """Location of the real installer inside a downloaded zip."""

    relative_path: str


@dataclass(frozen=True)
class ResolvedIntent:
    """What a resolver found for an entry.

    Attributes:
        source_type: Resolver that produced the intent.
        version: Raw version string.
        installer_url: Where to download the installer.
        file_name: Upstream file name (may be a placeholder).
        extension: Installer extension with leading dot.
        sha256: Upstream SHA-256, when the source publishes one.
        nested: Installer location inside a zip download.
        local_file: Local installer path (Local sources).
        latest_version: Alias for version.
        release_version: Alias for version.
        url: Alias for installer_url.
    """

    source_type: SourceType | None = None
    version: str | None = None
    installer_url: str | None = None
    file_name: str | None = None
    extension: str | None = None
    sha256: str | None = None
    nested: NestedArchiveRef | None = None
    local_file: Path | None = None
    latest_version: str | None = None
    release_version: str | None = None
    url: str | None = None

    @property
    def comparable(self) -> VersionKey:
        """Parsed version tuple; raises VersionError if the version is invalid."""
        return parse_version(self.version or "")


def normalize_intent(intent: ResolvedIntent, entry: SoftwareEntry) -> ResolvedIntent:
    """Fill canonical fields from aliases and entry defaults.

    Pure: returns a new intent and never raises.
    """
    version = intent.version or intent.latest_version or intent.release_version
    installer_url = intent.installer_url or intent.url
    extension = normalize_extension(intent.extension) or entry.preferred_extension
    return replace(
        intent,
        version=version.strip() if version else version,
        installer_url=installer_url,
        extension=extension,
        source_type=intent.source_type or entry.source_type,
    )


def needs_file_name_probe(intent: ResolvedIntent) -> bool:
    """True if the file name is missing or a generic placeholder."""
    if intent.local_file is not None or not intent.installer_url:
        return False
    name = (intent.file_name or "").strip()
    if not name:
        return True
    path = Path(name)
    return path.stem.lower() in _PLACEHOLDER_NAMES or not path.suffix


def ensure_resolved_file_name(
    intent: ResolvedIntent, context: ResolveContext
) -> ResolvedIntent:
    """Re-resolve a placeholder file name by probing the installer URL.

    The probe follows redirects, so the returned intent also carries the
    final download URL. If the URL answers with an HTML page or names no
    file, the intent is returned unchanged.

    Raises:
        NetworkError: If the probe fails. Callers treat this as a warning
            and keep the original intent.
    """
    if not needs_file_name_probe(intent):
        return intent

    result = probe_url(
        context.session, intent.installer_url, context.settings.http_timeout
    )
    if result.is_html or not result.file_name:
        context.logger.verbose(
            "RESOLVE", f"Probe of {intent.installer_url} did not name a file"
        )
        return intent

    context.logger.verbose("RESOLVE", f"Resolved file name: {result.file_name}")
    return replace(intent, file_name=result.file_name, installer_url=result.final_url)


__all__ = [
    "NestedArchiveRef",
    "ResolvedIntent",
    "ensure_resolved_file_name",
    "needs_file_name_probe",
    "normalize_intent",
]
