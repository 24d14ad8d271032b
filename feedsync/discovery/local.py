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

"""Local drop folder resolver and version suppliers for feedsync.

Installers that cannot be fetched automatically are dropped by hand into
`paths.local_drop_dir`. The resolver picks the best file for an entry and
asks a VersionSupplier for its version; the version is never guessed from
the file.

Candidate Ranking:
    Files in the drop folder (not recursive) with the preferred extension,
    in name order, scored as:

    - +3 if the file name contains the software name
    - +5 if the embedded product name contains the software name
    - +1 if the publisher appears in the embedded product name or
      description

    Comparisons are case-insensitive. The highest score wins; the first
    file in name order wins a tie.

Version Suppliers:
    - ConsoleVersionSupplier: prompts on the terminal
    - NonInteractiveVersionSupplier: fails immediately (CI, scheduled runs)
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from feedsync.config.entries import SoftwareEntry, SourceType
from feedsync.exceptions import ConfigError, VersionError
from feedsync.paths import PathContext
from feedsync.versioning.fileinfo import FileMetadata, read_file_metadata
from feedsync.versioning.keys import is_valid_version, normalize_version

from .base import ResolveContext, register_resolver
from .intent import ResolvedIntent


class ConsoleVersionSupplier:
    """Prompt for a version on the terminal."""

    def __init__(self, input_func: Callable[[str], str] = input) -> None:
        self._input = input_func

    def supply(self, entry: SoftwareEntry, candidate: str | None) -> str:
        hint = f" [{candidate}]" if candidate else ""
        try:
            answer = self._input(f"Version for {entry.display_name} ({entry.arch}){hint}: ")
        except EOFError as err:
            raise ConfigError(f"No version entered for {entry.display_name}") from err
        answer = answer.strip()
        if not answer:
            raise ConfigError(f"No version entered for {entry.display_name}")
        return answer


class NonInteractiveVersionSupplier:
    """Refuse to supply versions; used when nobody can answer a prompt."""

    def supply(self, entry: SoftwareEntry, candidate: str | None) -> str:
        raise ConfigError(
            f"{entry.display_name} ({entry.arch}) needs a manually supplied "
            f"version, which is not available in non-interactive mode"
        )


def score_candidate(
    entry: SoftwareEntry, path: Path, metadata: FileMetadata | None
) -> int:
    """Rank a drop-folder file for entry."""
    name = entry.software_name.lower()
    publisher = entry.publisher.lower()
    score = 0
    if name in path.stem.lower():
        score += 3
    if metadata is not None:
        product = (metadata.product_name or "").lower()
        description = (metadata.description or "").lower()
        if name in product:
            score += 5
        if publisher and (publisher in product or publisher in description):
            score += 1
    return score


def find_candidates(drop_dir: Path, extension: str) -> list[Path]:
    """Files in drop_dir with extension, sorted by name."""
    if not drop_dir.is_dir():
        return []
    return sorted(
        (p for p in drop_dir.iterdir() if p.is_file() and p.suffix.lower() == extension),
        key=lambda p: p.name.lower(),
    )


class LocalResolver:
    """Resolver for entries with SourceType Local."""

    def resolve(
        self, entry: SoftwareEntry, paths: PathContext, context: ResolveContext
    ) -> ResolvedIntent | None:
        logger = context.logger
        drop_dir = context.settings.local_drop_dir
        candidates = find_candidates(drop_dir, entry.preferred_extension)
        if not candidates:
            raise ConfigError(
                f"No {entry.preferred_extension} file for {entry.display_name} "
                f"in {drop_dir}"
            )

        best: Path | None = None
        best_score = -1
        for path in candidates:
            score = score_candidate(entry, path, read_file_metadata(path))
            logger.debug("LOCAL", f"{path.name}: score {score}")
            if score > best_score:
                best, best_score = path, score
        logger.verbose("LOCAL", f"Selected {best.name} (score {best_score})")

        version = normalize_version(context.version_supplier.supply(entry, best.name))
        if not is_valid_version(version):
            raise VersionError(
                f"Invalid version {version!r} for {entry.display_name}; "
                f"expected 2 to 4 dotted numbers"
            )

        return ResolvedIntent(
            source_type=SourceType.LOCAL,
            version=version,
            installer_url=None,
            file_name=best.name,
            extension=best.suffix.lower(),
            local_file=best,
        )


register_resolver(SourceType.LOCAL, LocalResolver)
