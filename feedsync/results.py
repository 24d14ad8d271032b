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

"""Public API return types for feedsync.

This module defines the results of synchronizing and resolving entries, and
the counters a run accumulates.

Reports are frozen. SyncCounters is the one mutable type: it is created by
the batch driver and passed explicitly through the pipeline, so every
warning and error that is logged is also counted.

Example:
    Using result types:
        ```python
        from pathlib import Path
        from feedsync.core import sync_entries

        summary = sync_entries(entries, settings)
        print(summary.summary_line())  # checked 12, warnings 1, errors 0
        for report in summary.reports:
            print(report.name, report.outcome, report.stages)
        ```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from feedsync.logging import Logger

StageStatus = Literal["ok", "failed", "skipped"]
Outcome = Literal["updated", "up_to_date", "skipped", "failed"]

STAGES = ("download", "publish", "manifest", "script", "pack")
OK: StageStatus = "ok"
FAILED: StageStatus = "failed"
SKIPPED: StageStatus = "skipped"


@dataclass
class SyncCounters:
    """Run-wide counters.

    Attributes:
        checked: Entries processed.
        warnings: Warnings logged.
        errors: Errors logged.
    """

    checked: int = 0
    warnings: int = 0
    errors: int = 0

    def warning(self, logger: Logger, prefix: str, message: str) -> None:
        """Log and count a warning."""
        logger.warning(prefix, message)
        self.warnings += 1

    def error(self, logger: Logger, prefix: str, message: str) -> None:
        """Log and count an error."""
        logger.error(prefix, message)
        self.errors += 1

    def note_warning(self) -> None:
        """Count a warning that a collaborator has already logged."""
        self.warnings += 1


def initial_stages() -> dict[str, StageStatus]:
    return {stage: SKIPPED for stage in STAGES}


@dataclass(frozen=True)
class EntryReport:
    """Outcome of synchronizing one entry.

    Attributes:
        name: Entry display name (`Software[_Sub1][_Sub2]`).
        arch: Entry architecture.
        source_type: Source type value (e.g., "Winget").
        outcome: "updated", "up_to_date", "skipped" or "failed".
        resolved_version: Version reported by the resolver, if any.
        existing_version: Newest published version, if any.
        artifact_name: Target artifact name, if computed.
        asset_url: Content URL of the published artifact, if uploaded.
        package_path: Packed `.nupkg`, if packed.
        stages: Status per stage (download, publish, manifest, script, pack).
        message: Short explanation of the outcome.
    """

    name: str
    arch: str
    source_type: str
    outcome: Outcome
    resolved_version: str | None = None
    existing_version: str | None = None
    artifact_name: str | None = None
    asset_url: str | None = None
    package_path: Path | None = None
    stages: dict[str, StageStatus] = field(default_factory=initial_stages)
    message: str = ""


@dataclass(frozen=True)
class ResolveReport:
    """Read-only view of an entry: what is available versus published.

    Attributes:
        name: Entry display name.
        arch: Entry architecture.
        source_type: Source type value.
        version: Resolved version (None if nothing was resolved).
        installer_url: Resolved download URL.
        file_name: Resolved upstream file name.
        nested_path: Installer path inside a zip download, if any.
        existing_version: Newest published version, if any.
        decision: "update_needed", "up_to_date", or "unresolved".
        reason: Short explanation of the decision.
    """

    name: str
    arch: str
    source_type: str
    version: str | None
    installer_url: str | None
    file_name: str | None
    nested_path: str | None
    existing_version: str | None
    decision: str
    reason: str


@dataclass(frozen=True)
class RunSummary:
    """Totals and per-entry reports of a run."""

    checked: int
    warnings: int
    errors: int
    reports: list[EntryReport | ResolveReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.errors == 0

    def summary_line(self) -> str:
        return f"checked {self.checked}, warnings {self.warnings}, errors {self.errors}"
