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

"""Update decision policy for feedsync.

Decides whether a resolved installer should replace what the asset store
already holds for an entry.

Example:
    Check a resolved version against the published one:

        from feedsync.policy.updates import decide_update

        decision = decide_update(
            resolved_version="23.01",
            existing_version="22.01",
            force=False,
        )
        decision.update  # True

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from feedsync.versioning.keys import UNKNOWN_VERSION, compare_versions

Outcome = Literal["update_needed", "up_to_date"]


@dataclass(frozen=True)
class UpdateDecision:
    outcome: Outcome
    reason: str

    @property
    def update(self) -> bool:
        return self.outcome == "update_needed"


def decide_update(
    *,
    resolved_version: str,
    existing_version: str | None,
    force: bool = False,
) -> UpdateDecision:
    """Decide whether to publish the resolved installer.

    Rules, first match wins:

    1. force -> update
    2. nothing published yet -> update
    3. resolved version is the unknown sentinel -> update
    4. resolved version newer than published -> update
    5. otherwise (equal, or older than published) -> up to date

    Args:
        resolved_version: Valid version reported by the resolver.
        existing_version: Version of the newest published artifact, or None.
        force: Update regardless of versions.

    Returns:
        The outcome with a short human-readable reason.

    """
    if force:
        return UpdateDecision("update_needed", "forced")
    if existing_version is None:
        return UpdateDecision("update_needed", "no published artifact")
    if resolved_version == UNKNOWN_VERSION:
        return UpdateDecision("update_needed", "resolved version unknown")

    cmp = compare_versions(resolved_version, existing_version)
    if cmp > 0:
        return UpdateDecision(
            "update_needed", f"{resolved_version} is newer than {existing_version}"
        )
    if cmp == 0:
        return UpdateDecision("up_to_date", f"{existing_version} already published")
    return UpdateDecision(
        "up_to_date",
        f"published {existing_version} is newer than resolved {resolved_version}",
    )
