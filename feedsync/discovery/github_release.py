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

"""GitHub release resolver for feedsync.

This is a VERSION-FIRST resolver that queries the latest release of a GitHub
repository for the version and download URL without downloading anything.

Entry Configuration:
    - SourceRef (required): repository as "owner/name"
      (e.g., "git-for-windows/git")
    - AssetPattern (optional): regular expression searched in asset names.
      The first matching asset is used. Without a pattern, the first asset
      whose name ends with the preferred extension is used
      (case-insensitive).

Version Extraction:
    The first dotted number in the release tag (`v2.44.0.windows.1` ->
    `2.44.0`). A tag without one yields the unknown-version sentinel, which
    always triggers an update.

Authentication:
    `github.token` in the settings (usually `${FEEDSYNC_GITHUB_TOKEN}`)
    raises the API rate limit from 60 to 5000 requests per hour.

Error Handling:
    - ConfigError: Invalid repository format or asset pattern
    - NetworkError: API failures (not found, rate limited, transport)
    - No matching asset is a soft failure (warning, entry skipped)
"""

from __future__ import annotations

from pathlib import Path
import re

import requests

from feedsync.config.entries import SoftwareEntry, SourceType
from feedsync.exceptions import ConfigError, NetworkError
from feedsync.paths import PathContext
from feedsync.versioning.keys import extract_version

from .base import ResolveContext, register_resolver
from .intent import ResolvedIntent

_REPO = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class GitHubReleaseResolver:
    """Resolver for entries with SourceType GitHubRelease."""

    def resolve(
        self, entry: SoftwareEntry, paths: PathContext, context: ResolveContext
    ) -> ResolvedIntent | None:
        logger = context.logger
        repo = entry.source_ref.strip().strip("/")
        if not _REPO.match(repo):
            raise ConfigError(
                f"Invalid repo format: {entry.source_ref!r}. Expected 'owner/repository'"
            )

        if entry.asset_pattern:
            try:
                pattern = re.compile(entry.asset_pattern)
            except re.error as err:
                raise ConfigError(
                    f"Invalid asset_pattern regex: {entry.asset_pattern!r}"
                ) from err

            def matches(name: str) -> bool:
                return bool(pattern.search(name))

        else:

            def matches(name: str) -> bool:
                return name.lower().endswith(entry.preferred_extension)

        api_url = f"{context.settings.github_api_url.rstrip('/')}/repos/{repo}/releases/latest"
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if context.settings.github_token:
            headers["Authorization"] = f"token {context.settings.github_token}"
            logger.verbose("GITHUB", "Using authenticated API request")

        logger.verbose("GITHUB", f"Fetching release from: {api_url}")

        try:
            response = context.session.get(
                api_url, headers=headers, timeout=context.settings.http_timeout
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as err:
            if response.status_code == 404:
                raise NetworkError(
                    f"Repository {repo!r} not found or has no releases"
                ) from err
            elif response.status_code == 403:
                raise NetworkError(
                    f"GitHub API rate limit exceeded. Consider using a token. "
                    f"Status: {response.status_code}"
                ) from err
            else:
                raise NetworkError(
                    f"GitHub API request failed: {response.status_code} "
                    f"{response.reason}"
                ) from err
        except requests.exceptions.RequestException as err:
            raise NetworkError(f"Failed to fetch GitHub release: {err}") from err

        try:
            release = response.json()
        except ValueError as err:
            raise NetworkError(f"GitHub API returned invalid JSON for {repo}") from err

        tag_name = str(release.get("tag_name") or "")
        version = extract_version(tag_name)
        logger.verbose("GITHUB", f"Release tag: {tag_name} (version {version})")

        assets = release.get("assets") or []
        matched = next((a for a in assets if matches(str(a.get("name", "")))), None)
        if matched is None:
            available = ", ".join(str(a.get("name", "(unnamed)")) for a in assets)
            logger.warning(
                "GITHUB",
                f"No asset of {repo} {tag_name} matched. "
                f"Available assets: {available or '(none)'}",
            )
            return None

        name = str(matched.get("name", ""))
        logger.verbose("GITHUB", f"Matched asset: {name}")

        # Newer API versions publish the digest as "sha256:<hex>".
        digest = str(matched.get("digest") or "")
        sha256 = digest.split(":", 1)[1].lower() if digest.startswith("sha256:") else None

        return ResolvedIntent(
            source_type=SourceType.GITHUB_RELEASE,
            release_version=version,
            url=matched.get("browser_download_url"),
            file_name=name,
            extension=Path(name).suffix,
            sha256=sha256,
        )


register_resolver(SourceType.GITHUB_RELEASE, GitHubReleaseResolver)
