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

"""Exception hierarchy for feedsync.

This module defines a custom exception hierarchy that allows library users
to distinguish between different types of errors:

- ConfigError: Settings/entry errors (YAML/CSV parse, missing fields,
    unknown source types, missing local candidates)
- VersionError: A version string that does not match the strict
    `major.minor[.patch[.build]]` pattern
- NetworkError: HTTP failures against sources, the asset store, or downloads
- PackagingError: Package source tree and packaging CLI failures

All exceptions inherit from FeedSyncError, allowing callers to catch every
feedsync error with a single except clause. The pipeline in
`feedsync.core` relies on this to isolate failures per software entry.

Example:
    Catching specific error types:
        ```python
        from feedsync.core import sync_entry
        from feedsync.exceptions import ConfigError, NetworkError

        try:
            report = sync_entry(entry, settings, ...)
        except ConfigError as e:
            print(f"Configuration error: {e}")
        except NetworkError as e:
            print(f"Network error: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "FeedSyncError",
    "ConfigError",
    "VersionError",
    "NetworkError",
    "PackagingError",
]


class FeedSyncError(Exception):
    """Base exception for all feedsync errors."""

    pass


class ConfigError(FeedSyncError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - Settings YAML parsing or missing settings files
    - Entries CSV rows with missing or invalid fields
    - Unknown source types or invalid source references
    - Invalid asset patterns (regex syntax)
    - Missing local drop candidates or refused version input
    """

    pass


class VersionError(ConfigError):
    """Raised when a version string fails strict validation.

    Valid versions have between two and four numeric components
    (e.g. "23.01", "1.2.3", "10.0.19041.1").
    """

    pass


class NetworkError(FeedSyncError):
    """Raised for network/download-related errors.

    This exception is raised when there are problems with:

    - Manifest repository or release feed API calls
    - Directory listing and direct download probes
    - Installer downloads (after the fallback also failed)
    - Asset store listing, metadata, and upload calls
    """

    pass


class PackagingError(FeedSyncError):
    """Raised for packaging-related errors.

    This exception is raised when there are problems with:

    - Missing nuspec or install script in the package source tree
    - Archive extraction (nested installers, self package tools)
    - The packaging CLI (pack/push failures, timeouts, missing output)
    - Working directory setup
    """

    pass
