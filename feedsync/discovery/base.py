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

"""Resolver protocol and registry for feedsync.

This module defines the foundational components for source resolution:

- Resolver protocol: Interface that all resolvers must implement
- ResolveContext: Collaborators handed to every resolver call
- VersionSupplier protocol: Where human-provided versions come from
- Resolver registry: register_resolver() and get_resolver(), keyed by
    SourceType

Each source type answers one question for an entry: what is the latest
available installer, and where can it be fetched?

- Winget: Walk the public Winget manifest repository
- GitHubRelease: Query the latest release of a GitHub repository
- WebDirectory: Probe a download page or directory listing
- DirectUrl: Probe a direct or redirecting download link
- Local: Pick a file from the local drop folder

Design Philosophy:
    - Resolvers are Protocol classes (structural subtyping, not inheritance)
    - Registration happens at module import time (resolvers self-register)
    - Resolvers are stateless; per-run state lives in ResolveContext
    - A resolver returns None for a soft "not found" and raises only when
      the source itself cannot be read

Example:
    Implementing a custom resolver:
        ```python
        from feedsync.discovery.base import register_resolver
        from feedsync.discovery.intent import ResolvedIntent

        class MyResolver:
            def resolve(self, entry, paths, context):
                return ResolvedIntent(version="1.0", installer_url="https://...")

        register_resolver(SourceType.DIRECT_URL, MyResolver)
        ```
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import requests

from feedsync.config.entries import SoftwareEntry, SourceType
from feedsync.config.loader import Settings
from feedsync.exceptions import ConfigError
from feedsync.logging import Logger
from feedsync.paths import PathContext

if TYPE_CHECKING:
    from .intent import ResolvedIntent


class VersionSupplier(Protocol):
    """Source of human-provided versions (local files, manual entries)."""

    def supply(self, entry: SoftwareEntry, candidate: str | None) -> str:
        """Return the version to use for entry.

        Args:
            entry: The entry being resolved.
            candidate: Resolved file name or version to show as a hint.

        Raises:
            ConfigError: If no version can be obtained.
        """
        ...


@dataclass(frozen=True)
class ResolveContext:
    """Collaborators shared by all resolvers during one run.

    Attributes:
        session: HTTP session with retry/backoff (see io.make_session).
        settings: Effective settings.
        logger: Logger for verbose/warning output.
        version_supplier: Where manual versions come from.
    """

    session: requests.Session
    settings: Settings
    logger: Logger
    version_supplier: VersionSupplier


class Resolver(Protocol):
    """Protocol for source resolvers."""

    def resolve(
        self, entry: SoftwareEntry, paths: PathContext, context: ResolveContext
    ) -> ResolvedIntent | None:
        """Resolve the latest installer for entry.

        Args:
            entry: The configured product.
            paths: Derived locations for the entry (Winget URLs included).
            context: Shared run collaborators.

        Returns:
            The raw intent, or None when nothing suitable was found (a
            warning has already been logged).

        Raises:
            NetworkError: If the source could not be fetched.
            ConfigError: If the entry's source configuration is invalid.
        """
        ...


_RESOLVER_REGISTRY: dict[SourceType, type[Resolver]] = {}


def register_resolver(source_type: SourceType, resolver_class: type[Resolver]) -> None:
    """Register a resolver class for a source type.

    Registering the same source type twice overwrites the previous
    registration (tests rely on this to inject fakes).
    """
    _RESOLVER_REGISTRY[source_type] = resolver_class


def get_resolver(source_type: SourceType) -> Resolver:
    """Get a new resolver instance for a source type.

    Raises:
        ConfigError: If no resolver is registered for the source type.
    """
    if source_type not in _RESOLVER_REGISTRY:
        available = ", ".join(sorted(t.value for t in _RESOLVER_REGISTRY))
        raise ConfigError(
            f"No resolver registered for source type {source_type.value!r}. "
            f"Available: {available or '(none)'}"
        )
    return _RESOLVER_REGISTRY[source_type]()
