"""
Source resolution for feedsync.

Each SourceType has one resolver that reports the latest installer for an
entry as a ResolvedIntent. Resolvers register themselves when their module
is imported; importing this package registers all of them.

Resolvers
---------
winget : WingetResolver
    Public Winget manifest repository.
github_release : GitHubReleaseResolver
    Latest GitHub release asset.
web_directory : WebDirectoryResolver
    Vendor download page or directory listing.
direct_url : DirectUrlResolver
    Direct or redirecting download link.
local : LocalResolver
    Local drop folder, version supplied by a human.

Examples
--------
    >>> from feedsync.discovery import get_resolver
    >>> from feedsync.config.entries import SourceType
    >>> resolver = get_resolver(SourceType.WINGET)
    >>> intent = resolver.resolve(entry, paths, context)
"""

from .base import (
    ResolveContext,
    Resolver,
    VersionSupplier,
    get_resolver,
    register_resolver,
)

# Import resolvers so they register themselves
from . import direct_url, github_release, local, web_directory, winget  # noqa: F401
from .intent import (
    NestedArchiveRef,
    ResolvedIntent,
    ensure_resolved_file_name,
    needs_file_name_probe,
    normalize_intent,
)
from .local import ConsoleVersionSupplier, NonInteractiveVersionSupplier

__all__ = [
    "ConsoleVersionSupplier",
    "NestedArchiveRef",
    "NonInteractiveVersionSupplier",
    "ResolveContext",
    "ResolvedIntent",
    "Resolver",
    "VersionSupplier",
    "ensure_resolved_file_name",
    "get_resolver",
    "needs_file_name_probe",
    "normalize_intent",
    "register_resolver",
]
