"""
feedsync

A Python-based CLI tool that keeps an internal software asset store and a
Chocolatey package feed in step with upstream vendor releases.

feedsync provides:
  - A CSV catalogue of products, one row per product and architecture
  - Version resolution from the Winget manifest repository, GitHub
    releases, vendor download pages, direct links, or a local drop folder
  - Numeric version comparison against what is already published
  - Robust downloads with retries and a plain-GET fallback
  - Upload to the asset store and SHA-256 read-back
  - Package source rewriting (nuspec version, checksums, install script)
  - Pack and push to the internal NuGet feed

Quick Start
-----------
Check what is out of date:

    $ feedsync resolve software.csv --settings feedsync.yaml

Synchronize everything:

    $ feedsync sync software.csv --settings feedsync.yaml

For full CLI documentation:

    $ feedsync --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    Per-entry pipeline and batch driver.
config : package
    Settings (YAML) and software entries (CSV).
discovery : package
    Resolver registry for the supported source types.
versioning : package
    Version parsing/comparison and artifact naming.
io : package
    Downloads and zip extraction.
store : package
    Asset store client and package feed publishing.
package : package
    Package source rewriting.
policy : package
    Update decision.

Public API
----------
The primary interface is the CLI, but key functions are exported for
programmatic use:

    from feedsync.core import sync_entries
    from feedsync.config import load_settings, load_entries
    from feedsync.versioning import compare_versions, is_newer

For more details, see the individual module docstrings.
"""

__version__ = "0.1.0"

from feedsync.core import prepare_workspace, resolve_entry, sync_entries, sync_entry
from feedsync.exceptions import (
    ConfigError,
    FeedSyncError,
    NetworkError,
    PackagingError,
    VersionError,
)

__all__ = [
    "ConfigError",
    "FeedSyncError",
    "NetworkError",
    "PackagingError",
    "VersionError",
    "__version__",
    "prepare_workspace",
    "resolve_entry",
    "sync_entries",
    "sync_entry",
]
