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

"""Command-line interface for feedsync.

This module provides the main CLI entry point for the feedsync tool,
offering commands for keeping internal installer stores and package feeds
in step with upstream releases.

Commands:

- sync: Resolve, publish and repackage every entry that is out of date
- resolve: Show what is available upstream versus what is published

Example:
    Synchronize all entries:
        ```bash
        $ feedsync sync software.csv --settings feedsync.yaml
        ```

    Preview without uploading or pushing:
        ```bash
        $ feedsync sync software.csv --dry-run --only 7zip Firefox
        ```

    Unattended run (no version prompts):
        ```bash
        $ feedsync sync software.csv --non-interactive --no-color
        ```

    Check upstream versions only:
        ```bash
        $ feedsync resolve software.csv -v
        ```

Exit Codes:

- 0: Success (no errors counted)
- 1: At least one entry failed, or configuration/workspace failure

Note:
    The CLI uses argparse for command parsing. Each command has its own
    handler function (cmd_<command>). Verbose mode shows full tracebacks on
    setup errors. Debug mode implies verbose mode.

"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

from feedsync import __version__
from feedsync.config import SoftwareEntry, load_entries, load_settings
from feedsync.core import sync_entries
from feedsync.discovery import ConsoleVersionSupplier, NonInteractiveVersionSupplier
from feedsync.exceptions import FeedSyncError
from feedsync.logging import get_logger, set_global_logger
from feedsync.results import EntryReport, ResolveReport, RunSummary


def _select(entries: list[SoftwareEntry], only: list[str] | None) -> list[SoftwareEntry]:
    """Keep entries whose software or display name is listed (case-insensitive)."""
    if not only:
        return entries
    wanted = {name.lower() for name in only}
    return [
        e
        for e in entries
        if e.software_name.lower() in wanted or e.display_name.lower() in wanted
    ]


def _load(args: argparse.Namespace):
    settings = load_settings(Path(args.settings) if args.settings else None)
    entries = _select(load_entries(Path(args.entries)), args.only)
    return settings, entries


def _print_error(err: Exception, args: argparse.Namespace) -> None:
    print(f"Error: {err}")
    if args.verbose or args.debug:
        import traceback

        traceback.print_exc()


def _print_summary(summary: RunSummary) -> None:
    print("=" * 70)
    print(summary.summary_line())
    print("=" * 70)


def _print_sync_reports(reports: list[EntryReport | ResolveReport]) -> None:
    print("=" * 70)
    print("SYNC RESULTS")
    print("=" * 70)
    for r in reports:
        if not isinstance(r, EntryReport):
            continue
        stages = " ".join(f"{k}={v}" for k, v in r.stages.items())
        print(f"{r.name} ({r.arch}): {r.outcome.upper()}  {r.message}")
        print(f"    {stages}")


def _print_resolve_reports(reports: list[EntryReport | ResolveReport]) -> None:
    print("=" * 70)
    print("RESOLVE RESULTS")
    print("=" * 70)
    for r in reports:
        if not isinstance(r, ResolveReport):
            continue
        print(f"{r.name} ({r.arch}, {r.source_type})")
        print(f"    Version:    {r.version or '-'}")
        print(f"    Published:  {r.existing_version or '-'}")
        print(f"    URL:        {r.installer_url or '-'}")
        if r.nested_path:
            print(f"    Nested:     {r.nested_path}")
        print(f"    Decision:   {r.decision} ({r.reason})")


def cmd_sync(args: argparse.Namespace) -> int:
    """Handler for 'feedsync sync' command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 if no errors were counted, 1 otherwise).

    """
    logger = get_logger(verbose=args.verbose, debug=args.debug, color=not args.no_color)
    set_global_logger(logger)

    try:
        settings, entries = _load(args)
        supplier = (
            NonInteractiveVersionSupplier()
            if args.non_interactive
            else ConsoleVersionSupplier()
        )
        summary = sync_entries(
            entries,
            settings,
            force=args.force,
            dry_run=args.dry_run,
            version_supplier=supplier,
        )
    except FeedSyncError as err:
        _print_error(err, args)
        return 1

    print()
    _print_sync_reports(summary.reports)
    _print_summary(summary)
    return 0 if summary.ok else 1


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handler for 'feedsync resolve' command.

    Resolves each entry and compares it with the asset store. Nothing is
    downloaded, uploaded or rewritten.

    Returns:
        Exit code (0 if no errors were counted, 1 otherwise).

    """
    logger = get_logger(verbose=args.verbose, debug=args.debug, color=not args.no_color)
    set_global_logger(logger)

    try:
        settings, entries = _load(args)
        supplier = (
            NonInteractiveVersionSupplier()
            if args.non_interactive
            else ConsoleVersionSupplier()
        )
        summary = sync_entries(
            entries, settings, resolve_only=True, version_supplier=supplier
        )
    except FeedSyncError as err:
        _print_error(err, args)
        return 1

    print()
    _print_resolve_reports(summary.reports)
    _print_summary(summary)
    return 0 if summary.ok else 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "entries",
        help="Path to the software entries CSV file",
    )
    parser.add_argument(
        "--settings",
        default=None,
        help="Path to the settings YAML file (default: built-in defaults and environment)",
    )
    parser.add_argument(
        "--only",
        nargs="+",
        metavar="NAME",
        help="Only process entries with these software or display names",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Never prompt for versions; entries that need one fail",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored warnings and errors",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the feedsync CLI.

    This function is registered as the 'feedsync' console script in
    pyproject.toml.
    """
    parser = argparse.ArgumentParser(
        prog="feedsync",
        description="feedsync - keep internal installer stores and package feeds up to date",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"feedsync {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'sync' command
    parser_sync = subparsers.add_parser(
        "sync",
        help="Publish new installers and push updated packages",
        description="Resolve every entry, publish newer installers to the asset store, rewrite the package sources and push them to the feed.",
    )
    _add_common_arguments(parser_sync)
    parser_sync.add_argument(
        "--force",
        action="store_true",
        help="Update entries even when the published version is current",
    )
    parser_sync.add_argument(
        "--dry-run",
        action="store_true",
        help="Download and rewrite locally, but never upload, pack or push",
    )
    parser_sync.set_defaults(func=cmd_sync)

    # 'resolve' command
    parser_resolve = subparsers.add_parser(
        "resolve",
        help="Show upstream versions against published ones (no changes)",
        description="Resolve every entry and compare with the asset store without downloading or changing anything.",
    )
    _add_common_arguments(parser_resolve)
    parser_resolve.set_defaults(func=cmd_resolve)

    # Parse and dispatch
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
