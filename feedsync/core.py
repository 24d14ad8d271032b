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

"""Core orchestration for feedsync.

This module wires resolvers, the asset store, the package store and the
package source rewriting into one pipeline per entry, and drives it over a
list of entries.

Pipeline (per entry):

1. Build the entry's paths (asset folder, package source, manifest URLs)
2. Resolve the latest installer, normalize it, validate the version
3. Compute the artifact name `<prefix>_<Arch>_<Version><ext>`
4. Look up the newest published artifact
5. Decide: up to date (stop) or update needed
6. Download (or copy a local file) into the work folder
7. Extract the nested installer from a zip download, if any
8. Refresh the package source `tools/` folder
9. Publish the artifact to the asset store
10. Fetch its SHA-256 back from the store
11. Rewrite the nuspec version, checksums.json and the install script
12. Pack and push the package
13. Remove temporary files

Design Principles:
    - Entries are isolated: a failure aborts its entry, never the run
    - Every warning and error is counted in an explicit SyncCounters
    - Dry runs go through the same steps but never upload, pack or push
    - Errors are exceptions inside the stages; this module turns them into
      logged, counted report statuses

Example:
    Synchronize every entry of a CSV file:
        ```python
        from pathlib import Path
        from feedsync.config import load_entries, load_settings
        from feedsync.core import sync_entries

        settings = load_settings(Path("feedsync.yaml"))
        summary = sync_entries(load_entries(Path("software.csv")), settings)
        print(summary.summary_line())
        ```
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import shutil

import requests

from feedsync.config.entries import SoftwareEntry, SourceType
from feedsync.config.loader import Settings
from feedsync.discovery import (
    ConsoleVersionSupplier,
    ResolveContext,
    ResolvedIntent,
    VersionSupplier,
    ensure_resolved_file_name,
    get_resolver,
    normalize_intent,
)
from feedsync.exceptions import ConfigError, FeedSyncError, NetworkError, VersionError
from feedsync.io.archive import extract_nested, replace_tools_dir
from feedsync.io.download import download_file, make_session, sha256_file
from feedsync.logging import Logger, get_global_logger
from feedsync.package.files import (
    find_install_script,
    find_nuspec,
    install_artifact,
    remove_old_installers,
    update_checksums,
    update_nuspec_version,
)
from feedsync.package.script import ChocolateyScriptRewriter, ScriptRewriter
from feedsync.paths import PathContext, build_path_context
from feedsync.policy.updates import decide_update
from feedsync.results import (
    FAILED,
    OK,
    EntryReport,
    ResolveReport,
    RunSummary,
    StageStatus,
    SyncCounters,
    initial_stages,
)
from feedsync.store.assets import AssetStoreClient, ExistingArtifact
from feedsync.store.packages import PackageStoreClient
from feedsync.versioning.keys import is_valid_version, normalize_version
from feedsync.versioning.naming import artifact_prefix, build_artifact_name


def prepare_workspace(settings: Settings) -> None:
    """Check the package sources and create the work folder.

    Raises:
        ConfigError: If the packages root is missing or the work folder
            cannot be created. Nothing can be processed in that case.
    """
    if not settings.packages_root.is_dir():
        raise ConfigError(f"Packages root not found: {settings.packages_root}")
    try:
        settings.work_dir.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise ConfigError(
            f"Cannot create work folder {settings.work_dir}: {err}"
        ) from err


def is_self_package(entry: SoftwareEntry, settings: Settings) -> bool:
    """True for the packaging tool's own package (tools/ comes from its .nupkg)."""
    return entry.software_name.strip().lower() == settings.self_package.strip().lower()


def resolve_intent(
    entry: SoftwareEntry,
    paths: PathContext,
    context: ResolveContext,
    counters: SyncCounters,
) -> ResolvedIntent | None:
    """Resolve, normalize and validate the installer intent for entry.

    Returns:
        The validated intent, or None when the resolver found nothing (a
        warning has been counted).

    Raises:
        ConfigError: For invalid source configuration or a missing manual
            version.
        VersionError: If the final version is not a strict version.
        NetworkError: If the source could not be read.
    """
    logger = context.logger
    raw = get_resolver(entry.source_type).resolve(entry, paths, context)
    if raw is None:
        counters.note_warning()
        return None

    intent = normalize_intent(raw, entry)
    try:
        intent = ensure_resolved_file_name(intent, context)
    except NetworkError as err:
        counters.warning(logger, "RESOLVE", f"Could not resolve file name: {err}")

    if entry.manual_version_required and entry.source_type is not SourceType.LOCAL:
        supplied = context.version_supplier.supply(entry, intent.version)
        intent = replace(intent, version=supplied)

    version = normalize_version(intent.version)
    if not is_valid_version(version):
        raise VersionError(
            f"Invalid version {intent.version!r} for {entry.display_name}"
        )
    if not intent.installer_url and intent.local_file is None:
        raise ConfigError(f"No installer URL resolved for {entry.display_name}")

    logger.verbose("RESOLVE", f"Version: {version}")
    return replace(intent, version=version)


def _published_extension(entry: SoftwareEntry, intent: ResolvedIntent) -> str:
    if intent.nested is not None:
        return Path(intent.nested.relative_path).suffix.lower() or entry.preferred_extension
    return intent.extension or entry.preferred_extension


def _find_existing(
    assets: AssetStoreClient,
    paths: PathContext,
    entry: SoftwareEntry,
    extension: str,
    logger: Logger,
    counters: SyncCounters,
) -> ExistingArtifact | None:
    try:
        existing = assets.find_latest_artifact(
            paths.asset_folder, artifact_prefix(entry), entry.arch, extension
        )
    except NetworkError as err:
        counters.warning(
            logger, "STORE", f"Could not list {paths.asset_folder}, assuming empty: {err}"
        )
        return None
    if existing:
        logger.verbose("STORE", f"Published: {existing.name}")
    else:
        logger.verbose("STORE", f"Nothing published in {paths.asset_folder}")
    return existing


def _acquire(
    intent: ResolvedIntent,
    target: Path,
    context: ResolveContext,
) -> Path:
    """Copy the local file or download the installer to target."""
    if intent.local_file is not None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(intent.local_file, target)
        except OSError as err:
            raise NetworkError(f"Failed to copy {intent.local_file}: {err}") from err
        return target

    path, _ = download_file(
        intent.installer_url,
        target,
        session=context.session,
        expected_sha256=intent.sha256,
        timeout=context.settings.http_timeout,
        max_redirects=context.settings.max_redirects,
    )
    return path


def _refresh_tools(
    entry: SoftwareEntry,
    artifact: Path,
    paths: PathContext,
    settings: Settings,
    logger: Logger,
    counters: SyncCounters,
) -> None:
    if is_self_package(entry, settings):
        count = replace_tools_dir(artifact, paths.tools_dir)
        logger.verbose("PACKAGE", f"Replaced tools/ with {count} file(s) from {artifact.name}")
        return

    removed = remove_old_installers(
        paths.tools_dir, artifact_prefix(entry), entry.arch, artifact.suffix
    )
    if removed:
        for p in removed:
            logger.verbose("PACKAGE", f"Removed {p.name}")
    else:
        counters.warning(
            logger, "PACKAGE", f"No previous installer found in {paths.tools_dir}"
        )
    install_artifact(paths.tools_dir, artifact)


def _rewrite_script(
    entry: SoftwareEntry,
    paths: PathContext,
    url: str,
    sha256: str,
    extension: str,
    rewriter: ScriptRewriter,
    logger: Logger,
    counters: SyncCounters,
) -> None:
    script = find_install_script(paths.tools_dir)
    result = rewriter.rewrite(
        script.read_text(encoding="utf-8-sig"),
        arch=entry.arch,
        url=url,
        sha256=sha256,
        file_type=extension.lstrip("."),
    )
    if result.missing:
        counters.warning(
            logger,
            "SCRIPT",
            f"{script.name} has no assignment for: {', '.join(result.missing)}",
        )
    script.write_text(result.text, encoding="utf-8")
    logger.verbose("SCRIPT", f"Updated {', '.join(result.updated) or 'nothing'}")


def _cleanup(paths: list[Path], logger: Logger, counters: SyncCounters) -> None:
    for p in paths:
        try:
            p.unlink(missing_ok=True)
        except OSError as err:
            counters.warning(logger, "CLEANUP", f"Could not remove {p}: {err}")


def sync_entry(
    entry: SoftwareEntry,
    settings: Settings,
    *,
    context: ResolveContext,
    assets: AssetStoreClient,
    packages: PackageStoreClient,
    counters: SyncCounters,
    force: bool = False,
    dry_run: bool = False,
    rewriter: ScriptRewriter | None = None,
) -> EntryReport:
    """Run the pipeline for one entry.

    Never raises for per-entry failures: they are logged, counted in
    counters and reflected in the returned report.

    Args:
        entry: Entry to synchronize.
        settings: Effective settings.
        context: Resolver collaborators (session, logger, version supplier).
        assets: Asset store client.
        packages: Package store client.
        counters: Run counters to update.
        force: Update even if the published version is current.
        dry_run: Skip upload, pack and push; rewrite package files with the
            locally computed SHA-256.
        rewriter: Install script rewriter (Chocolatey by default).

    Returns:
        The entry's report.
    """
    logger = context.logger
    rewriter = rewriter or ChocolateyScriptRewriter()
    stages: dict[str, StageStatus] = initial_stages()
    details: dict = {}

    def finish(outcome, message: str) -> EntryReport:
        return EntryReport(
            name=entry.display_name,
            arch=entry.arch,
            source_type=entry.source_type.value,
            outcome=outcome,
            stages=dict(stages),
            message=message,
            **details,
        )

    def fail(stage: str | None, prefix: str, err: Exception) -> EntryReport:
        if stage:
            stages[stage] = FAILED
        counters.error(logger, prefix, f"{entry.display_name} ({entry.arch}): {err}")
        return finish("failed", str(err))

    # 1-2. Paths and resolution
    paths = build_path_context(entry, settings)
    try:
        intent = resolve_intent(entry, paths, context, counters)
    except FeedSyncError as err:
        return fail(None, "RESOLVE", err)
    if intent is None:
        logger.info("SYNC", f"{entry.display_name} ({entry.arch}): nothing resolved, skipped")
        return finish("skipped", "no installer resolved")
    details["resolved_version"] = intent.version

    # 3. Names
    published_ext = _published_extension(entry, intent)
    download_ext = ".zip" if intent.nested is not None else published_ext
    download_name = build_artifact_name(entry, intent.version, download_ext)
    artifact_name = build_artifact_name(entry, intent.version, published_ext)
    details["artifact_name"] = artifact_name

    # 4-5. Compare with what is published
    existing = _find_existing(assets, paths, entry, published_ext, logger, counters)
    details["existing_version"] = existing.version if existing else None
    decision = decide_update(
        resolved_version=intent.version,
        existing_version=existing.version if existing else None,
        force=force,
    )
    if not decision.update:
        logger.info("SYNC", f"{entry.display_name} ({entry.arch}): up to date ({decision.reason})")
        return finish("up_to_date", decision.reason)
    logger.info("SYNC", f"{entry.display_name} ({entry.arch}): update needed ({decision.reason})")

    if not paths.package_dir.is_dir():
        return fail(
            None,
            "PACKAGE",
            ConfigError(f"Package source not found: {paths.package_dir}"),
        )

    temp_files: list[Path] = []
    try:
        # 6. Acquire
        download_target = settings.work_dir / download_name
        temp_files.append(download_target)
        try:
            artifact = _acquire(intent, download_target, context)
        except NetworkError as err:
            return fail("download", "DOWNLOAD", err)

        # 7. Nested installer
        if intent.nested is not None:
            extracted = settings.work_dir / artifact_name
            temp_files.append(extracted)
            try:
                artifact = extract_nested(artifact, intent.nested.relative_path, extracted)
            except FeedSyncError as err:
                return fail("download", "EXTRACT", err)
        stages["download"] = OK

        # 8. Package source tools/
        try:
            _refresh_tools(entry, artifact, paths, settings, logger, counters)
        except (FeedSyncError, OSError) as err:
            return fail(None, "PACKAGE", err)

        # 9. Publish
        # An upload failure is counted here; the package stages still run.
        publish_error: NetworkError | None = None
        asset_url = assets.content_url(paths.asset_folder, artifact.name)
        if dry_run:
            logger.info("PUBLISH", f"Dry run: would upload {artifact.name} to {paths.asset_folder}")
        else:
            try:
                asset_url = assets.upload(paths.asset_folder, artifact.name, artifact)
            except NetworkError as err:
                publish_error = err
                stages["publish"] = FAILED
                counters.error(logger, "PUBLISH", f"{entry.display_name} ({entry.arch}): {err}")
            else:
                stages["publish"] = OK
                details["asset_url"] = asset_url

        # 10. Checksum
        if dry_run:
            sha256 = sha256_file(artifact)
        else:
            try:
                sha256 = assets.get_sha256(paths.asset_folder, artifact.name)
            except NetworkError as err:
                counters.error(logger, "CHECKSUM", f"{entry.display_name}: {err}")
                sha256 = ""

        # 11. Package files
        try:
            update_nuspec_version(find_nuspec(paths.package_dir), intent.version)
            update_checksums(paths.tools_dir, entry.arch, sha256)
        except (FeedSyncError, OSError) as err:
            return fail("manifest", "MANIFEST", err)
        stages["manifest"] = OK

        if is_self_package(entry, settings):
            logger.verbose("SCRIPT", "Self package: install script comes from the package")
        else:
            try:
                _rewrite_script(
                    entry, paths, asset_url, sha256, published_ext, rewriter, logger, counters
                )
            except (FeedSyncError, OSError) as err:
                return fail("script", "SCRIPT", err)
            stages["script"] = OK

        # 12. Pack and push
        if dry_run:
            logger.info("PACK", f"Dry run: would pack and push {paths.package_dir}")
        else:
            try:
                details["package_path"] = packages.pack_and_push(paths.package_dir)
            except FeedSyncError as err:
                return fail("pack", "PACK", err)
            stages["pack"] = OK
    finally:
        # 13. Cleanup
        _cleanup(temp_files, logger, counters)

    if publish_error is not None:
        return finish("failed", str(publish_error))

    message = f"{existing.version if existing else 'none'} -> {intent.version}"
    if dry_run:
        message += " (dry run)"
    logger.info("SYNC", f"{entry.display_name} ({entry.arch}): updated {message}")
    return finish("updated", message)


def resolve_entry(
    entry: SoftwareEntry,
    settings: Settings,
    *,
    context: ResolveContext,
    assets: AssetStoreClient,
    counters: SyncCounters,
) -> ResolveReport:
    """Resolve an entry and compare it with the store, without changing anything."""
    logger = context.logger
    paths = build_path_context(entry, settings)

    def report(intent: ResolvedIntent | None, existing, decision: str, reason: str):
        return ResolveReport(
            name=entry.display_name,
            arch=entry.arch,
            source_type=entry.source_type.value,
            version=intent.version if intent else None,
            installer_url=intent.installer_url if intent else None,
            file_name=intent.file_name if intent else None,
            nested_path=intent.nested.relative_path if intent and intent.nested else None,
            existing_version=existing.version if existing else None,
            decision=decision,
            reason=reason,
        )

    try:
        intent = resolve_intent(entry, paths, context, counters)
    except FeedSyncError as err:
        counters.error(logger, "RESOLVE", f"{entry.display_name} ({entry.arch}): {err}")
        return report(None, None, "unresolved", str(err))
    if intent is None:
        return report(None, None, "unresolved", "no installer resolved")

    existing = _find_existing(
        assets, paths, entry, _published_extension(entry, intent), logger, counters
    )
    decision = decide_update(
        resolved_version=intent.version,
        existing_version=existing.version if existing else None,
    )
    return report(intent, existing, decision.outcome, decision.reason)


def _build_clients(
    settings: Settings, session: requests.Session
) -> tuple[AssetStoreClient, PackageStoreClient]:
    assets = AssetStoreClient(
        settings.asset_base_url,
        settings.asset_dir,
        settings.asset_api_key,
        session=session,
        upload_method=settings.asset_upload_method,
        timeout=settings.http_timeout,
    )
    packages = PackageStoreClient(
        settings.packager_executable,
        settings.feed_url,
        settings.feed_api_key,
        timeout=settings.packager_timeout,
    )
    return assets, packages


def sync_entries(
    entries: list[SoftwareEntry],
    settings: Settings,
    *,
    force: bool = False,
    dry_run: bool = False,
    resolve_only: bool = False,
    version_supplier: VersionSupplier | None = None,
    session: requests.Session | None = None,
    assets: AssetStoreClient | None = None,
    packages: PackageStoreClient | None = None,
    rewriter: ScriptRewriter | None = None,
) -> RunSummary:
    """Process entries one after another.

    Args:
        entries: Entries in processing order.
        settings: Effective settings.
        force: Update every entry regardless of published versions.
        dry_run: Skip upload, pack and push.
        resolve_only: Only resolve and compare (no downloads, no changes).
        version_supplier: Source of manual versions (console prompt by
            default).
        session: HTTP session (created with retry/backoff if None).
        assets: Asset store client (built from settings if None).
        packages: Package store client (built from settings if None).
        rewriter: Install script rewriter.

    Returns:
        Totals and one report per entry.

    Raises:
        ConfigError: If the workspace cannot be prepared. No entry has been
            processed in that case.
    """
    logger = get_global_logger()
    if not resolve_only:
        prepare_workspace(settings)

    session = session or make_session(settings.max_redirects)
    default_assets, default_packages = _build_clients(settings, session)
    assets = assets or default_assets
    packages = packages or default_packages
    context = ResolveContext(
        session=session,
        settings=settings,
        logger=logger,
        version_supplier=version_supplier or ConsoleVersionSupplier(),
    )

    counters = SyncCounters()
    reports: list[EntryReport | ResolveReport] = []
    total = len(entries)
    for i, entry in enumerate(entries, start=1):
        logger.step(i, total, f"{entry.display_name} ({entry.arch}, {entry.source_type.value})")
        counters.checked += 1
        try:
            if resolve_only:
                reports.append(
                    resolve_entry(
                        entry, settings, context=context, assets=assets, counters=counters
                    )
                )
            else:
                reports.append(
                    sync_entry(
                        entry,
                        settings,
                        context=context,
                        assets=assets,
                        packages=packages,
                        counters=counters,
                        force=force,
                        dry_run=dry_run,
                        rewriter=rewriter,
                    )
                )
        except Exception as err:
            counters.error(
                logger,
                "SYNC",
                f"{entry.display_name} ({entry.arch}): unexpected error: {err}",
            )
            reports.append(
                EntryReport(
                    name=entry.display_name,
                    arch=entry.arch,
                    source_type=entry.source_type.value,
                    outcome="failed",
                    message=str(err),
                )
            )

    return RunSummary(
        checked=counters.checked,
        warnings=counters.warnings,
        errors=counters.errors,
        reports=reports,
    )
