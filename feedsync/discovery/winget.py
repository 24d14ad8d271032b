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

"""Winget manifest repository resolver for feedsync.

This is a VERSION-FIRST resolver: the version and download URL come from
the public Winget manifest repository, no installer is downloaded.

Manifest Layout:
    manifests/<first letter>/<Publisher>/<Package>[/<sub path>]/<version>/
        <Publisher>.<Package>.installer.yaml
        <Publisher>.<Package>.locale.en-US.yaml
        ...

Resolution:
    1. List the package folder through the GitHub contents API
    2. Keep folder names that are strict versions and pick the highest
    3. Find the `.installer.yaml` file of that version
    4. Fetch it from the raw-content endpoint and parse it (PyYAML)
    5. Select an installer for the entry's architecture and extension

Installer Selection:
    Top-level `InstallerType`, `NestedInstallerType` and
    `NestedInstallerFiles` apply to installers that do not set their own.

    - Direct match: architecture matches and the installer type maps to the
      preferred extension (or the URL ends with it)
    - Nested match: architecture matches and the zip's nested installer has
      the preferred extension; the download is a `.zip` and the nested path
      is recorded for extraction

    A direct match always wins over a nested one.

Entry Configuration:
    SourceRef is the Winget package identifier (`7zip.7zip`,
    `Mozilla.Firefox`). ManifestSubPath optionally descends further (for
    example a locale folder).

Note:
    Missing version folders, a missing installer manifest, or no matching
    installer are soft failures: a warning lists what was available and the
    entry is skipped.
"""

from __future__ import annotations

from typing import Any

import requests
import yaml

from feedsync.config.entries import SoftwareEntry, SourceType
from feedsync.exceptions import NetworkError
from feedsync.io.download import filename_from_url
from feedsync.paths import PathContext
from feedsync.versioning.keys import is_valid_version, parse_version
from feedsync.versioning.naming import build_artifact_name

from .base import ResolveContext, register_resolver
from .intent import NestedArchiveRef, ResolvedIntent

INSTALLER_TYPE_EXTENSIONS: dict[str, str] = {
    "msi": ".msi",
    "wix": ".msi",
    "exe": ".exe",
    "inno": ".exe",
    "nullsoft": ".exe",
    "burn": ".exe",
    "portable": ".exe",
    "msix": ".msix",
    "appx": ".appx",
    "zip": ".zip",
}

_INHERITED_KEYS = ("InstallerType", "NestedInstallerType", "NestedInstallerFiles")


def _type_extension(installer_type: Any) -> str | None:
    return INSTALLER_TYPE_EXTENSIONS.get(str(installer_type or "").lower())


def _variant_label(installer: dict[str, Any]) -> str:
    parts = [
        str(installer.get("Architecture", "?")),
        str(installer.get("InstallerType", "?")),
    ]
    if installer.get("NestedInstallerType"):
        parts.append(str(installer["NestedInstallerType"]))
    return "/".join(parts)


def _url_path(url: str) -> str:
    return filename_from_url(url).lower()


def inherit_installer_fields(manifest: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the manifest's installers with top-level fields applied."""
    installers = []
    for raw in manifest.get("Installers") or []:
        if not isinstance(raw, dict):
            continue
        installer = dict(raw)
        for key in _INHERITED_KEYS:
            if key not in installer and key in manifest:
                installer[key] = manifest[key]
        installers.append(installer)
    return installers


def select_installer(
    installers: list[dict[str, Any]], arch: str, extension: str
) -> tuple[dict[str, Any], NestedArchiveRef | None] | None:
    """Pick the installer for arch/extension.

    Returns:
        (installer, nested) where nested is set for a match inside a zip,
        or None when no installer fits.
    """
    same_arch = [
        i for i in installers if str(i.get("Architecture", "")).lower() == arch.lower()
    ]

    for installer in same_arch:
        url = str(installer.get("InstallerUrl", ""))
        if _type_extension(installer.get("InstallerType")) == extension or _url_path(
            url
        ).endswith(extension):
            return installer, None

    for installer in same_arch:
        files = [
            f.get("RelativeFilePath", "")
            for f in installer.get("NestedInstallerFiles") or []
            if isinstance(f, dict) and f.get("RelativeFilePath")
        ]
        if not files:
            continue
        nested_type_ext = _type_extension(installer.get("NestedInstallerType"))
        if nested_type_ext == extension or any(
            f.lower().endswith(extension) for f in files
        ):
            return installer, NestedArchiveRef(relative_path=files[0])

    return None


class WingetResolver:
    """Resolver for entries with SourceType Winget."""

    def _get_json(self, url: str, context: ResolveContext) -> Any | None:
        """GET a contents-API URL. Returns None on 404."""
        headers = {"Accept": "application/vnd.github+json"}
        if context.settings.github_token:
            headers["Authorization"] = f"token {context.settings.github_token}"
        try:
            response = context.session.get(
                url, headers=headers, timeout=context.settings.http_timeout
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as err:
            raise NetworkError(f"Manifest listing failed for {url}: {err}") from err
        except ValueError as err:
            raise NetworkError(f"Manifest listing at {url} is not JSON") from err

    def _get_manifest(self, url: str, context: ResolveContext) -> dict[str, Any]:
        try:
            response = context.session.get(url, timeout=context.settings.http_timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as err:
            raise NetworkError(f"Failed to fetch manifest {url}: {err}") from err
        try:
            manifest = yaml.safe_load(response.text)
        except yaml.YAMLError as err:
            raise NetworkError(f"Invalid installer manifest {url}: {err}") from err
        if not isinstance(manifest, dict):
            raise NetworkError(f"Installer manifest {url} is not a mapping")
        return manifest

    def resolve(
        self, entry: SoftwareEntry, paths: PathContext, context: ResolveContext
    ) -> ResolvedIntent | None:
        logger = context.logger
        package_id = entry.source_ref
        logger.verbose("WINGET", f"Package: {package_id}")
        logger.verbose("WINGET", f"Listing: {paths.manifest_api_url}")

        listing = self._get_json(paths.manifest_api_url, context)
        if not listing:
            logger.warning("WINGET", f"No manifests found for {package_id}")
            return None

        versions = [
            item["name"]
            for item in listing
            if isinstance(item, dict)
            and item.get("type") == "dir"
            and is_valid_version(item.get("name"))
        ]
        if not versions:
            logger.warning("WINGET", f"No version folders found for {package_id}")
            return None
        version = max(versions, key=parse_version)
        logger.verbose("WINGET", f"Latest version folder: {version}")

        files = self._get_json(f"{paths.manifest_api_url}/{version}", context) or []
        installer_files = [
            item["name"]
            for item in files
            if isinstance(item, dict)
            and str(item.get("name", "")).lower().endswith(".installer.yaml")
        ]
        if not installer_files:
            logger.warning(
                "WINGET", f"No installer manifest for {package_id} {version}"
            )
            return None

        manifest = self._get_manifest(
            f"{paths.manifest_raw_url}/{version}/{installer_files[0]}", context
        )
        installers = inherit_installer_fields(manifest)
        match = select_installer(installers, entry.arch, entry.preferred_extension)
        if match is None:
            available = ", ".join(_variant_label(i) for i in installers) or "(none)"
            logger.warning(
                "WINGET",
                f"No {entry.arch} {entry.preferred_extension} installer for "
                f"{package_id} {version}. Available: {available}",
            )
            return None

        installer, nested = match
        url = str(installer.get("InstallerUrl", ""))
        extension = ".zip" if nested else entry.preferred_extension
        file_name = filename_from_url(url)
        if "." not in file_name:
            file_name = build_artifact_name(entry, version, extension)
        sha256 = str(installer.get("InstallerSha256") or "").lower() or None

        logger.verbose("WINGET", f"Installer URL: {url}")
        if nested:
            logger.verbose("WINGET", f"Nested installer: {nested.relative_path}")

        return ResolvedIntent(
            source_type=SourceType.WINGET,
            version=version,
            installer_url=url,
            file_name=file_name,
            extension=extension,
            sha256=sha256,
            nested=nested,
        )


register_resolver(SourceType.WINGET, WingetResolver)
