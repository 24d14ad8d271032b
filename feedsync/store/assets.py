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

"""Asset store client for feedsync.

The asset store is a ProGet-style asset directory: a binary store addressed
by path, organized as `<publisher>/<software>[/subpaths]/<filename>`.

Endpoints (relative to `<base>/endpoints/<asset_dir>`):

- `GET  dir/<folder>`              -> JSON array of `{name, parent, size, ...}`
- `GET  metadata/<folder>/<file>`  -> JSON object with `sha256`
- `POST|PUT|PATCH content/<folder>/<file>` with the raw bytes as body

Every request carries the asset API key in `X-ApiKey`. The feed key is a
different credential and is never sent here.

Example:
    ```python
    from feedsync.store import AssetStoreClient

    client = AssetStoreClient("https://proget.example.com", "software", key)
    latest = client.find_latest_artifact("Igor Pavlov/7zip", "7zip", "x64", ".msi")
    if latest:
        print(latest.version, latest.content_url)
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

import requests

from feedsync.exceptions import NetworkError
from feedsync.versioning.keys import VersionKey, parse_version
from feedsync.versioning.naming import artifact_pattern


@dataclass(frozen=True)
class ExistingArtifact:
    """Highest-version published file matching the naming convention.

    Attributes:
        name: File name in the asset folder.
        version: Raw version parsed from the name.
        comparable: Parsed version key.
        path: `<folder>/<name>` inside the asset directory.
        metadata_url: Metadata endpoint for the file.
        content_url: Download URL for the file.
    """

    name: str
    version: str
    comparable: VersionKey
    path: str
    metadata_url: str
    content_url: str


def _quote_path(path: str) -> str:
    return quote(path.strip("/"), safe="/")


class AssetStoreClient:
    """HTTP client for one asset directory."""

    def __init__(
        self,
        base_url: str,
        asset_dir: str,
        api_key: str,
        *,
        session: requests.Session | None = None,
        upload_method: str = "POST",
        timeout: int = 60,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.asset_dir = asset_dir.strip("/")
        self.upload_method = upload_method.upper()
        self.timeout = timeout
        self._session = session or requests.Session()
        self._headers = {"X-ApiKey": api_key} if api_key else {}

    def _url(self, kind: str, path: str) -> str:
        return f"{self.base_url}/endpoints/{self.asset_dir}/{kind}/{_quote_path(path)}"

    def content_url(self, folder: str, name: str) -> str:
        """Public download URL of a file."""
        return self._url("content", f"{folder}/{name}")

    def metadata_url(self, folder: str, name: str) -> str:
        """Metadata endpoint of a file."""
        return self._url("metadata", f"{folder}/{name}")

    def list_folder(self, folder: str) -> list[dict]:
        """List a folder. A folder that does not exist yet lists as empty.

        Raises:
            NetworkError: On transport errors or unexpected status codes.
        """
        url = self._url("dir", folder)
        try:
            resp = self._session.get(url, headers=self._headers, timeout=self.timeout)
        except requests.RequestException as err:
            raise NetworkError(f"Asset folder listing failed for {folder!r}: {err}") from err
        if resp.status_code == 404:
            return []
        if not resp.ok:
            raise NetworkError(
                f"Asset folder listing failed for {folder!r}: "
                f"{resp.status_code} {resp.reason}"
            )
        try:
            items = resp.json()
        except ValueError as err:
            raise NetworkError(f"Asset folder listing for {folder!r} is not JSON") from err
        return [i for i in items if isinstance(i, dict)]

    def get_metadata(self, folder: str, name: str) -> dict:
        """Fetch the metadata object of a file.

        Raises:
            NetworkError: On transport errors, non-2xx, or invalid JSON.
        """
        url = self.metadata_url(folder, name)
        try:
            resp = self._session.get(url, headers=self._headers, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as err:
            raise NetworkError(f"Metadata request failed for {name}: {err}") from err
        except ValueError as err:
            raise NetworkError(f"Metadata for {name} is not JSON") from err
        if not isinstance(data, dict):
            raise NetworkError(f"Metadata for {name} is not an object")
        return data

    def get_sha256(self, folder: str, name: str) -> str:
        """SHA-256 hex digest the store computed for a file.

        Raises:
            NetworkError: If the metadata cannot be read or has no sha256.
        """
        sha = self.get_metadata(folder, name).get("sha256")
        if not sha:
            raise NetworkError(f"Metadata for {name} has no sha256")
        return str(sha).lower()

    def upload(self, folder: str, name: str, file_path: Path) -> str:
        """Upload a file's bytes to `<folder>/<name>`.

        Returns:
            The content URL of the uploaded file.

        Raises:
            NetworkError: On transport errors or non-2xx responses.
        """
        url = self.content_url(folder, name)
        headers = {**self._headers, "Content-Type": "application/octet-stream"}
        try:
            with file_path.open("rb") as body:
                resp = self._session.request(
                    self.upload_method, url, data=body, headers=headers, timeout=self.timeout
                )
            resp.raise_for_status()
        except requests.RequestException as err:
            raise NetworkError(f"Upload of {name} failed: {err}") from err
        return url

    def find_latest_artifact(
        self, folder: str, prefix: str, arch: str, extension: str
    ) -> ExistingArtifact | None:
        """Find the highest-version file named `<prefix>_<arch>_<version><ext>`.

        Returns:
            The newest matching artifact, or None if nothing matches.

        Raises:
            NetworkError: If the folder listing fails.
        """
        pattern = artifact_pattern(prefix, arch, extension)
        best: ExistingArtifact | None = None
        for item in self.list_folder(folder):
            if str(item.get("type", "")).lower() in ("dir", "folder", "directory"):
                continue
            name = str(item.get("name") or "")
            m = pattern.match(name)
            if not m:
                continue
            candidate = ExistingArtifact(
                name=name,
                version=m.group(1),
                comparable=parse_version(m.group(1)),
                path=f"{folder.strip('/')}/{name}",
                metadata_url=self.metadata_url(folder, name),
                content_url=self.content_url(folder, name),
            )
            if best is None or candidate.comparable > best.comparable:
                best = candidate
        return best
