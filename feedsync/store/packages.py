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

"""Package feed publishing for feedsync.

This module wraps the external packaging CLI (Chocolatey by default) to
pack a package source directory into a `.nupkg` and push it to the internal
NuGet feed at `<base>/nuget/<feed name>`.

Design Principles:
    - The CLI is opaque: no structured output is parsed
    - The pack output is the most recently written `.nupkg` in the package
      directory
    - The feed API key is passed on the command line but never logged

Example:
    Basic usage:
        ```python
        from pathlib import Path
        from feedsync.store import PackageStoreClient

        client = PackageStoreClient(
            "choco", "https://proget.example.com/nuget/choco", feed_key
        )
        nupkg = client.pack_and_push(Path("packages/Igor Pavlov/7zip"))
        ```
"""

from __future__ import annotations

from pathlib import Path
import subprocess

from feedsync.exceptions import PackagingError


class PackageStoreClient:
    """Packs package sources and pushes them to the internal feed."""

    def __init__(
        self,
        executable: str,
        feed_url: str,
        api_key: str,
        *,
        timeout: int = 600,
    ) -> None:
        self.executable = executable
        self.feed_url = feed_url
        self.api_key = api_key
        self.timeout = timeout

    def _run(self, cmd: list[str], cwd: Path, action: str) -> None:
        """Run the packaging CLI and raise PackagingError on failure."""
        from feedsync.logging import get_global_logger

        logger = get_global_logger()
        shown = ["***" if self.api_key and part == self.api_key else part for part in cmd]
        logger.verbose("PACKAGE", f"Running: {' '.join(shown)}")

        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as err:
            raise PackagingError(
                f"Packaging tool not found: {self.executable!r}"
            ) from err
        except subprocess.CalledProcessError as err:
            error_msg = f"{action} failed (exit code {err.returncode})"
            detail = (err.stderr or err.stdout or "").strip()
            if detail:
                error_msg += f"\n{detail}"
            raise PackagingError(error_msg) from err
        except subprocess.TimeoutExpired as err:
            raise PackagingError(f"{action} timed out after {err.timeout}s") from err

        for line in (result.stdout or "").strip().splitlines():
            logger.debug("PACKAGE", f"  {line}")

    def pack(self, package_dir: Path) -> Path:
        """Pack a package source directory.

        Args:
            package_dir: Directory holding the `.nuspec` and `tools/`.

        Returns:
            Path to the newest `.nupkg` in package_dir after packing.

        Raises:
            PackagingError: If there is no nuspec, the CLI fails, or no
                package was produced.
        """
        nuspecs = sorted(package_dir.glob("*.nuspec"))
        if not nuspecs:
            raise PackagingError(f"No .nuspec found in {package_dir}")

        self._run(
            [self.executable, "pack", nuspecs[0].name, "--outputdirectory", str(package_dir)],
            package_dir,
            "pack",
        )

        packages = list(package_dir.glob("*.nupkg"))
        if not packages:
            raise PackagingError(f"pack produced no .nupkg in {package_dir}")
        return max(packages, key=lambda p: p.stat().st_mtime)

    def push(self, nupkg: Path) -> None:
        """Push a package archive to the feed.

        Raises:
            PackagingError: If the CLI fails.
        """
        self._run(
            [
                self.executable,
                "push",
                str(nupkg),
                "--source",
                self.feed_url,
                "--api-key",
                self.api_key,
            ],
            nupkg.parent,
            "push",
        )

    def pack_and_push(self, package_dir: Path) -> Path:
        """Pack package_dir and push the result. Returns the pushed archive."""
        nupkg = self.pack(package_dir)
        self.push(nupkg)
        return nupkg
