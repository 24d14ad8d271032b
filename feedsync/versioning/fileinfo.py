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

"""Embedded installer metadata for feedsync.

The local drop resolver ranks candidate files partly by what the installer
says about itself (product name, description, company). This module reads
that metadata using whichever backend the host offers.

Backend Priority:

On Windows:

1. PowerShell `(Get-Item).VersionInfo` (EXE/DLL version resources)
2. PowerShell Windows Installer COM (MSI Property table)

On Linux/macOS:

1. msiinfo (from msitools) for MSI files only

Metadata is a ranking hint, never a requirement: every failure is reported
at debug level and the function returns None.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
import shutil
import subprocess
import sys


@dataclass(frozen=True)
class FileMetadata:
    """Product information embedded in an installer.

    Attributes:
        product_name: ProductName / MSI ProductName.
        description: FileDescription (EXE) or empty.
        company: CompanyName / MSI Manufacturer.
    """

    product_name: str = ""
    description: str = ""
    company: str = ""


_PS_VERSIONINFO = """
$vi = (Get-Item -LiteralPath '{path}').VersionInfo
@{{ ProductName = $vi.ProductName; FileDescription = $vi.FileDescription;
    CompanyName = $vi.CompanyName }} | ConvertTo-Json -Compress
"""

_PS_MSI = """
$installer = New-Object -ComObject WindowsInstaller.Installer
$db = $installer.OpenDatabase('{path}', 0)
$out = @{{}}
foreach ($p in 'ProductName', 'Manufacturer') {{
    $view = $db.OpenView("SELECT Value FROM Property WHERE Property='$p'")
    $view.Execute()
    $record = $view.Fetch()
    if ($record) {{ $out[$p] = $record.StringData(1) }}
}}
$out | ConvertTo-Json -Compress
"""


def _run_powershell(script: str) -> dict:
    result = subprocess.run(
        ["powershell", "-NoProfile", "-NonInteractive", "-Command", script],
        check=True,
        capture_output=True,
        text=True,
        timeout=15,
    )
    return json.loads(result.stdout.strip() or "{}")


def read_file_metadata(file_path: Path) -> FileMetadata | None:
    """Read product metadata embedded in an installer file.

    Args:
        file_path: Installer to inspect (.exe, .msi, ...).

    Returns:
        The metadata found, or None when no backend could read it.
    """
    from feedsync.logging import get_global_logger

    logger = get_global_logger()
    p = Path(file_path)
    # PowerShell embeds the path in single quotes
    quoted = str(p).replace("'", "''")

    if sys.platform.startswith("win"):
        if p.suffix.lower() == ".msi":
            script = _PS_MSI.format(path=quoted)
        else:
            script = _PS_VERSIONINFO.format(path=quoted)
        logger.debug("VERSION", f"Reading metadata via PowerShell: {p.name}")
        try:
            data = _run_powershell(script)
        except (subprocess.SubprocessError, OSError, ValueError) as err:
            logger.debug("VERSION", f"PowerShell metadata read failed: {err}")
            return None
        return FileMetadata(
            product_name=data.get("ProductName") or "",
            description=data.get("FileDescription") or "",
            company=data.get("CompanyName") or data.get("Manufacturer") or "",
        )

    msiinfo = shutil.which("msiinfo")
    if msiinfo and p.suffix.lower() == ".msi":
        logger.debug("VERSION", f"Reading metadata via msiinfo: {p.name}")
        try:
            # msiinfo export <package> Property -> "Property<TAB>Value" lines
            result = subprocess.run(
                [msiinfo, "export", str(p), "Property"],
                check=True,
                capture_output=True,
                text=True,
                timeout=15,
            )
        except (subprocess.SubprocessError, OSError) as err:
            logger.debug("VERSION", f"msiinfo failed: {err}")
            return None
        props: dict[str, str] = {}
        for line in result.stdout.splitlines():
            parts = line.strip().split("\t", 1)
            if len(parts) == 2:
                props[parts[0]] = parts[1]
        return FileMetadata(
            product_name=props.get("ProductName", ""),
            company=props.get("Manufacturer", ""),
        )

    logger.debug("VERSION", f"No metadata backend available for {p.name}")
    return None
