"""Input/Output operations for feedsync.

Modules:

download : module
    HTTP(S) file download with retries, a basic-GET fallback, and checksums.
archive : module
    Nested installer extraction and package tools replacement from zips.

Public API:

download_file : function
    Download a URL to an exact target path.
make_session : function
    Session with retry/backoff and bounded redirects.
extract_nested : function
    Extract one entry of a zip archive byte for byte.
replace_tools_dir : function
    Replace a package source tools/ folder from a .nupkg.

Example:
    from pathlib import Path
    from feedsync.io import download_file

    file_path, sha256 = download_file(
        "https://example.com/installer.msi",
        Path("./work/App_x64_1.0.msi"),
    )

"""

from .archive import extract_nested, replace_tools_dir
from .download import (
    download_file,
    filename_from_cd,
    filename_from_url,
    make_session,
    sha256_file,
)

__all__ = [
    "download_file",
    "extract_nested",
    "filename_from_cd",
    "filename_from_url",
    "make_session",
    "replace_tools_dir",
    "sha256_file",
]
