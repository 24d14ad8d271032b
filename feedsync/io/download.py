"""
Robust HTTP(S) file download for feedsync.

Installers are downloaded to a deterministic target path chosen by the
pipeline (the artifact naming convention), not to whatever name the server
suggests.

Key Features:

- **Primary transfer** - Streamed download through a session with retry and
  exponential backoff on transient failures (429, 500, 502, 503, 504),
  written to a `.part` file and atomically renamed.
- **Fallback transfer** - If the primary transfer fails for any transport
  reason, a single plain GET (bounded redirects, no retries) is attempted.
  Only when both fail is the download an error.
- **Integrity Verification** - SHA-256 computed while writing, optionally
  checked against a known digest (Winget manifests publish one).
- **Filename helpers** - Content-Disposition parsing (`filename=` and RFC 5987
  `filename*=`) and URL path fallback, shared with the discovery probes.

Example:
    Basic download:

    >>> from pathlib import Path
    >>> from feedsync.io import download_file
    >>> path, sha256 = download_file(
    ...     "https://example.com/installer.msi",
    ...     Path("./work/App_x64_1.2.msi"),
    ... )

Notes:
- Timeouts are per-request, not total download time
- All HTTP errors are chained for better debugging
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from urllib.parse import unquote, urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from feedsync import __version__
from feedsync.exceptions import NetworkError

# Stream size per chunk (1 MiB). Tune up/down if needed.
DEFAULT_CHUNK = 1024 * 1024
DEFAULT_MAX_REDIRECTS = 10
USER_AGENT = f"feedsync/{__version__}"


def filename_from_cd(content_disposition: str | None) -> str | None:
    """
    Extract a filename from a Content-Disposition header if present.

    `filename*=` (RFC 5987) wins over `filename=`.

    Example header:
      'attachment; filename="setup.msi"'
    """
    if not content_disposition:
        return None
    plain = None
    for part in (s.strip() for s in content_disposition.split(";")):
        key, _, value = part.partition("=")
        key = key.strip().lower()
        value = value.strip()
        if key == "filename*":
            # charset'lang'percent-encoded-name
            encoded = value.split("'", 2)[-1].strip('"')
            if encoded:
                return Path(unquote(encoded)).name or None
        elif key == "filename":
            plain = value.strip('"') or None
    return Path(plain).name if plain else None


def filename_from_url(url: str) -> str:
    """
    Derive a filename from the URL path (percent-decoded). Empty if none.
    """
    return Path(unquote(urlparse(url).path)).name


def sha256_file(path: Path) -> str:
    """
    Compute SHA-256 of a file on disk (stream-friendly).
    """
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(DEFAULT_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def make_session(max_redirects: int = DEFAULT_MAX_REDIRECTS) -> requests.Session:
    """
    Create a requests.Session with sane retry/backoff defaults.

    - Retries on common transient status codes.
    - Applies exponential backoff.
    - Caps redirect chains at max_redirects.
    - Sets a User-Agent; some vendor CDNs reject the requests default.
    """
    s = requests.Session()
    retries = Retry(
        total=5,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
        raise_on_status=False,
    )
    s.headers.update({"User-Agent": USER_AGENT})
    s.max_redirects = max_redirects
    s.mount("http://", HTTPAdapter(max_retries=retries))
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s


def _stream_download(
    session: requests.Session, url: str, target: Path, timeout: int
) -> str:
    """Primary transfer: streamed, hashed while writing, atomic rename."""
    tmp = target.with_suffix(target.suffix + ".part")
    sha = hashlib.sha256()
    with session.get(url, stream=True, allow_redirects=True, timeout=timeout) as resp:
        resp.raise_for_status()
        with tmp.open("wb") as f:
            for chunk in resp.iter_content(chunk_size=DEFAULT_CHUNK):
                if not chunk:
                    continue
                f.write(chunk)
                sha.update(chunk)
    tmp.replace(target)
    return sha.hexdigest()


def _basic_download(url: str, target: Path, timeout: int, max_redirects: int) -> str:
    """Fallback transfer: one plain GET with a bounded redirect count."""
    with requests.Session() as s:
        s.headers.update({"User-Agent": USER_AGENT})
        s.max_redirects = max_redirects
        resp = s.get(url, allow_redirects=True, timeout=timeout)
        resp.raise_for_status()
        target.write_bytes(resp.content)
    return hashlib.sha256(resp.content).hexdigest()


def download_file(
    url: str,
    target: Path,
    *,
    session: requests.Session | None = None,
    expected_sha256: str | None = None,
    timeout: int = 60,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
) -> tuple[Path, str]:
    """Download a URL to an exact target path.

    Tries the retrying streamed transfer first and falls back to a basic GET.
    The parent folder is created if missing.

    Args:
        url: Source URL.
        target: Destination file path.
        session: Session for the primary transfer (created if None).
        expected_sha256: Optional known SHA-256 (hex). If set and mismatched,
            the file is removed and NetworkError is raised.
        timeout: Per-request timeout (seconds).
        max_redirects: Redirect cap for both transfers.

    Returns:
        A tuple (file_path, sha256_hex).

    Raises:
        NetworkError: If both transfers fail or the checksum does not match.
    """
    from feedsync.logging import get_global_logger

    logger = get_global_logger()
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)

    logger.verbose("HTTP", f"GET {url}")
    own_session = session is None
    if own_session:
        session = make_session(max_redirects)
    try:
        try:
            digest = _stream_download(session, url, target, timeout)
        except (requests.RequestException, OSError) as err:
            logger.verbose("HTTP", f"Primary transfer failed ({err}), retrying with basic GET")
            target.with_suffix(target.suffix + ".part").unlink(missing_ok=True)
            try:
                digest = _basic_download(url, target, timeout, max_redirects)
            except (requests.RequestException, OSError) as err2:
                raise NetworkError(f"download failed for {url}: {err2}") from err2
    finally:
        if own_session:
            session.close()

    logger.verbose("FILE", f"SHA-256: {digest}")

    if expected_sha256 and digest.lower() != expected_sha256.lower():
        target.unlink(missing_ok=True)
        raise NetworkError(
            f"sha256 mismatch for {target.name}: got {digest}, expected {expected_sha256}"
        )

    logger.verbose("FILE", f"Download complete: {target}")
    return target, digest
