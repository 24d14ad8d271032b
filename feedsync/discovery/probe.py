"""URL probing for download links and directory pages.

A probe is one streamed GET that follows a bounded number of redirects and
reports what is at the end of the chain without downloading a file body:

- a file: its final URL and the best available file name
- an HTML page: its final URL and markup, for link extraction

The body is only read for HTML responses.
"""

from __future__ import annotations

from dataclasses import dataclass

import requests

from feedsync.exceptions import NetworkError
from feedsync.io.download import filename_from_cd, filename_from_url

_HTML_TYPES = ("text/html", "application/xhtml+xml")


@dataclass(frozen=True)
class ProbeResult:
    """What a URL resolves to.

    Attributes:
        final_url: URL after redirects.
        content_type: Response media type, lowercased, without parameters.
        file_name: File name from Content-Disposition or the final URL path
            ("" for HTML pages or when neither names a file).
        html: Page markup for HTML responses, otherwise None.
    """

    final_url: str
    content_type: str
    file_name: str
    html: str | None = None

    @property
    def is_html(self) -> bool:
        return self.html is not None


def probe_url(session: requests.Session, url: str, timeout: int = 60) -> ProbeResult:
    """Probe url with a streamed GET.

    The redirect limit is the session's `max_redirects`.

    Raises:
        NetworkError: If the request fails, exceeds the redirect limit, or
            returns an error status.
    """
    from feedsync.logging import get_global_logger

    logger = get_global_logger()
    logger.verbose("PROBE", f"GET {url}")
    try:
        with session.get(url, stream=True, allow_redirects=True, timeout=timeout) as resp:
            resp.raise_for_status()
            content_type = (
                resp.headers.get("Content-Type", "").split(";")[0].strip().lower()
            )
            final_url = resp.url or url
            if content_type in _HTML_TYPES:
                return ProbeResult(
                    final_url=final_url,
                    content_type=content_type,
                    file_name="",
                    html=resp.text,
                )
            file_name = filename_from_cd(
                resp.headers.get("Content-Disposition")
            ) or filename_from_url(final_url)
    except requests.TooManyRedirects as err:
        raise NetworkError(f"too many redirects for {url}") from err
    except requests.RequestException as err:
        raise NetworkError(f"probe failed for {url}: {err}") from err

    logger.verbose("PROBE", f"Resolved {final_url} ({content_type or 'unknown type'})")
    return ProbeResult(final_url=final_url, content_type=content_type, file_name=file_name)
