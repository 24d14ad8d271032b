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

"""Web directory resolver for feedsync.

Resolves installers published on a vendor download page or a plain
directory listing, and links that redirect straight to a file.

Resolution:
    One streamed GET of SourceRef, following redirects.

    - Not HTML: the response is the installer itself. The file name comes
      from Content-Disposition, else the final URL.
    - HTML: links are collected with BeautifulSoup (`a[href]`). Pages
      without anchors fall back to a regex over the raw markup. Links whose
      path ends with the preferred extension are sorted descending and the
      first is resolved against the final page URL.

    The version is the first dotted number in the file name; names without
    one yield the unknown-version sentinel.

Note:
    Descending lexical order puts `App-10.2.msi` before `App-9.9.msi` only
    when the names share a prefix and zero padding; pages with irregular
    naming should use a DirectUrl entry instead.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from feedsync.config.entries import SoftwareEntry, SourceType
from feedsync.io.download import filename_from_url
from feedsync.paths import PathContext
from feedsync.versioning.keys import extract_version

from .base import ResolveContext, register_resolver
from .intent import ResolvedIntent
from .probe import probe_url

_HREF = re.compile(r"""href\s*=\s*["']([^"']+)["']""", re.IGNORECASE)


def extract_links(html: str) -> list[str]:
    """Return href values from the page, anchors first, regex as fallback."""
    soup = BeautifulSoup(html, "html.parser")
    links = [str(a["href"]).strip() for a in soup.select("a[href]")]
    if not links:
        links = [m.strip() for m in _HREF.findall(html)]
    return [link for link in links if link]


def pick_link(links: list[str], extension: str) -> str | None:
    """Highest link (descending lexical order) whose path ends with extension."""
    candidates = [
        link for link in links if urlparse(link).path.lower().endswith(extension)
    ]
    if not candidates:
        return None
    return sorted(candidates, reverse=True)[0]


class WebDirectoryResolver:
    """Resolver for entries with SourceType WebDirectory."""

    def resolve(
        self, entry: SoftwareEntry, paths: PathContext, context: ResolveContext
    ) -> ResolvedIntent | None:
        logger = context.logger
        result = probe_url(context.session, entry.source_ref, context.settings.http_timeout)

        if not result.is_html:
            logger.verbose("WEB", f"{entry.source_ref} is a file: {result.file_name}")
            return ResolvedIntent(
                source_type=SourceType.WEB_DIRECTORY,
                latest_version=extract_version(result.file_name),
                installer_url=result.final_url,
                file_name=result.file_name,
            )

        links = extract_links(result.html or "")
        logger.verbose("WEB", f"Found {len(links)} link(s) on {result.final_url}")
        link = pick_link(links, entry.preferred_extension)
        if link is None:
            logger.warning(
                "WEB",
                f"No {entry.preferred_extension} link found on {result.final_url}",
            )
            return None

        url = urljoin(result.final_url, link)
        file_name = filename_from_url(url)
        logger.verbose("WEB", f"Selected link: {url}")
        return ResolvedIntent(
            source_type=SourceType.WEB_DIRECTORY,
            latest_version=extract_version(file_name),
            installer_url=url,
            file_name=file_name,
        )


register_resolver(SourceType.WEB_DIRECTORY, WebDirectoryResolver)
