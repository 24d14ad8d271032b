"""Direct URL resolver for feedsync.

For links known to serve (or redirect to) the installer itself, such as
vendor "latest" links. The link is probed without downloading the body; the
file name comes from Content-Disposition or the final URL and the version is
the first dotted number in it.

An HTML response means the link is a landing page, not a download. That is
a soft failure: a warning is logged and the entry is skipped.
"""

from __future__ import annotations

from feedsync.config.entries import SoftwareEntry, SourceType
from feedsync.paths import PathContext
from feedsync.versioning.keys import extract_version

from .base import ResolveContext, register_resolver
from .intent import ResolvedIntent
from .probe import probe_url


class DirectUrlResolver:
    """Resolver for entries with SourceType DirectUrl."""

    def resolve(
        self, entry: SoftwareEntry, paths: PathContext, context: ResolveContext
    ) -> ResolvedIntent | None:
        result = probe_url(context.session, entry.source_ref, context.settings.http_timeout)
        if result.is_html:
            context.logger.warning(
                "DIRECT",
                f"{entry.source_ref} returned an HTML page instead of a file",
            )
            return None

        context.logger.verbose("DIRECT", f"Resolved {result.final_url}")
        return ResolvedIntent(
            source_type=SourceType.DIRECT_URL,
            version=extract_version(result.file_name),
            installer_url=result.final_url,
            file_name=result.file_name,
        )


register_resolver(SourceType.DIRECT_URL, DirectUrlResolver)
