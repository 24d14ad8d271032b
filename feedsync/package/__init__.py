"""Package source tree editing for feedsync.

files : module
    nuspec version, checksums.json, tools/ installer replacement.
script : module
    ScriptRewriter interface and the Chocolatey install script rewriter.
"""

from .files import (
    find_install_script,
    find_nuspec,
    install_artifact,
    remove_old_installers,
    update_checksums,
    update_nuspec_version,
)
from .script import ChocolateyScriptRewriter, ScriptRewrite, ScriptRewriter

__all__ = [
    "ChocolateyScriptRewriter",
    "ScriptRewrite",
    "ScriptRewriter",
    "find_install_script",
    "find_nuspec",
    "install_artifact",
    "remove_old_installers",
    "update_checksums",
    "update_nuspec_version",
]
