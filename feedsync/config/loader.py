"""
Settings loading for feedsync.

Settings describe the environment a run talks to: the asset store, the
package feed, local working folders, and the discovery endpoints. They are
kept apart from the entries CSV so the same product list can be run against
different stores.

Layers
------
1. **Built-in defaults** (DEFAULT_SETTINGS below)
2. **Settings file** (YAML, usually `feedsync.yaml`)

Merge Behavior
--------------
The loader performs deep merging with "last wins" semantics:
  - **Dicts**: Recursively merged (keys from overlay override base)
  - **Lists**: Completely replaced (NOT appended/extended)
  - **Scalars**: Overwritten (strings, numbers, booleans)

Environment Expansion
---------------------
String values may reference environment variables as `${NAME}`. A `.env`
file in the working directory is loaded first (python-dotenv), so API keys
never have to live in the settings file. Unset variables expand to "".

Path Resolution
---------------
Relative paths under `paths:` are resolved against the SETTINGS FILE
location, not the working directory.

Examples
--------
    >>> from pathlib import Path
    >>> from feedsync.config import load_settings
    >>> settings = load_settings(Path("feedsync.yaml"))
    >>> settings.feed_url
    'https://proget.example.com/nuget/choco'
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import re
from typing import Any

from dotenv import load_dotenv
import yaml

from feedsync.exceptions import ConfigError

DEFAULT_SETTINGS: dict[str, Any] = {
    "asset_store": {
        "base_url": "",
        "asset_dir": "software",
        "api_key": "${FEEDSYNC_ASSET_API_KEY}",
        "upload_method": "POST",
    },
    "feed": {
        "base_url": "",
        "name": "choco",
        "api_key": "${FEEDSYNC_FEED_API_KEY}",
    },
    "paths": {
        "packages_root": "packages",
        "work_dir": "work",
        "local_drop_dir": "drop",
    },
    "manifest_repository": {
        "api_url": "https://api.github.com/repos/microsoft/winget-pkgs/contents/manifests",
        "raw_url": "https://raw.githubusercontent.com/microsoft/winget-pkgs/master/manifests",
    },
    "github": {
        "api_url": "https://api.github.com",
        "token": "${FEEDSYNC_GITHUB_TOKEN}",
    },
    "packager": {
        "executable": "choco",
        "timeout": 600,
    },
    "http": {
        "timeout": 60,
        "max_redirects": 10,
    },
    "self_package": "chocolatey",
}

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_UPLOAD_METHODS = ("POST", "PUT", "PATCH")


@dataclass(frozen=True)
class Settings:
    """Effective settings for one run."""

    asset_base_url: str
    asset_dir: str
    asset_api_key: str
    asset_upload_method: str
    feed_base_url: str
    feed_name: str
    feed_api_key: str
    packages_root: Path
    work_dir: Path
    local_drop_dir: Path
    manifest_api_url: str
    manifest_raw_url: str
    github_api_url: str
    github_token: str
    packager_executable: str
    packager_timeout: int
    http_timeout: int
    max_redirects: int
    self_package: str

    @property
    def feed_url(self) -> str:
        """Push target of the internal NuGet feed."""
        base = (self.feed_base_url or self.asset_base_url).rstrip("/")
        return f"{base}/nuget/{self.feed_name}"


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts with "overlay wins".

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


def _expand_env(value: Any) -> Any:
    """Expand ${NAME} references recursively in strings, dicts, and lists."""
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


def _load_yaml_file(p: Path) -> dict[str, Any]:
    """
    Load a YAML mapping from disk.

    Raises:
      ConfigError - missing file, invalid YAML, or a non-mapping document
    """
    if not p.exists():
        raise ConfigError(f"Settings file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file must contain a mapping: {p}")
    return data


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"Setting {key} must be an integer, got {value!r}") from err


def build_settings(data: dict[str, Any], base_dir: Path) -> Settings:
    """Build Settings from a (partial) settings mapping.

    Args:
        data: Parsed settings; merged over DEFAULT_SETTINGS.
        base_dir: Directory that relative paths are resolved against.

    Raises:
        ConfigError: On missing asset store URL or invalid values.
    """
    merged = _expand_env(_deep_merge_dicts(DEFAULT_SETTINGS, data))

    asset = merged["asset_store"]
    feed = merged["feed"]
    paths = merged["paths"]

    base_url = str(asset.get("base_url") or "").rstrip("/")
    if not base_url:
        raise ConfigError("Setting asset_store.base_url is required")

    method = str(asset.get("upload_method") or "POST").upper()
    if method not in _UPLOAD_METHODS:
        raise ConfigError(
            f"Setting asset_store.upload_method must be one of "
            f"{', '.join(_UPLOAD_METHODS)}, got {method!r}"
        )

    def resolve(key: str) -> Path:
        p = Path(str(paths[key])).expanduser()
        return p if p.is_absolute() else (base_dir / p).resolve()

    return Settings(
        asset_base_url=base_url,
        asset_dir=str(asset.get("asset_dir") or "").strip("/"),
        asset_api_key=str(asset.get("api_key") or ""),
        asset_upload_method=method,
        feed_base_url=str(feed.get("base_url") or "").rstrip("/"),
        feed_name=str(feed.get("name") or ""),
        feed_api_key=str(feed.get("api_key") or ""),
        packages_root=resolve("packages_root"),
        work_dir=resolve("work_dir"),
        local_drop_dir=resolve("local_drop_dir"),
        manifest_api_url=str(merged["manifest_repository"]["api_url"]).rstrip("/"),
        manifest_raw_url=str(merged["manifest_repository"]["raw_url"]).rstrip("/"),
        github_api_url=str(merged["github"]["api_url"]).rstrip("/"),
        github_token=str(merged["github"].get("token") or ""),
        packager_executable=str(merged["packager"]["executable"]),
        packager_timeout=_as_int(merged["packager"]["timeout"], "packager.timeout"),
        http_timeout=_as_int(merged["http"]["timeout"], "http.timeout"),
        max_redirects=_as_int(merged["http"]["max_redirects"], "http.max_redirects"),
        self_package=str(merged.get("self_package") or ""),
    )


def load_settings(settings_path: Path | None = None) -> Settings:
    """Load effective settings (defaults + optional YAML file + environment).

    Args:
        settings_path: YAML settings file. When None, only defaults and the
            environment are used and paths resolve against the working
            directory.

    Returns:
        Frozen Settings.

    Raises:
        ConfigError: On missing files, YAML errors, or invalid values.
    """
    load_dotenv()
    if settings_path is None:
        return build_settings({}, Path.cwd())
    settings_path = settings_path.resolve()
    data = _load_yaml_file(settings_path)
    return build_settings(data, settings_path.parent)
