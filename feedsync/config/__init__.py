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

"""Configuration loading for feedsync.

Two inputs drive a run:

  - Settings (YAML): stores, feed, folders, discovery endpoints, credentials
  - Entries (CSV): one row per tracked product

Public API:

- load_settings: Load defaults + settings file + environment
- load_entries: Load and validate the entries CSV
- SoftwareEntry, SourceType: Entry data types

Example:
    Basic usage:

        from pathlib import Path
        from feedsync.config import load_entries, load_settings

        settings = load_settings(Path("feedsync.yaml"))
        entries = load_entries(Path("software.csv"))

"""

from .entries import SoftwareEntry, SourceType, load_entries
from .loader import Settings, build_settings, load_settings

__all__ = [
    "Settings",
    "SoftwareEntry",
    "SourceType",
    "build_settings",
    "load_entries",
    "load_settings",
]
