"""Remote stores for feedsync.

assets : module
    Asset directory client (list, metadata/SHA-256, upload).
packages : module
    Packaging CLI wrapper (pack and push to the NuGet feed).
"""

from .assets import AssetStoreClient, ExistingArtifact
from .packages import PackageStoreClient

__all__ = ["AssetStoreClient", "ExistingArtifact", "PackageStoreClient"]
