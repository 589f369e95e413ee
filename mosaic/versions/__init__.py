"""Version management module."""

from .assets import AssetResolver, AssetStatus, AssetSummary
from .download_manager import DownloadManager
from .libraries import LibraryResolution, parse_coordinate, resolve_libraries
from .manager import VersionManager
from .models import VersionInfo, VersionManifest, VersionMetadata
from .rules import evaluate_rules

__all__ = [
    "AssetResolver",
    "AssetStatus",
    "AssetSummary",
    "DownloadManager",
    "LibraryResolution",
    "VersionInfo",
    "VersionManager",
    "VersionManifest",
    "VersionMetadata",
    "evaluate_rules",
    "parse_coordinate",
    "resolve_libraries",
]
