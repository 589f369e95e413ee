"""Version manifest and metadata manager."""

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from ..config import LauncherSettings
from ..errors import InvalidCatalogData, MissingCatalogEntry
from ..utils.async_http import AsyncHTTPClient
from .models import VersionInfo, VersionManifest, VersionMetadata

logger = logging.getLogger(__name__)


class VersionManager:
    """Remote version catalog: the manifest and one descriptor per version.

    Both are cached in memory for the lifetime of the manager, so a
    descriptor is fetched at most once per session. Nothing is retried.
    """

    def __init__(self, settings: Optional[LauncherSettings] = None,
                 http: Optional[AsyncHTTPClient] = None):
        self.settings = settings or LauncherSettings()
        self.http = http or AsyncHTTPClient(timeout=self.settings.request_timeout)
        self._manifest: Optional[VersionManifest] = None
        self._metadata: Dict[str, VersionMetadata] = {}

    async def __aenter__(self):
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.http.close()

    async def close(self):
        await self.http.close()

    async def fetch_manifest(self, refresh: bool = False) -> VersionManifest:
        """Fetch the launcher version manifest."""
        if self._manifest is not None and not refresh:
            return self._manifest

        logger.info("Fetching version manifest from %s", self.settings.manifest_url)
        data = await self.http.get_json(self.settings.manifest_url)
        try:
            self._manifest = VersionManifest(**data)
        except (TypeError, ValidationError) as e:
            raise InvalidCatalogData(f"Version manifest is malformed: {e}") from e
        logger.debug("Manifest lists %d versions", len(self._manifest.versions))
        return self._manifest

    async def get_version_info(self, version_id: str) -> VersionInfo:
        """Get version info for a specific version."""
        manifest = await self.fetch_manifest()
        info = manifest.find(version_id)
        if info is None:
            raise MissingCatalogEntry(
                f"Version {version_id} not found in the manifest",
                hint="Check the version id, or refresh the version list.",
            )
        return info

    async def fetch_version_metadata(self, version_info: VersionInfo) -> VersionMetadata:
        """Fetch and parse version.json for a specific version."""
        cached = self._metadata.get(version_info.id)
        if cached is not None:
            return cached

        logger.info("Fetching metadata for %s", version_info.id)
        data = await self.http.get_json(version_info.url)
        try:
            metadata = VersionMetadata(**data)
        except (TypeError, ValidationError) as e:
            raise InvalidCatalogData(f"Metadata for {version_info.id} is malformed: {e}") from e

        self._metadata[version_info.id] = metadata
        return metadata

    async def resolve(self, version_id: str) -> VersionMetadata:
        """Manifest lookup followed by the descriptor fetch."""
        info = await self.get_version_info(version_id)
        return await self.fetch_version_metadata(info)

    def save_version_metadata(self, metadata: VersionMetadata) -> Path:
        """Write ``versions/<id>/<id>.json`` so the version can be launched offline.

        The file replaces any previous one in a single rename, it marks a
        completed install.
        """
        path = self.settings.version_json(metadata.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        partial = path.with_name(path.name + ".part")
        with open(partial, 'w', encoding="utf-8") as f:
            f.write(metadata.model_dump_json(exclude_none=True, indent=2))
        os.replace(partial, path)
        return path

    def load_installed_metadata(self, version_id: str) -> Optional[VersionMetadata]:
        """Descriptor saved by a previous install, ``None`` when absent or unreadable."""
        path = self.settings.version_json(version_id)
        if not path.is_file():
            return None
        try:
            with open(path, 'r', encoding="utf-8") as f:
                return VersionMetadata(**json.load(f))
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Ignoring unreadable version file %s: %s", path, e)
            return None

    def installed_version_ids(self) -> List[str]:
        versions_dir = self.settings.versions_dir
        if not versions_dir.is_dir():
            return []
        return sorted(
            entry.name for entry in versions_dir.iterdir()
            if (entry / f"{entry.name}.json").is_file()
        )

    def find_installed_loader_metadata(self, game_version: str, marker: str) -> Optional[VersionMetadata]:
        """Descriptor written by a loader installer on top of ``game_version``.

        ``marker`` is matched case-insensitively against the version id
        (``forge``, ``fabric-loader``...). The most recently modified match wins.
        """
        versions_dir = self.settings.versions_dir
        if not versions_dir.is_dir():
            return None

        candidates = []
        for entry in versions_dir.iterdir():
            if entry.name == game_version or marker.lower() not in entry.name.lower():
                continue
            json_path = entry / f"{entry.name}.json"
            if not json_path.is_file():
                continue
            metadata = self.load_installed_metadata(entry.name)
            if metadata is not None and metadata.inheritsFrom == game_version:
                candidates.append((json_path.stat().st_mtime, metadata))

        if not candidates:
            return None
        candidates.sort(key=lambda item: item[0], reverse=True)
        logger.debug("Found loader descriptor %s for %s", candidates[0][1].id, game_version)
        return candidates[0][1]
