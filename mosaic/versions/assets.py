"""Asset index and content-addressed asset objects."""

import json
import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import ValidationError

from ..config import LauncherSettings
from ..errors import InvalidCatalogData, LauncherError, MissingCatalogEntry, OperationCancelled
from ..utils.cancel import CancellationToken, check_cancelled
from ..utils.progress import ProgressCallback
from .download_manager import DownloadManager
from .models import AssetIndex, VersionMetadata

logger = logging.getLogger(__name__)


class AssetStatus(str, Enum):
    LEGACY_SKIP = "legacy_skip"
    DEGRADED = "degraded"
    COMPLETE = "complete"


@dataclass
class AssetSummary:
    index_id: str
    status: AssetStatus
    total: int = 0
    downloaded: int = 0
    skipped: int = 0
    failed: List[str] = field(default_factory=list)


def _numeric_id(index_id: str) -> Optional[float]:
    try:
        return float(index_id)
    except ValueError:
        return None


def object_path(objects_dir: Path, asset_hash: str) -> Path:
    return objects_dir / asset_hash[:2] / asset_hash


class AssetResolver:
    """Fetches the asset index of a version and every object it lists.

    Object downloads are best effort: a failing object is logged and the
    batch goes on, unlike libraries and the client jar.
    """

    def __init__(self, settings: LauncherSettings, downloader: DownloadManager):
        self.settings = settings
        self.downloader = downloader

    @property
    def objects_dir(self) -> Path:
        return self.settings.assets_dir / "objects"

    def index_path(self, index_id: str) -> Path:
        return self.settings.assets_dir / "indexes" / f"{index_id}.json"

    def is_legacy(self, metadata: VersionMetadata) -> bool:
        """Asset ids known not to resolve, never worth a request."""
        index_id = metadata.assets_id
        if index_id in self.settings.legacy_asset_ids:
            return True
        if metadata.assetIndex is None:
            number = _numeric_id(index_id)
            if number is not None and number < self.settings.modern_assets_threshold:
                return True
        return False

    def is_degradable(self, index_id: str) -> bool:
        """Old enough to run without assets when no index can be found."""
        number = _numeric_id(index_id)
        if number is None:
            return True
        return number < self.settings.degradable_assets_threshold

    def candidate_urls(self, metadata: VersionMetadata) -> List[Tuple[str, Optional[str]]]:
        """Index URLs to try in order, paired with the digest to verify (primary only)."""
        index_id = metadata.assets_id
        candidates: List[Tuple[str, Optional[str]]] = []
        ref = metadata.assetIndex
        if ref is not None and ref.url:
            candidates.append((ref.url, ref.sha1))
        for mirror in self.settings.asset_index_mirrors:
            mirror = mirror.rstrip("/")
            candidates.append((f"{mirror}/v1/packages/{index_id}/{index_id}.json", None))
            candidates.append((f"{mirror}/v1/packages/{index_id}.json", None))

        unique, seen = [], set()
        for url, sha1 in candidates:
            if url not in seen:
                seen.add(url)
                unique.append((url, sha1))
        return unique

    @staticmethod
    def read_index(path: Path) -> Optional[AssetIndex]:
        """Parse an index file, ``None`` when it is not an object with ``objects``."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError):
            return None
        if not isinstance(data, dict) or "objects" not in data:
            return None
        try:
            return AssetIndex(**data)
        except ValidationError:
            return None

    async def fetch_index(self, metadata: VersionMetadata,
                          on_progress: Optional[ProgressCallback] = None,
                          cancel: Optional[CancellationToken] = None) -> AssetIndex:
        index_id = metadata.assets_id
        index_path = self.index_path(index_id)
        candidates = self.candidate_urls(metadata)

        # Without a digest to verify against, a parseable cached index is trusted.
        primary_sha1 = candidates[0][1] if candidates else None
        if not primary_sha1 and index_path.is_file():
            cached = self.read_index(index_path)
            if cached is not None:
                logger.debug("Using cached asset index %s", index_path)
                return cached

        last_error: Optional[LauncherError] = None
        for i, (url, sha1) in enumerate(candidates, start=1):
            logger.info("Trying asset index URL %d/%d: %s", i, len(candidates), url)
            try:
                await self.downloader.fetch(url, index_path, sha1, on_progress, cancel, stage="asset_index")
            except OperationCancelled:
                raise
            except LauncherError as e:
                logger.warning("Failed to download asset index from %s: %s", url, e)
                last_error = e
                continue

            index = self.read_index(index_path)
            if index is None:
                logger.warning("Downloaded asset index from %s but it is not a valid index", url)
                index_path.unlink(missing_ok=True)
                last_error = InvalidCatalogData(f"Asset index from {url} is not a valid index")
                continue
            return index

        raise last_error or MissingCatalogEntry(f"No location known for asset index {index_id}")

    def _populate_virtual(self, index_id: str, index: AssetIndex):
        """Old indexes expect objects under their readable names."""
        virtual_dir = self.settings.assets_dir / "virtual" / index_id
        for name, asset in index.objects.items():
            source = object_path(self.objects_dir, asset.hash)
            target = virtual_dir / name
            if not source.is_file() or (target.is_file() and target.stat().st_size == asset.size):
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)

    async def resolve(self, metadata: VersionMetadata,
                      on_progress: Optional[ProgressCallback] = None,
                      cancel: Optional[CancellationToken] = None) -> AssetSummary:
        index_id = metadata.assets_id
        objects_dir = self.objects_dir

        if self.is_legacy(metadata):
            logger.warning("Known missing asset index detected (%s), skipping asset download", index_id)
            objects_dir.mkdir(parents=True, exist_ok=True)
            return AssetSummary(index_id, AssetStatus.LEGACY_SKIP)

        try:
            index = await self.fetch_index(metadata, on_progress, cancel)
        except OperationCancelled:
            raise
        except LauncherError as e:
            if not self.is_degradable(index_id):
                raise
            logger.warning("Could not download assets for old version %s (%s), the game may still work without them",
                           metadata.id, e)
            objects_dir.mkdir(parents=True, exist_ok=True)
            return AssetSummary(index_id, AssetStatus.DEGRADED)

        summary = AssetSummary(index_id, AssetStatus.COMPLETE, total=len(index.objects))
        logger.info("Asset index %s contains %d objects", index_id, summary.total)
        resources_url = self.settings.resources_url.rstrip("/")

        for name, asset in index.objects.items():
            check_cancelled(cancel)
            path = object_path(objects_dir, asset.hash)
            if path.is_file() and path.stat().st_size == asset.size:
                summary.skipped += 1
                continue

            url = f"{resources_url}/{asset.hash[:2]}/{asset.hash}"
            try:
                await self.downloader.fetch(url, path, asset.hash, on_progress, cancel, stage="asset")
            except OperationCancelled:
                raise
            except LauncherError as e:
                logger.warning("Failed to download asset %s: %s", name, e)
                summary.failed.append(name)
                continue
            summary.downloaded += 1
            if summary.downloaded % 100 == 0:
                logger.info("Downloaded %d/%d assets", summary.downloaded, summary.total)

        if index.virtual or index.map_to_resources:
            self._populate_virtual(index_id, index)

        logger.info("Assets %s: %d downloaded, %d already present, %d failed",
                    index_id, summary.downloaded, summary.skipped, len(summary.failed))
        return summary
