"""Install and launch facade used by the host application."""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from ..config import LauncherSettings
from ..errors import InvalidArchive, MissingCatalogEntry, ModLoaderInstallError, NetworkError
from ..modloaders import ModLoaderKind, ModLoaderManager
from ..runtime.java_manager import JavaManager
from ..utils.async_http import AsyncHTTPClient
from ..utils.cancel import CancellationToken, check_cancelled
from ..utils.locks import VersionLockTable
from ..utils.platform_facts import PlatformFacts
from ..utils.progress import ProgressCallback
from ..versions.assets import AssetResolver, AssetSummary
from ..versions.download_manager import DownloadManager
from ..versions.libraries import LibraryArtifact, LibraryResolution, NativeArtifact, resolve_libraries
from ..versions.manager import VersionManager
from ..versions.models import VersionMetadata
from ..versions.natives import extract_natives_async, native_directory_is_empty, wipe_native_directory
from .game_launcher import GameLauncher
from .models import AuthContext, Profile

logger = logging.getLogger(__name__)


class MinecraftManager:
    """Installs versions, their mod loaders, and launches them.

    Install and launch of one version id are serialized through a lock
    table, so "install if missing" at launch never races another install.
    Use it as an async context manager to release its HTTP sessions.
    """

    def __init__(self, settings: Optional[LauncherSettings] = None,
                 facts: Optional[PlatformFacts] = None,
                 java: Optional[JavaManager] = None,
                 locks: Optional[VersionLockTable] = None):
        self.settings = settings or LauncherSettings()
        self.facts = facts or PlatformFacts.current()
        self.locks = locks or VersionLockTable()
        self.downloader = DownloadManager(chunk_size=self.settings.chunk_size,
                                          timeout=self.settings.request_timeout)
        http = AsyncHTTPClient(timeout=self.settings.request_timeout)
        self.versions = VersionManager(self.settings, http)
        self.assets = AssetResolver(self.settings, self.downloader)
        self.modloaders = ModLoaderManager(self.settings, self.downloader, http)
        self.launcher = GameLauncher(self.settings)
        self.java = java or JavaManager(self.settings.java_path)

    async def __aenter__(self):
        await self.downloader.__aenter__()
        await self.versions.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self.downloader.__aexit__(None, None, None)
        await self.versions.close()

    def is_installed(self, version_id: str) -> bool:
        return (self.settings.version_json(version_id).is_file()
                and self.settings.client_jar(version_id).is_file())

    def installed_versions(self) -> List[str]:
        return [v for v in self.versions.installed_version_ids() if self.is_installed(v)]

    async def install(self, version_id: str, on_progress: Optional[ProgressCallback] = None,
                      cancel: Optional[CancellationToken] = None) -> AssetSummary:
        async with self.locks.hold(version_id):
            return await self._install_locked(version_id, on_progress, cancel)

    async def _install_locked(self, version_id: str, on_progress: Optional[ProgressCallback],
                              cancel: Optional[CancellationToken]) -> AssetSummary:
        check_cancelled(cancel)
        logger.info("Installing Minecraft %s", version_id)
        metadata = await self.versions.resolve(version_id)

        await self._fetch_client(metadata, on_progress, cancel)
        await self._fetch_logging_config(metadata, on_progress, cancel)

        resolution = resolve_libraries(metadata, self.facts, self.settings.libraries_dir)
        logger.info("Downloading %d libraries", len(resolution.downloads))
        await self._fetch_libraries(resolution, on_progress, cancel)
        await self._extract_natives(metadata.id, resolution, on_progress, cancel)

        summary = await self.assets.resolve(metadata, on_progress, cancel)
        check_cancelled(cancel)
        # the descriptor goes last, its presence marks a complete install
        self.versions.save_version_metadata(metadata)
        logger.info("Minecraft %s installed (assets: %s)", version_id, summary.status.value)
        return summary

    async def _fetch_client(self, metadata: VersionMetadata, on_progress, cancel):
        dest = self.settings.client_jar(metadata.id)
        download = metadata.client_download
        if download is not None and download.url:
            await self.downloader.fetch(download.url, dest, download.sha1, on_progress, cancel, stage="client")
            return

        if dest.is_file() and dest.stat().st_size > 0:
            return
        url = self.settings.legacy_client_url.format(id=metadata.id)
        logger.warning("No client download for %s, trying legacy location %s", metadata.id, url)
        await self.downloader.fetch(url, dest, None, on_progress, cancel, stage="client")

    async def _fetch_logging_config(self, metadata: VersionMetadata, on_progress, cancel):
        client = metadata.logging_client
        if client is None:
            return
        dest = self.settings.assets_dir / "log_configs" / client.file.id
        await self.downloader.fetch(client.file.url, dest, client.file.sha1, on_progress, cancel, stage="logging")

    async def _fetch_artifact(self, artifact: LibraryArtifact, on_progress, cancel):
        if not artifact.url:
            return
        if not artifact.sha1 and artifact.path.is_file() and artifact.path.stat().st_size > 0:
            logger.debug("Library %s present, no digest to verify", artifact.path)
            return
        await self.downloader.fetch(artifact.url, artifact.path, artifact.sha1, on_progress, cancel,
                                    stage="library")

    async def _fetch_libraries(self, resolution: LibraryResolution, on_progress, cancel):
        for artifact in resolution.downloads:
            check_cancelled(cancel)
            await self._fetch_artifact(artifact, on_progress, cancel)

    async def _extract_one(self, native: NativeArtifact, natives_dir: Path, on_progress, cancel):
        try:
            await extract_natives_async(native.path, natives_dir, native.excludes)
        except InvalidArchive as e:
            logger.warning("Native archive %s is corrupted (%s), downloading it again", native.path, e)
            native.path.unlink(missing_ok=True)
            await self._fetch_artifact(native, on_progress, cancel)
            await extract_natives_async(native.path, natives_dir, native.excludes)

    async def _extract_natives(self, version_id: str, resolution: LibraryResolution, on_progress, cancel):
        natives_dir = self.settings.natives_dir(version_id)
        natives_dir.mkdir(parents=True, exist_ok=True)
        if not resolution.natives:
            return

        for native in resolution.natives:
            check_cancelled(cancel)
            await self._extract_one(native, natives_dir, on_progress, cancel)

        if native_directory_is_empty(natives_dir):
            logger.warning("Natives directory %s is empty after extraction, extracting again", natives_dir)
            await self._reextract_natives(natives_dir, resolution, on_progress, cancel)

    async def _reextract_natives(self, natives_dir: Path, resolution: LibraryResolution, on_progress, cancel):
        wipe_native_directory(natives_dir)
        for native in resolution.natives:
            check_cancelled(cancel)
            await self._extract_one(native, natives_dir, on_progress, cancel)
        if native_directory_is_empty(natives_dir):
            logger.warning("No native libraries could be extracted into %s", natives_dir)

    async def _launch_metadata(self, version_id: str) -> VersionMetadata:
        """Fresh descriptor when the catalog is reachable, the installed one otherwise."""
        try:
            return await self.versions.resolve(version_id)
        except (NetworkError, MissingCatalogEntry) as e:
            local = self.versions.load_installed_metadata(version_id)
            if local is None:
                raise
            logger.warning("Using installed descriptor of %s: %s", version_id, e)
            return local

    async def _ensure_mod_loader(self, metadata: VersionMetadata, kind: ModLoaderKind,
                                 loader_version: Optional[str], java_path: Path,
                                 on_progress, cancel) -> VersionMetadata:
        game_version = metadata.id
        loader_metadata = self.versions.find_installed_loader_metadata(game_version, kind.version_marker)
        if loader_metadata is None:
            await self.modloaders.install(kind, game_version, loader_version, java_path, on_progress, cancel)
            loader_metadata = self.versions.find_installed_loader_metadata(game_version, kind.version_marker)
            if loader_metadata is None:
                raise ModLoaderInstallError(
                    f"{kind.display_name} installer finished but wrote no version for {game_version}",
                    hint=f"Run the {kind.display_name} installer manually to see its output.",
                )
        logger.info("Launching through %s (%s)", kind.display_name, loader_metadata.id)
        return loader_metadata.merged_onto(metadata)

    async def launch(self, profile: Profile, auth: AuthContext,
                     on_progress: Optional[ProgressCallback] = None,
                     cancel: Optional[CancellationToken] = None) -> int:
        """Install what is missing, then spawn the game and return its pid."""
        version_id = profile.version
        async with self.locks.hold(version_id):
            if not self.is_installed(version_id):
                logger.info("Minecraft %s is not installed, installing it first", version_id)
                await self._install_locked(version_id, on_progress, cancel)

            check_cancelled(cancel)
            java_path = await asyncio.to_thread(self.java.ensure_java)
            metadata = await self._launch_metadata(version_id)

            if profile.mod_loader_kind is not None:
                metadata = await self._ensure_mod_loader(metadata, profile.mod_loader_kind,
                                                         profile.mod_loader_version, java_path,
                                                         on_progress, cancel)

            resolution = resolve_libraries(metadata, self.facts, self.settings.libraries_dir)
            await self._fetch_libraries(resolution, on_progress, cancel)
            natives_dir = self.settings.natives_dir(metadata.id)
            if resolution.natives and native_directory_is_empty(natives_dir):
                logger.warning("Natives directory %s is empty, rebuilding it", natives_dir)
                await self._reextract_natives(natives_dir, resolution, on_progress, cancel)

            check_cancelled(cancel)
            spec = self.launcher.build(metadata, profile, auth, java_path, self.facts)
            return self.launcher.spawn(spec, self.facts)

    async def list_mod_loader_versions(self, kind, game_version: str) -> List[str]:
        return await self.modloaders.list_versions(kind, game_version)

    async def install_mod_loader(self, kind, game_version: str, loader_version: Optional[str] = None,
                                 on_progress: Optional[ProgressCallback] = None,
                                 cancel: Optional[CancellationToken] = None) -> Path:
        """Install ``game_version`` if needed, then the mod loader on top of it."""
        kind = ModLoaderKind.parse(kind)
        async with self.locks.hold(game_version):
            if not self.is_installed(game_version):
                await self._install_locked(game_version, on_progress, cancel)
            java_path = await asyncio.to_thread(self.java.ensure_java)
            return await self.modloaders.install(kind, game_version, loader_version, java_path,
                                                 on_progress, cancel)
