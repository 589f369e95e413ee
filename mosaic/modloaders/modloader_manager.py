"""Mod loader manager."""

import asyncio
import json
import logging
import zipfile
import zlib
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..config import LauncherSettings
from ..errors import (HashMismatch, InvalidArchive, InvalidCatalogData, MissingCatalogEntry,
                      ModLoaderInstallError, NetworkError, ProcessLaunchFailure)
from ..utils.async_http import AsyncHTTPClient
from ..utils.cancel import CancellationToken, check_cancelled
from ..utils.progress import ProgressCallback
from ..utils.retry import retry_async
from ..versions.download_manager import DownloadManager
from .kinds import ModLoaderKind

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"


def verify_installer_archive(path: Path) -> bool:
    """Check that ``path`` is a structurally valid jar.

    Non-empty, starting with the zip local header magic, and parseable with
    readable entries among the first five.
    """
    try:
        size = path.stat().st_size
    except FileNotFoundError:
        logger.warning("Installer file does not exist: %s", path)
        return False
    if size == 0:
        logger.warning("Installer file is empty: %s", path)
        return False

    with open(path, 'rb') as f:
        head = f.read(16)
    if not head.startswith(ZIP_MAGIC):
        logger.warning("Installer %s does not start with the zip magic number (first bytes: %s)",
                       path, head.hex(" "))
        return False

    try:
        with zipfile.ZipFile(path) as archive:
            entries = archive.infolist()
            if not entries:
                logger.warning("Installer %s has no entries", path)
                return False
            for info in entries[:5]:
                with archive.open(info) as entry:
                    entry.read(1024)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, OSError) as e:
        logger.warning("Installer %s is not a valid archive: %s", path, e)
        return False

    logger.debug("Installer %s verified (%d bytes)", path, size)
    return True


class ModLoaderManager:
    """Acquires and runs the external installer of a mod loader."""

    def __init__(self, settings: Optional[LauncherSettings] = None,
                 downloader: Optional[DownloadManager] = None,
                 http: Optional[AsyncHTTPClient] = None):
        self.settings = settings or LauncherSettings()
        self.downloader = downloader or DownloadManager(chunk_size=self.settings.chunk_size,
                                                        timeout=self.settings.request_timeout)
        self.http = http or AsyncHTTPClient(timeout=self.settings.request_timeout)
        self._versions_cache: Dict[Tuple[ModLoaderKind, str], List[str]] = {}

    async def __aenter__(self):
        await self.downloader.__aenter__()
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.downloader.__aexit__(exc_type, exc, tb)
        await self.http.close()

    def installer_dir(self, kind: ModLoaderKind) -> Path:
        return self.settings.minecraft_dir / kind.value

    def resolve_loader_version(self, kind: ModLoaderKind, game_version: str,
                               loader_version: Optional[str] = None) -> str:
        """Explicit version, else the compatibility table entry for ``game_version``."""
        if loader_version and loader_version != "latest":
            return kind.normalize_version(game_version, loader_version)

        resolved = kind.default_version(game_version)
        if resolved is None:
            raise MissingCatalogEntry(
                f"No known {kind.display_name} version for Minecraft {game_version}",
                hint=(f"Pick a {kind.display_name} version explicitly in the profile. "
                      f"Compatible versions are listed at {kind.versions_page}"),
            )
        logger.info("Using %s %s for Minecraft %s", kind.display_name, resolved, game_version)
        return resolved

    async def download_installer(self, kind: ModLoaderKind, loader_version: str,
                                 on_progress: Optional[ProgressCallback] = None,
                                 cancel: Optional[CancellationToken] = None) -> Path:
        """Download and verify the installer, retrying on failure.

        Raises ``ModLoaderInstallError`` once every attempt failed; no
        installer file is left behind in that case.
        """
        url = kind.installer_url(loader_version, self.settings.modloader_mavens.get(kind.value))
        dest = self.installer_dir(kind) / kind.installer_file_name(loader_version)

        if dest.is_file() and await asyncio.to_thread(verify_installer_archive, dest):
            logger.info("Reusing %s installer %s", kind.display_name, dest)
            return dest

        async def attempt(number: int) -> Path:
            logger.info("Downloading %s installer from %s", kind.display_name, url)
            await self.downloader.fetch(url, dest, None, on_progress, cancel, stage="modloader_installer")
            if not await asyncio.to_thread(verify_installer_archive, dest):
                raise InvalidArchive(dest, f"downloaded {kind.display_name} installer is not a valid jar")
            return dest

        try:
            return await retry_async(
                attempt,
                attempts=self.settings.installer_attempts,
                delay=self.settings.installer_retry_delay,
                retry_on=(NetworkError, HashMismatch, InvalidArchive),
                cleanup=lambda: dest.unlink(missing_ok=True),
                cancel=cancel,
                description=f"{kind.display_name} installer download",
            )
        except (NetworkError, HashMismatch, InvalidArchive) as e:
            raise ModLoaderInstallError(
                f"Failed to download and verify {kind.display_name} installer "
                f"after {self.settings.installer_attempts} attempts: {e}",
                hint=("Check your internet connection, try another loader version, "
                      "or try again later as the server might be temporarily unavailable."),
            ) from e

    def ensure_launcher_profiles(self) -> Path:
        """Installers refuse to run without a launcher_profiles.json in the root."""
        path = self.settings.minecraft_dir / "launcher_profiles.json"
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding="utf-8") as f:
                json.dump({"profiles": {}, "settings": {}, "version": 3}, f, indent=2)
            logger.debug("Created %s", path)
        return path

    async def _run_installer(self, command: List[str], cwd: Path) -> int:
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise ProcessLaunchFailure(
                f"Java executable not found: {command[0]}",
                hint="Install Java or set MOSAIC_JAVA_PATH to a java executable.",
            ) from e

        async for line in process.stdout:
            logger.debug("installer: %s", line.decode(errors="replace").rstrip())
        return await process.wait()

    async def install(self, kind, game_version: str, loader_version: Optional[str] = None,
                      java_path: Path = Path("java"),
                      on_progress: Optional[ProgressCallback] = None,
                      cancel: Optional[CancellationToken] = None) -> Path:
        """Install a mod loader on top of an installed game version.

        Returns the path of the installer that was run.
        """
        kind = ModLoaderKind.parse(kind)
        version = self.resolve_loader_version(kind, game_version, loader_version)
        logger.info("Installing %s %s for Minecraft %s", kind.display_name, version, game_version)

        installer = await self.download_installer(kind, version, on_progress, cancel)
        check_cancelled(cancel)

        root = self.settings.minecraft_dir
        self.ensure_launcher_profiles()
        command = [str(java_path), "-jar", str(installer), *kind.installer_args(root, game_version, version)]
        logger.info("Running %s installer", kind.display_name)
        logger.debug("Installer command: %s", command)

        status = await self._run_installer(command, root)
        if status != 0:
            raise ProcessLaunchFailure(
                f"{kind.display_name} installation failed with exit code {status}",
                exit_status=status,
                hint=f"Check that Minecraft {game_version} is supported by {kind.display_name} {version}.",
            )

        logger.info("%s installation completed successfully", kind.display_name)
        return installer

    async def _fetch_meta_versions(self, kind: ModLoaderKind, game_version: str) -> List[str]:
        base = self.settings.fabric_meta_url if kind is ModLoaderKind.FABRIC else self.settings.quilt_meta_url
        data = await self.http.get_json(f"{base.rstrip('/')}/versions/loader/{game_version}")
        if not isinstance(data, list):
            raise InvalidCatalogData(f"Unexpected {kind.display_name} loader list for {game_version}")

        versions = []
        for entry in data:
            loader = entry.get("loader") if isinstance(entry, dict) else None
            if isinstance(loader, dict) and loader.get("version"):
                versions.append(loader["version"])
        return versions

    async def list_versions(self, kind, game_version: str) -> List[str]:
        """Loader versions usable with ``game_version``, newest first."""
        kind = ModLoaderKind.parse(kind)
        key = (kind, game_version)
        if key in self._versions_cache:
            return list(self._versions_cache[key])

        versions: List[str] = []
        if kind in (ModLoaderKind.FABRIC, ModLoaderKind.QUILT):
            try:
                versions = await self._fetch_meta_versions(kind, game_version)
            except (NetworkError, InvalidCatalogData) as e:
                logger.warning("Could not fetch %s versions, using known versions: %s", kind.display_name, e)
        if not versions:
            versions = kind.known_versions(game_version)
            if not versions:
                logger.warning("No known %s versions for Minecraft %s", kind.display_name, game_version)

        self._versions_cache[key] = versions
        return list(versions)
