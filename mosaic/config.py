"""
Launcher settings.

Every field can be overridden with a ``MOSAIC_`` prefixed environment
variable (``MOSAIC_MINECRAFT_DIR``, ``MOSAIC_JAVA_PATH``...) or by passing
keyword arguments to ``LauncherSettings``.
"""

from pathlib import Path
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings

from . import LAUNCHER_NAME, __version__


class LauncherSettings(BaseSettings):
    """Launcher settings."""

    # Directories
    minecraft_dir: Path = Path.home() / ".minecraft"
    cache_dir: Path = Path.home() / ".cache" / "mosaic_launcher"

    # Remote catalog
    manifest_url: str = "https://piston-meta.mojang.com/mc/game/version_manifest_v2.json"
    resources_url: str = "https://resources.download.minecraft.net"
    asset_index_mirrors: List[str] = [
        "https://launchermeta.mojang.com",
        "https://piston-meta.mojang.com",
    ]
    legacy_client_url: str = "https://s3.amazonaws.com/Minecraft.Download/versions/{id}/{id}.jar"

    # Asset index ids known not to resolve
    legacy_asset_ids: List[str] = ["legacy", "pre-1.6", "24"]
    modern_assets_threshold: int = 13
    degradable_assets_threshold: int = 16

    # Mod loaders
    installer_attempts: int = 3
    installer_retry_delay: float = 2.0
    modloader_mavens: Dict[str, str] = {}
    fabric_meta_url: str = "https://meta.fabricmc.net/v2"
    quilt_meta_url: str = "https://meta.quiltmc.org/v3"

    # Launch
    java_path: Optional[Path] = None
    default_memory_mb: int = 2048
    extra_jvm_args: List[str] = [
        "-XX:+UnlockExperimentalVMOptions",
        "-XX:+UseG1GC",
        "-XX:G1NewSizePercent=20",
        "-XX:G1ReservePercent=20",
        "-XX:MaxGCPauseMillis=50",
        "-XX:G1HeapRegionSize=32M",
    ]
    launcher_name: str = LAUNCHER_NAME
    launcher_version: str = __version__
    client_id: str = "mosaic-launcher"

    # HTTP
    chunk_size: int = 64 * 1024
    request_timeout: float = 60.0

    model_config = {"env_prefix": "MOSAIC_"}

    @property
    def versions_dir(self) -> Path:
        return self.minecraft_dir / "versions"

    @property
    def libraries_dir(self) -> Path:
        return self.minecraft_dir / "libraries"

    @property
    def assets_dir(self) -> Path:
        return self.minecraft_dir / "assets"

    def version_dir(self, version_id: str) -> Path:
        return self.versions_dir / version_id

    def client_jar(self, version_id: str) -> Path:
        return self.version_dir(version_id) / f"{version_id}.jar"

    def version_json(self, version_id: str) -> Path:
        return self.version_dir(version_id) / f"{version_id}.json"

    def natives_dir(self, version_id: str) -> Path:
        return self.version_dir(version_id) / "natives"
