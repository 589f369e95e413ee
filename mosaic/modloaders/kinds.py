"""Supported mod loader kinds and what is known about each of them."""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

# Compatibility tables, newest loader version first. "*" applies to any game
# version; Forge and NeoForge builds are tied to one game version so they
# have no such entry.
_FORGE_VERSIONS: Dict[str, List[str]] = {
    "1.21.1": ["1.21.1-52.0.16"],
    "1.20.4": ["1.20.4-49.0.3", "1.20.4-49.0.2", "1.20.4-49.0.1"],
    "1.20.1": ["1.20.1-47.2.0", "1.20.1-47.1.0", "1.20.1-47.0.0"],
    "1.19.4": ["1.19.4-45.1.0", "1.19.4-45.0.0"],
    "1.19.2": ["1.19.2-43.2.0", "1.19.2-43.1.0", "1.19.2-43.0.0"],
    "1.18.2": ["1.18.2-40.2.0", "1.18.2-40.1.0", "1.18.2-40.0.0"],
    "1.17.1": ["1.17.1-37.1.1", "1.17.1-37.1.0", "1.17.1-37.0.0"],
    "1.16.5": ["1.16.5-36.2.39", "1.16.5-36.2.0", "1.16.5-36.1.0"],
}

_NEOFORGE_VERSIONS: Dict[str, List[str]] = {
    "1.21.1": ["21.1.77"],
    "1.20.6": ["20.6.119"],
    "1.20.4": ["20.4.237"],
}

_FABRIC_VERSIONS: Dict[str, List[str]] = {
    "*": [
        "0.15.3", "0.15.2", "0.15.1", "0.15.0",
        "0.14.21", "0.14.20", "0.14.19", "0.14.18",
        "0.14.17", "0.14.16", "0.14.15", "0.14.14",
    ],
}

_QUILT_VERSIONS: Dict[str, List[str]] = {
    "*": [
        "0.20.2", "0.20.1", "0.20.0",
        "0.19.2", "0.19.1", "0.19.0",
        "0.18.10", "0.18.9", "0.18.8",
    ],
}

FABRIC_INSTALLER_VERSION = "0.11.2"
QUILT_INSTALLER_VERSION = "0.8.1"


class ModLoaderKind(str, Enum):
    FORGE = "forge"
    NEOFORGE = "neoforge"
    FABRIC = "fabric"
    QUILT = "quilt"

    @classmethod
    def parse(cls, value) -> "ModLoaderKind":
        """Accept a kind or its name in any case."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unsupported mod loader: {value!r}") from None

    @property
    def display_name(self) -> str:
        return {
            ModLoaderKind.FORGE: "Forge",
            ModLoaderKind.NEOFORGE: "NeoForge",
            ModLoaderKind.FABRIC: "Fabric",
            ModLoaderKind.QUILT: "Quilt",
        }[self]

    @property
    def main_class(self) -> str:
        """Entry point of a game launched through this loader, whatever its version."""
        return {
            ModLoaderKind.FORGE: "cpw.mods.bootstraplauncher.BootstrapLauncher",
            ModLoaderKind.NEOFORGE: "cpw.mods.bootstraplauncher.BootstrapLauncher",
            ModLoaderKind.FABRIC: "net.fabricmc.loader.impl.launch.knot.KnotClient",
            ModLoaderKind.QUILT: "org.quiltmc.loader.impl.launch.knot.KnotClient",
        }[self]

    @property
    def default_maven(self) -> str:
        return {
            ModLoaderKind.FORGE: "https://maven.minecraftforge.net",
            ModLoaderKind.NEOFORGE: "https://maven.neoforged.net/releases",
            ModLoaderKind.FABRIC: "https://maven.fabricmc.net",
            ModLoaderKind.QUILT: "https://maven.quiltmc.org/repository/release",
        }[self]

    @property
    def version_marker(self) -> str:
        """Substring of the version id the installer writes under ``versions/``."""
        return {
            ModLoaderKind.FORGE: "-forge-",
            ModLoaderKind.NEOFORGE: "neoforge-",
            ModLoaderKind.FABRIC: "fabric-loader-",
            ModLoaderKind.QUILT: "quilt-loader-",
        }[self]

    @property
    def compatibility_table(self) -> Dict[str, List[str]]:
        return {
            ModLoaderKind.FORGE: _FORGE_VERSIONS,
            ModLoaderKind.NEOFORGE: _NEOFORGE_VERSIONS,
            ModLoaderKind.FABRIC: _FABRIC_VERSIONS,
            ModLoaderKind.QUILT: _QUILT_VERSIONS,
        }[self]

    @property
    def versions_page(self) -> str:
        return {
            ModLoaderKind.FORGE: "https://files.minecraftforge.net/net/minecraftforge/forge/",
            ModLoaderKind.NEOFORGE: "https://neoforged.net/",
            ModLoaderKind.FABRIC: "https://fabricmc.net/develop/",
            ModLoaderKind.QUILT: "https://quiltmc.org/",
        }[self]

    def known_versions(self, game_version: str) -> List[str]:
        table = self.compatibility_table
        return list(table.get(game_version) or table.get("*") or [])

    def default_version(self, game_version: str) -> Optional[str]:
        versions = self.known_versions(game_version)
        return versions[0] if versions else None

    def normalize_version(self, game_version: str, loader_version: str) -> str:
        """Forge builds are published as ``<game>-<forge>``."""
        if self is ModLoaderKind.FORGE and not loader_version.startswith(f"{game_version}-"):
            return f"{game_version}-{loader_version}"
        return loader_version

    def installer_file_name(self, loader_version: str) -> str:
        if self is ModLoaderKind.FABRIC:
            return f"fabric-installer-{FABRIC_INSTALLER_VERSION}.jar"
        if self is ModLoaderKind.QUILT:
            return f"quilt-installer-{QUILT_INSTALLER_VERSION}.jar"
        return f"{self.value}-{loader_version}-installer.jar"

    def installer_url(self, loader_version: str, maven: Optional[str] = None) -> str:
        base = (maven or self.default_maven).rstrip("/")
        name = self.installer_file_name(loader_version)
        if self is ModLoaderKind.FORGE:
            return f"{base}/net/minecraftforge/forge/{loader_version}/{name}"
        if self is ModLoaderKind.NEOFORGE:
            return f"{base}/net/neoforged/neoforge/{loader_version}/{name}"
        if self is ModLoaderKind.FABRIC:
            return f"{base}/net/fabricmc/fabric-installer/{FABRIC_INSTALLER_VERSION}/{name}"
        return f"{base}/org/quiltmc/quilt-installer/{QUILT_INSTALLER_VERSION}/{name}"

    def installer_args(self, root: Path, game_version: str, loader_version: str) -> List[str]:
        """Arguments passed after ``java -jar <installer>``."""
        if self in (ModLoaderKind.FORGE, ModLoaderKind.NEOFORGE):
            return ["--installClient", str(root)]
        if self is ModLoaderKind.FABRIC:
            return ["client", "-mcversion", game_version, "-dir", str(root),
                    "-noprofile", "-loader", loader_version]
        return ["install", "client", game_version, loader_version,
                f"--install-dir={root}", "--no-profile"]
