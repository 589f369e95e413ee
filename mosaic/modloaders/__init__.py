"""Mod loader installation (Forge, NeoForge, Fabric, Quilt)."""

from .kinds import ModLoaderKind
from .modloader_manager import ModLoaderManager, verify_installer_archive

__all__ = ["ModLoaderKind", "ModLoaderManager", "verify_installer_archive"]
