"""Mosaic launcher core: install and launch Minecraft versions."""

__version__ = "0.1.0"

LAUNCHER_NAME = "Mosaic Launcher"
