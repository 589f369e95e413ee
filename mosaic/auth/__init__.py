"""Authentication module for Minecraft accounts."""

from .offline import OfflineAuthenticator, offline_uuid

__all__ = ["OfflineAuthenticator", "offline_uuid"]
