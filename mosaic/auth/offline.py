"""Offline authentication for Minecraft."""

import hashlib
import re
import uuid

from ..core.models import AuthContext

_USERNAME = re.compile(r"^[A-Za-z0-9_]{3,16}$")


def offline_uuid(username: str) -> str:
    """UUID the game server derives for an offline player name (name based, version 3, no namespace)."""
    digest = bytearray(hashlib.md5(f"OfflinePlayer:{username}".encode("utf-8")).digest())
    digest[6] = (digest[6] & 0x0F) | 0x30
    digest[8] = (digest[8] & 0x3F) | 0x80
    return uuid.UUID(bytes=bytes(digest)).hex


class OfflineAuthenticator:
    """Offline mode authenticator with username only."""

    @staticmethod
    async def authenticate(username: str) -> AuthContext:
        """Authenticate offline with given username."""
        if not username or not _USERNAME.match(username):
            raise ValueError("Invalid username for offline mode")

        return AuthContext(
            player_name=username,
            player_uuid=offline_uuid(username),
            access_token="0",
            is_offline=True,
        )
