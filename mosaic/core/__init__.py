"""Launch command building and the install/launch facade."""

from .game_launcher import GameLauncher
from .manager import MinecraftManager
from .models import AuthContext, LaunchSpec, Profile

__all__ = ["AuthContext", "GameLauncher", "LaunchSpec", "MinecraftManager", "Profile"]
